import logging
from collections import Counter
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models.attendance import SubjectAttendance
from models.enrollments import StudentSubject
from models.enums import AttendanceStatus, UserRole
from models.subjects import Subject
from models.users import User
from schemas.attendance import BulkAttendanceRequest, StudentAttendanceRequest
from schemas.common import parse_date
from services.exceptions import (
    AccessDeniedError,
    NotFoundError,
    RequestValidationFailed,
    ConflictError,
)
from services.policy import Actor, Operation, Resource, authorize
from services.storage import storage_guard

logger = logging.getLogger(__name__)

ALREADY_MARKED = "Attendance already marked for this date and subject"
INVALID_STATUS = "Invalid status. Must be present, absent, or late"
INVALID_DATE = "Invalid date format"


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return parse_date(value)
    except ValueError:
        raise RequestValidationFailed(INVALID_DATE)


class AttendanceService:
    """
    과목별 출결 장부.
    (과목, 학생, 날짜) 당 기록은 최대 하나이며 DB 유일 제약이 최종 보증.
    기록이 없으면 결석으로 간주하고, 기록된 상태는 배정 교사의 수정으로만 바뀐다.
    """

    def __init__(self, db: Session):
        self.db = db

    def _records(self):
        return self.db.query(SubjectAttendance).options(
            selectinload(SubjectAttendance.student),
            selectinload(SubjectAttendance.subject),
        )

    def _is_enrolled(self, student_id: int, subject_id: int) -> bool:
        enrollment = (
            self.db.query(StudentSubject)
            .filter(StudentSubject.student_id == student_id, StudentSubject.subject_id == subject_id)
            .first()
        )
        return enrollment is not None

    def _day_taken(self, subject_id: int, on_date: date) -> bool:
        """해당 (과목, 날짜)에 기록이 하나라도 있는지"""
        record = (
            self.db.query(SubjectAttendance)
            .filter(SubjectAttendance.date == on_date, SubjectAttendance.subject_id == subject_id)
            .first()
        )
        return record is not None

    def _find_record(self, subject_id: int, student_id: int, on_date: date):
        return (
            self.db.query(SubjectAttendance)
            .filter(
                SubjectAttendance.subject_id == subject_id,
                SubjectAttendance.student_id == student_id,
                SubjectAttendance.date == on_date,
            )
            .first()
        )

    def _get_record(self, record_id: int) -> SubjectAttendance:
        record = self.db.query(SubjectAttendance).filter(SubjectAttendance.id == record_id).first()
        if record is None:
            raise NotFoundError("Attendance record not found")
        return record

    # ==========================================================
    # [조회]
    # ==========================================================

    def list_records(
        self,
        actor: Actor,
        on_date: Optional[str] = None,
        student_id: Optional[int] = None,
        subject_id: Optional[int] = None,
    ) -> List[SubjectAttendance]:
        authorize(actor, Resource.ATTENDANCE, Operation.READ)
        target_date = _parse_optional_date(on_date)

        with storage_guard(self.db, "fetch attendance records", commit=False):
            query = self._records()
            if target_date:
                query = query.filter(SubjectAttendance.date == target_date)
            if student_id:
                query = query.filter(SubjectAttendance.student_id == student_id)
            if subject_id:
                query = query.filter(SubjectAttendance.subject_id == subject_id)
            return query.order_by(SubjectAttendance.date.desc(), SubjectAttendance.id.desc()).all()

    def list_range(
        self,
        actor: Actor,
        start_date: Optional[str],
        end_date: Optional[str],
        subject_id: Optional[int] = None,
    ) -> List[SubjectAttendance]:
        """양 끝 포함 기간 조회. 두 날짜 모두 필수"""
        authorize(actor, Resource.ATTENDANCE, Operation.READ)
        start = _parse_optional_date(start_date)
        end = _parse_optional_date(end_date)
        if start is None or end is None:
            raise RequestValidationFailed(INVALID_DATE)

        with storage_guard(self.db, "fetch attendance records by date range", commit=False):
            query = self._records().filter(SubjectAttendance.date.between(start, end))
            if subject_id:
                query = query.filter(SubjectAttendance.subject_id == subject_id)
            return query.order_by(SubjectAttendance.date.desc(), SubjectAttendance.id.desc()).all()

    def list_for_student(self, actor: Actor, student_id: int) -> List[SubjectAttendance]:
        authorize(actor, Resource.ATTENDANCE, Operation.READ_STUDENT, student_id=student_id)
        with storage_guard(self.db, "fetch student attendance records", commit=False):
            return (
                self._records()
                .filter(SubjectAttendance.student_id == student_id)
                .order_by(SubjectAttendance.date.desc(), SubjectAttendance.id.desc())
                .all()
            )

    def list_for_student_subject(self, actor: Actor, student_id: int, subject_id: int) -> List[SubjectAttendance]:
        authorize(actor, Resource.ATTENDANCE, Operation.READ_STUDENT, student_id=student_id)
        if not self._is_enrolled(student_id, subject_id):
            raise NotFoundError("Student not enrolled in this subject")

        with storage_guard(self.db, "fetch student subject attendance records", commit=False):
            return (
                self._records()
                .filter(SubjectAttendance.student_id == student_id, SubjectAttendance.subject_id == subject_id)
                .order_by(SubjectAttendance.date.desc(), SubjectAttendance.id.desc())
                .all()
            )

    def stats(
        self,
        actor: Actor,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        subject_id: Optional[int] = None,
    ) -> dict:
        """
        상태별 건수. 기간은 두 날짜가 모두 있을 때만 적용.
        과목을 지정하면 total_students 는 그 과목 수강생 수.
        """
        authorize(actor, Resource.ATTENDANCE, Operation.STATS)
        start = _parse_optional_date(start_date)
        end = _parse_optional_date(end_date)

        with storage_guard(self.db, "fetch attendance statistics", commit=False):
            query = self.db.query(SubjectAttendance.status, func.count(SubjectAttendance.id))
            if start and end:
                query = query.filter(SubjectAttendance.date.between(start, end))
            if subject_id:
                query = query.filter(SubjectAttendance.subject_id == subject_id)
            counts = dict(query.group_by(SubjectAttendance.status).all())

            if subject_id:
                total_students = (
                    self.db.query(StudentSubject).filter(StudentSubject.subject_id == subject_id).count()
                )
            else:
                total_students = self.db.query(User).filter(User.role == UserRole.STUDENT.value).count()

        return {
            "total_students": total_students,
            "present_count": counts.get(AttendanceStatus.PRESENT.value, 0),
            "absent_count": counts.get(AttendanceStatus.ABSENT.value, 0),
            "late_count": counts.get(AttendanceStatus.LATE.value, 0),
        }

    def summary(self, actor: Actor) -> List[dict]:
        """학생별 누적 출석률 (present / 전체 기록)"""
        authorize(actor, Resource.ATTENDANCE, Operation.SUMMARY)
        with storage_guard(self.db, "generate summary", commit=False):
            students = (
                self.db.query(User)
                .options(selectinload(User.attendance))
                .filter(User.role == UserRole.STUDENT.value)
                .order_by(User.name)
                .all()
            )

        result = []
        for s in students:
            status_counter = Counter(r.status for r in s.attendance)
            total = len(s.attendance)
            present = status_counter.get(AttendanceStatus.PRESENT.value, 0)
            rate = round((present / total) * 100, 1) if total else 0.0
            result.append({
                "id": s.id,
                "name": s.name,
                "student_id": s.student_id,
                "total_days": total,
                "present_days": present,
                "attendance_percentage": rate,
            })
        return result

    # ==========================================================
    # [기록]
    # ==========================================================

    def bulk_create(self, actor: Actor, payload: BulkAttendanceRequest) -> List[SubjectAttendance]:
        """
        교사가 한 과목의 하루치 출석을 한 번에 기록.
        해당 (날짜, 과목)에 기록이 하나라도 있으면 전체 거부, 부분 재제출/병합은 없음.
        모든 행은 한 트랜잭션으로 들어가거나 하나도 들어가지 않는다.
        """
        if not payload.attendance_data:
            raise RequestValidationFailed("Attendance data is required and must not be empty")

        student_ids = [entry.student_id for entry in payload.attendance_data]
        if len(set(student_ids)) != len(student_ids):
            raise RequestValidationFailed("Each student may appear only once per submission")

        if self.db.query(Subject).filter(Subject.id == payload.subject_id).first() is None:
            raise NotFoundError("Subject not found")
        authorize(
            actor, Resource.ATTENDANCE, Operation.BULK_CREATE, db=self.db, subject_id=payload.subject_id
        )

        enrolled = (
            self.db.query(StudentSubject)
            .filter(StudentSubject.subject_id == payload.subject_id, StudentSubject.student_id.in_(student_ids))
            .count()
        )
        if enrolled != len(student_ids):
            raise RequestValidationFailed("Some students are not enrolled in this subject")

        if self._day_taken(payload.subject_id, payload.date):
            raise ConflictError(ALREADY_MARKED)

        records = [
            SubjectAttendance(
                date=payload.date,
                status=entry.status.value,
                student_id=entry.student_id,
                subject_id=payload.subject_id,
                taken_by_id=actor.id,
            )
            for entry in payload.attendance_data
        ]
        with storage_guard(self.db, "create attendance records", ALREADY_MARKED):
            self.db.add_all(records)

        logger.info(
            f"{len(records)} attendance records for subject id={payload.subject_id} "
            f"on {payload.date} taken by user id={actor.id}"
        )
        return records

    def self_mark(self, actor: Actor, payload: StudentAttendanceRequest) -> SubjectAttendance:
        """학생 본인 출석. 같은 날 두 번째 제출은 덮어쓰지 않고 거부"""
        authorize(actor, Resource.ATTENDANCE, Operation.SELF_MARK, student_id=payload.student_id)

        subject = self.db.query(Subject).filter(Subject.id == payload.subject_id).first()
        if subject is None:
            raise NotFoundError("Subject not found")
        if not self._is_enrolled(payload.student_id, payload.subject_id):
            raise NotFoundError("Student not enrolled in this subject")
        if not subject.attendance_enabled:
            raise AccessDeniedError("Attendance is not enabled for this subject")

        if self._find_record(payload.subject_id, payload.student_id, payload.date):
            raise ConflictError(ALREADY_MARKED)

        record = SubjectAttendance(
            date=payload.date,
            status=payload.status.value,
            student_id=payload.student_id,
            subject_id=payload.subject_id,
            taken_by_id=actor.id,
        )
        with storage_guard(self.db, "mark attendance", ALREADY_MARKED):
            self.db.add(record)
        self.db.refresh(record)
        logger.info(f"Student id={actor.id} marked {record.status} for subject id={record.subject_id} on {record.date}")
        return record

    # ==========================================================
    # [수정/삭제] 배정 교사 전용
    # ==========================================================

    def update_status(self, actor: Actor, record_id: int, status: Optional[str]) -> SubjectAttendance:
        """상태만 변경 가능. 날짜/과목/학생은 생성 후 불변"""
        if status not in {s.value for s in AttendanceStatus}:
            raise RequestValidationFailed(INVALID_STATUS)

        record = self._get_record(record_id)
        authorize(actor, Resource.ATTENDANCE, Operation.UPDATE, db=self.db, subject_id=record.subject_id)

        with storage_guard(self.db, "update attendance record"):
            record.status = status
        self.db.refresh(record)
        logger.info(f"Attendance id={record_id} set to {status} by user id={actor.id}")
        return record

    def delete(self, actor: Actor, record_id: int) -> None:
        record = self._get_record(record_id)
        authorize(actor, Resource.ATTENDANCE, Operation.DELETE, db=self.db, subject_id=record.subject_id)

        with storage_guard(self.db, "delete attendance record"):
            self.db.delete(record)
        logger.info(f"Attendance id={record_id} deleted by user id={actor.id}")
