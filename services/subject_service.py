import logging
from typing import List

from sqlalchemy.orm import Session, selectinload

from models.enrollments import StudentSubject, TeacherSubject
from models.enums import UserRole
from models.subjects import Subject
from models.users import User
from schemas.subjects import SubjectCreate, SubjectUpdate
from services.exceptions import ConflictError, NotFoundError, RequestValidationFailed
from services.policy import Actor, Operation, Resource, authorize
from services.storage import storage_guard

logger = logging.getLogger(__name__)

SUBJECT_CODE_TAKEN = "Subject code already exists"
TEACHER_ALREADY_ASSIGNED = "Teacher is already assigned to this subject"
STUDENT_ALREADY_ENROLLED = "Student is already enrolled in this subject"


class SubjectService:
    """
    과목, 교사 배정, 학생 수강 관리.
    (교사, 과목) / (학생, 과목) 쌍은 DB 유일 제약이 최종 보증이고,
    사전 조회는 사용자에게 빠르게 409 를 돌려주기 위한 것.
    """

    def __init__(self, db: Session):
        self.db = db

    # ==========================================================
    # [조회 도우미]
    # ==========================================================

    def _with_members(self):
        return self.db.query(Subject).options(
            selectinload(Subject.teacher_assignments).selectinload(TeacherSubject.teacher),
            selectinload(Subject.enrollments).selectinload(StudentSubject.student),
        )

    def get_subject(self, subject_id: int) -> Subject:
        subject = self.db.query(Subject).filter(Subject.id == subject_id).first()
        if subject is None:
            raise NotFoundError("Subject not found")
        return subject

    def _get_account(self, user_id: int, role: UserRole, label: str) -> User:
        account = self.db.query(User).filter(User.id == user_id, User.role == role.value).first()
        if account is None:
            raise NotFoundError(f"{label} not found")
        return account

    def _find_assignment(self, teacher_id: int, subject_id: int):
        return (
            self.db.query(TeacherSubject)
            .filter(TeacherSubject.teacher_id == teacher_id, TeacherSubject.subject_id == subject_id)
            .first()
        )

    def _find_enrollment(self, student_id: int, subject_id: int):
        return (
            self.db.query(StudentSubject)
            .filter(StudentSubject.student_id == student_id, StudentSubject.subject_id == subject_id)
            .first()
        )

    # ==========================================================
    # [과목 CRUD]
    # ==========================================================

    def list_all(self, actor: Actor) -> List[Subject]:
        authorize(actor, Resource.SUBJECTS, Operation.LIST_ALL)
        with storage_guard(self.db, "fetch subjects", commit=False):
            return self._with_members().order_by(Subject.code).all()

    def list_for_teacher(self, actor: Actor) -> List[Subject]:
        authorize(actor, Resource.SUBJECTS, Operation.LIST_TEACHER)
        with storage_guard(self.db, "fetch teacher subjects", commit=False):
            return (
                self._with_members()
                .join(TeacherSubject, TeacherSubject.subject_id == Subject.id)
                .filter(TeacherSubject.teacher_id == actor.id)
                .order_by(Subject.code)
                .all()
            )

    def list_for_student(self, actor: Actor) -> List[Subject]:
        authorize(actor, Resource.SUBJECTS, Operation.LIST_STUDENT)
        with storage_guard(self.db, "fetch student subjects", commit=False):
            return (
                self._with_members()
                .join(StudentSubject, StudentSubject.subject_id == Subject.id)
                .filter(StudentSubject.student_id == actor.id)
                .order_by(Subject.code)
                .all()
            )

    def create(self, actor: Actor, payload: SubjectCreate) -> Subject:
        authorize(actor, Resource.SUBJECTS, Operation.CREATE)

        if self.db.query(Subject).filter(Subject.code == payload.code).first():
            raise ConflictError(SUBJECT_CODE_TAKEN)

        subject = Subject(**payload.model_dump())
        with storage_guard(self.db, "create subject", SUBJECT_CODE_TAKEN):
            self.db.add(subject)
        self.db.refresh(subject)
        logger.info(f"Subject {subject.code} created by user id={actor.id}")
        return subject

    def update(self, actor: Actor, subject_id: int, payload: SubjectUpdate) -> Subject:
        authorize(actor, Resource.SUBJECTS, Operation.UPDATE)
        subject = self.get_subject(subject_id)

        changes = payload.model_dump(exclude_unset=True)
        new_code = changes.get("code")
        if new_code and new_code != subject.code:
            if self.db.query(Subject).filter(Subject.code == new_code).first():
                raise ConflictError(SUBJECT_CODE_TAKEN)

        with storage_guard(self.db, "update subject", SUBJECT_CODE_TAKEN):
            for key, value in changes.items():
                setattr(subject, key, value)
        self.db.refresh(subject)
        return subject

    def delete(self, actor: Actor, subject_id: int) -> None:
        authorize(actor, Resource.SUBJECTS, Operation.DELETE)
        subject = self.get_subject(subject_id)
        # 배정/수강/출결은 관계 cascade 로 함께 삭제
        with storage_guard(self.db, "delete subject"):
            self.db.delete(subject)
        logger.info(f"Subject id={subject_id} deleted by user id={actor.id}")

    # ==========================================================
    # [교사 배정]
    # ==========================================================

    def assign_teacher(self, actor: Actor, subject_id: int, teacher_id: int) -> TeacherSubject:
        authorize(actor, Resource.SUBJECTS, Operation.ASSIGN_TEACHER)
        self._get_account(teacher_id, UserRole.TEACHER, "Teacher")
        self.get_subject(subject_id)

        if self._find_assignment(teacher_id, subject_id):
            raise ConflictError(TEACHER_ALREADY_ASSIGNED)

        assignment = TeacherSubject(teacher_id=teacher_id, subject_id=subject_id)
        with storage_guard(self.db, "assign teacher", TEACHER_ALREADY_ASSIGNED):
            self.db.add(assignment)
        self.db.refresh(assignment)
        logger.info(f"Teacher id={teacher_id} assigned to subject id={subject_id}")
        return assignment

    def unassign_teacher(self, actor: Actor, subject_id: int, teacher_id: int) -> None:
        authorize(actor, Resource.SUBJECTS, Operation.UNASSIGN_TEACHER)
        self.get_subject(subject_id)
        self._get_account(teacher_id, UserRole.TEACHER, "Teacher")

        assignment = self._find_assignment(teacher_id, subject_id)
        if assignment is None:
            raise NotFoundError("Teacher is not assigned to this subject")

        with storage_guard(self.db, "unassign teacher from subject"):
            self.db.delete(assignment)
        logger.info(f"Teacher id={teacher_id} unassigned from subject id={subject_id}")

    # ==========================================================
    # [학생 수강]
    # ==========================================================

    def enroll_student(self, actor: Actor, subject_id: int, student_id: int) -> StudentSubject:
        authorize(actor, Resource.SUBJECTS, Operation.ENROLL_STUDENT)
        self._get_account(student_id, UserRole.STUDENT, "Student")
        self.get_subject(subject_id)

        if self._find_enrollment(student_id, subject_id):
            raise ConflictError(STUDENT_ALREADY_ENROLLED)

        enrollment = StudentSubject(student_id=student_id, subject_id=subject_id)
        with storage_guard(self.db, "enroll student", STUDENT_ALREADY_ENROLLED):
            self.db.add(enrollment)
        self.db.refresh(enrollment)
        logger.info(f"Student id={student_id} enrolled in subject id={subject_id}")
        return enrollment

    def enroll_students(self, actor: Actor, subject_id: int, student_ids: List[int]) -> List[StudentSubject]:
        """
        과목의 수강생 전체를 교체한다 (병합이 아님).
        한 명이라도 유효한 STUDENT 가 아니면 아무것도 바꾸지 않는다.
        """
        authorize(actor, Resource.SUBJECTS, Operation.ENROLL_STUDENTS)

        if not student_ids:
            raise RequestValidationFailed("Student IDs array is required and must not be empty")
        self.get_subject(subject_id)

        # 순서 유지하며 중복 제거
        unique_ids = list(dict.fromkeys(student_ids))
        found = (
            self.db.query(User.id)
            .filter(User.id.in_(unique_ids), User.role == UserRole.STUDENT.value)
            .count()
        )
        if found != len(unique_ids):
            raise RequestValidationFailed("Some students were not found or are not valid students")

        # 삭제 + 삽입을 한 번의 commit 으로
        with storage_guard(self.db, "enroll students", STUDENT_ALREADY_ENROLLED):
            self.db.query(StudentSubject).filter(StudentSubject.subject_id == subject_id).delete(
                synchronize_session=False
            )
            self.db.add_all(
                [StudentSubject(student_id=sid, subject_id=subject_id) for sid in unique_ids]
            )

        logger.info(f"Subject id={subject_id} enrollment replaced with {len(unique_ids)} students")
        return (
            self.db.query(StudentSubject)
            .options(selectinload(StudentSubject.student), selectinload(StudentSubject.subject))
            .filter(StudentSubject.subject_id == subject_id)
            .order_by(StudentSubject.id)
            .all()
        )

    def remove_student(self, actor: Actor, subject_id: int, student_id: int) -> None:
        authorize(actor, Resource.SUBJECTS, Operation.REMOVE_STUDENT)
        self.get_subject(subject_id)
        self._get_account(student_id, UserRole.STUDENT, "Student")

        enrollment = self._find_enrollment(student_id, subject_id)
        if enrollment is None:
            raise NotFoundError("Student is not enrolled in this subject")

        with storage_guard(self.db, "remove student from subject"):
            self.db.delete(enrollment)
        logger.info(f"Student id={student_id} removed from subject id={subject_id}")

    # ==========================================================
    # [자가 출석 허용 토글]
    # ==========================================================

    def toggle_attendance(self, actor: Actor, subject_id: int, enabled: bool) -> Subject:
        authorize(actor, Resource.SUBJECTS, Operation.TOGGLE_ATTENDANCE, db=self.db, subject_id=subject_id)
        subject = self.get_subject(subject_id)

        with storage_guard(self.db, "toggle attendance for subject"):
            subject.attendance_enabled = enabled
        logger.info(f"Attendance {'enabled' if enabled else 'disabled'} for subject id={subject_id} by user id={actor.id}")
        return self._with_members().filter(Subject.id == subject_id).one()
