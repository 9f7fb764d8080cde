from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.security import CurrentActor
from dependencies.services import get_attendance_service
from schemas.attendance import (
    AttendanceOut,
    AttendanceStats,
    AttendanceUpdate,
    BulkAttendanceRequest,
    StudentAttendanceRequest,
)
from services.attendance_service import AttendanceService

router = APIRouter(prefix="/attendance", tags=["attendance"])


# ==========================================================
# [1단계] 조회 라우터
# ==========================================================

# ✅ [READ] 출결 기록 조회 (날짜/학생/과목 필터)
@router.get("/")
def read_attendance_list(
    actor: CurrentActor,
    date: Optional[str] = Query(None, description="조회할 날짜 (예: 2024-01-10)"),
    student_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    service: AttendanceService = Depends(get_attendance_service),
):
    records = service.list_records(actor, on_date=date, student_id=student_id, subject_id=subject_id)
    return {
        "success": True,
        "data": [AttendanceOut.model_validate(r) for r in records],
    }


# ✅ [RANGE] 기간별 출결 기록 (양 끝 포함)
@router.get("/range")
def read_attendance_range(
    actor: CurrentActor,
    start_date: Optional[str] = Query(None, description="시작일 (예: 2024-01-01)"),
    end_date: Optional[str] = Query(None, description="종료일 (예: 2024-01-31)"),
    subject_id: Optional[int] = None,
    service: AttendanceService = Depends(get_attendance_service),
):
    records = service.list_range(actor, start_date, end_date, subject_id)
    return {
        "success": True,
        "data": [AttendanceOut.model_validate(r) for r in records],
    }


# ✅ [STATS] 상태별 집계
@router.get("/stats")
def read_attendance_stats(
    actor: CurrentActor,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    subject_id: Optional[int] = None,
    service: AttendanceService = Depends(get_attendance_service),
):
    stats = service.stats(actor, start_date, end_date, subject_id)
    return {"success": True, "data": AttendanceStats(**stats)}


# ✅ [READ] 특정 학생 출결 기록
@router.get("/student/{student_id}")
def read_student_attendance(
    student_id: int,
    actor: CurrentActor,
    service: AttendanceService = Depends(get_attendance_service),
):
    records = service.list_for_student(actor, student_id)
    return {
        "success": True,
        "data": [AttendanceOut.model_validate(r) for r in records],
    }


# ✅ [READ] 특정 학생의 특정 과목 출결 기록
@router.get("/student/{student_id}/subject/{subject_id}")
def read_student_subject_attendance(
    student_id: int,
    subject_id: int,
    actor: CurrentActor,
    service: AttendanceService = Depends(get_attendance_service),
):
    records = service.list_for_student_subject(actor, student_id, subject_id)
    return {
        "success": True,
        "data": [AttendanceOut.model_validate(r) for r in records],
    }


# ==========================================================
# [2단계] 기록 라우터
# ==========================================================

# ✅ [CREATE] 교사 일괄 출석 (한 과목 하루치)
@router.post("/bulk", status_code=201)
def create_bulk_attendance(
    body: BulkAttendanceRequest,
    actor: CurrentActor,
    service: AttendanceService = Depends(get_attendance_service),
):
    records = service.bulk_create(actor, body)
    return {
        "success": True,
        "data": [AttendanceOut.model_validate(r) for r in records],
        "message": "Attendance records created successfully"
    }


# ✅ [CREATE] 학생 본인 출석
@router.post("/student", status_code=201)
def create_student_attendance(
    body: StudentAttendanceRequest,
    actor: CurrentActor,
    service: AttendanceService = Depends(get_attendance_service),
):
    record = service.self_mark(actor, body)
    return {
        "success": True,
        "data": AttendanceOut.model_validate(record),
        "message": "Attendance marked successfully"
    }


# ✅ [UPDATE] 출결 상태 수정 (배정 교사 전용, 상태만)
@router.put("/{record_id}")
def update_attendance(
    record_id: int,
    body: AttendanceUpdate,
    actor: CurrentActor,
    service: AttendanceService = Depends(get_attendance_service),
):
    record = service.update_status(actor, record_id, body.status)
    return {
        "success": True,
        "data": AttendanceOut.model_validate(record),
        "message": "Attendance record updated successfully"
    }


# ✅ [DELETE] 출결 기록 삭제 (배정 교사 전용)
@router.delete("/{record_id}")
def delete_attendance(
    record_id: int,
    actor: CurrentActor,
    service: AttendanceService = Depends(get_attendance_service),
):
    service.delete(actor, record_id)
    return {
        "success": True,
        "data": {"attendance_id": record_id},
        "message": "Attendance record deleted successfully"
    }
