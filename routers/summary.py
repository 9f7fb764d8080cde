from fastapi import APIRouter, Depends

from dependencies.security import CurrentActor
from dependencies.services import get_attendance_service
from schemas.attendance import StudentSummary
from services.attendance_service import AttendanceService

router = APIRouter(prefix="/summary", tags=["출결 요약"])


# ✅ [SUMMARY] 학생별 누적 출석률
@router.get("/")
def read_attendance_summary(actor: CurrentActor, service: AttendanceService = Depends(get_attendance_service)):
    rows = service.summary(actor)
    return {
        "success": True,
        "data": [StudentSummary(**row) for row in rows],
        "message": "학생별 출석률 요약 완료"
    }
