from fastapi import APIRouter, Depends

from dependencies.security import CurrentActor
from dependencies.services import get_user_service
from schemas.users import UserOut, UserWithCount
from services.user_service import UserService

router = APIRouter(prefix="/students", tags=["학생 정보"])


# ✅ [READ] 전체 학생 조회 (이름순, 출결 기록 수 포함)
@router.get("/")
def read_students(actor: CurrentActor, service: UserService = Depends(get_user_service)):
    rows = service.list_students(actor)
    return {
        "success": True,
        "data": [
            UserWithCount(**UserOut.model_validate(u).model_dump(), attendance_count=count)
            for u, count in rows
        ],
        "message": "전체 학생 정보 조회 완료"
    }
