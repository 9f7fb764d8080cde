from fastapi import APIRouter, Depends, status

from dependencies.security import CurrentActor
from dependencies.services import get_user_service
from schemas.users import EmailUpdate, PasswordUpdate, UserCreate, UserOut, UserUpdate, UserWithCount
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["계정 관리"])


# ==========================================================
# [1단계] 본인 정보 (로그인한 모든 계정)
# - /{user_id} 보다 먼저 등록해야 경로가 가려지지 않음
# ==========================================================

# ✅ [READ] 내 정보
@router.get("/me")
def read_me(actor: CurrentActor, service: UserService = Depends(get_user_service)):
    return {"success": True, "data": UserOut.model_validate(service.me(actor))}


# ✅ [UPDATE] 내 이메일 변경
@router.put("/email")
def update_my_email(body: EmailUpdate, actor: CurrentActor, service: UserService = Depends(get_user_service)):
    user = service.update_email(actor, body.email)
    return {
        "success": True,
        "data": UserOut.model_validate(user),
        "message": "Email updated successfully"
    }


# ✅ [UPDATE] 내 비밀번호 변경
@router.put("/password")
def update_my_password(body: PasswordUpdate, actor: CurrentActor, service: UserService = Depends(get_user_service)):
    service.update_password(actor, body.current_password, body.new_password)
    return {"success": True, "data": None, "message": "Password updated successfully"}


# ==========================================================
# [2단계] 계정 CRUD (관리자)
# ==========================================================

# ✅ [READ] 전체 계정 조회 (출결 기록 수 포함)
@router.get("/")
def read_users(actor: CurrentActor, service: UserService = Depends(get_user_service)):
    rows = service.list_all(actor)
    return {
        "success": True,
        "data": [
            UserWithCount(**UserOut.model_validate(u).model_dump(), attendance_count=count)
            for u, count in rows
        ],
        "message": "전체 계정 조회 완료"
    }


# ✅ [CREATE] 계정 추가
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, actor: CurrentActor, service: UserService = Depends(get_user_service)):
    user = service.create(actor, body)
    return {
        "success": True,
        "data": UserOut.model_validate(user),
        "message": "계정이 성공적으로 추가되었습니다"
    }


# ✅ [UPDATE] 계정 수정
@router.put("/{user_id}")
def update_user(user_id: int, body: UserUpdate, actor: CurrentActor, service: UserService = Depends(get_user_service)):
    user = service.update(actor, user_id, body)
    return {
        "success": True,
        "data": UserOut.model_validate(user),
        "message": "계정 정보가 성공적으로 수정되었습니다"
    }


# ✅ [DELETE] 계정 삭제
@router.delete("/{user_id}")
def delete_user(user_id: int, actor: CurrentActor, service: UserService = Depends(get_user_service)):
    service.delete(actor, user_id)
    return {
        "success": True,
        "data": {"user_id": user_id},
        "message": "계정이 성공적으로 삭제되었습니다"
    }
