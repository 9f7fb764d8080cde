from fastapi import APIRouter, Depends

from dependencies.services import get_user_service
from schemas.auth import LoginRequest, LoginResponse
from services.user_service import UserService

router = APIRouter(tags=["인증"])


# ✅ [LOGIN] 로그인 API - 아이디/비밀번호 확인 후 JWT 발급
@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, service: UserService = Depends(get_user_service)):
    user, token = service.login(request.username, request.password)
    return LoginResponse(token=token, name=user.name, role=user.role)
