from pydantic import BaseModel, Field


# ✅ 요청 형식 정의
class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# ✅ 응답 형식 정의
class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    name: str
    role: str
