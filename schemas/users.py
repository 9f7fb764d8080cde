from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models.enums import UserRole


# ✅ 입력용: 계정 생성 (관리자)
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)       # 표시 이름
    role: UserRole                                             # 권한
    username: Optional[str] = Field(None, max_length=50)       # 미지정 시 이름에서 생성
    password: Optional[str] = None                             # 미지정 시 학번 또는 "user"
    email: Optional[EmailStr] = None                           # 이메일 (형식 검증)
    student_id: Optional[str] = None                           # 학번 (STUDENT 전용)
    department: Optional[str] = None                           # 학과 (STUDENT, TEACHER)
    semester: Optional[str] = None                             # 학기 (STUDENT 전용)


# ✅ 입력용: 계정 수정 (관리자) - 보낸 필드만 반영
class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    email: Optional[EmailStr] = None
    student_id: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, v):
        # 필드를 생략하는 것은 허용, 명시적 null 은 거부
        if v is None:
            raise ValueError("name must not be null")
        return v


class EmailUpdate(BaseModel):
    email: EmailStr


class PasswordUpdate(BaseModel):
    current_password: str = ""
    new_password: str = ""


# ✅ 출력용: 비밀번호를 제외한 계정 정보
class UserOut(BaseModel):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    role: UserRole
    student_id: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserWithCount(UserOut):
    attendance_count: int = 0


# ✅ 다른 응답 안에 끼워 넣는 축약형
class UserBrief(BaseModel):
    id: int
    name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StudentBrief(UserBrief):
    student_id: Optional[str] = None
