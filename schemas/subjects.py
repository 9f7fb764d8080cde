from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from schemas.users import StudentBrief, UserBrief


# ✅ 입력용: POST 요청에서 사용할 스키마
class SubjectCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)         # 과목 코드 (유일)
    name: str = Field(..., min_length=1, max_length=100)        # 과목 이름
    department: str = Field(..., min_length=1, max_length=100)  # 개설 학과
    description: Optional[str] = None                           # 과목 설명


# ✅ 입력용: PUT 요청 - 보낸 필드만 반영
class SubjectUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("code", "name", "department", "is_active")
    @classmethod
    def _not_null(cls, v, info):
        # NOT NULL 컬럼: 생략은 허용, 명시적 null 은 거부
        if v is None:
            raise ValueError(f"{info.field_name} must not be null")
        return v


class AssignTeacherRequest(BaseModel):
    teacher_id: int


class EnrollStudentRequest(BaseModel):
    student_id: int


class EnrollStudentsRequest(BaseModel):
    student_ids: List[int] = Field(default_factory=list)


class ToggleAttendanceRequest(BaseModel):
    enabled: StrictBool


# ✅ 출력용: 과목 기본 정보
class SubjectOut(BaseModel):
    id: int
    code: str
    name: str
    department: str
    description: Optional[str] = None
    is_active: bool
    attendance_enabled: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SubjectBrief(BaseModel):
    id: int
    code: str
    name: str
    department: str

    model_config = ConfigDict(from_attributes=True)


# ✅ 출력용: 담당 교사/수강 학생까지 포함한 상세
class SubjectDetail(SubjectOut):
    teachers: List[UserBrief] = []
    students: List[StudentBrief] = []
    teacher_count: int = 0
    student_count: int = 0


class AssignmentOut(BaseModel):
    id: int
    teacher: UserBrief
    subject: SubjectBrief
    assigned_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EnrollmentOut(BaseModel):
    id: int
    student: StudentBrief
    subject: SubjectBrief
    enrolled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def to_subject_detail(subject) -> SubjectDetail:
    """ORM Subject(+배정/수강 관계) → SubjectDetail"""
    teachers = [UserBrief.model_validate(a.teacher) for a in subject.teacher_assignments]
    students = [StudentBrief.model_validate(e.student) for e in subject.enrollments]
    return SubjectDetail(
        **SubjectOut.model_validate(subject).model_dump(),
        teachers=teachers,
        students=students,
        teacher_count=len(teachers),
        student_count=len(students),
    )
