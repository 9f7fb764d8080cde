from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from models.enums import AttendanceStatus
from schemas.subjects import SubjectBrief
from schemas.users import StudentBrief


class AttendanceEntry(BaseModel):
    student_id: int
    status: AttendanceStatus


# ✅ 교사 일괄 출석 (한 과목, 한 날짜)
class BulkAttendanceRequest(BaseModel):
    date: date
    subject_id: int
    attendance_data: List[AttendanceEntry]


# ✅ 학생 본인 출석
class StudentAttendanceRequest(BaseModel):
    student_id: int
    subject_id: int
    date: date
    status: AttendanceStatus = AttendanceStatus.PRESENT


# ✅ 교사 수정: 상태만 변경 가능
class AttendanceUpdate(BaseModel):
    status: Optional[str] = None


class AttendanceOut(BaseModel):
    id: int
    subject_id: int
    student_id: int
    date: date                               # 수업 날짜
    status: AttendanceStatus                 # present / absent / late
    taken_by_id: Optional[int] = None        # 기록한 계정
    created_at: Optional[datetime] = None
    student: Optional[StudentBrief] = None
    subject: Optional[SubjectBrief] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceStats(BaseModel):
    total_students: int
    present_count: int
    absent_count: int
    late_count: int


class StudentSummary(BaseModel):
    id: int
    name: str
    student_id: Optional[str] = None
    total_days: int
    present_days: int
    attendance_percentage: float
