# ✅ 관계 문자열("User", "Subject" ...) 해석을 위해 모든 모델을 한 번에 등록
from models.users import User
from models.subjects import Subject
from models.enrollments import TeacherSubject, StudentSubject
from models.attendance import SubjectAttendance

__all__ = ["User", "Subject", "TeacherSubject", "StudentSubject", "SubjectAttendance"]
