from fastapi import Depends
from sqlalchemy.orm import Session

from database.db import get_db
from services.attendance_service import AttendanceService
from services.subject_service import SubjectService
from services.user_service import UserService


# ✅ 요청마다 새 세션 위에 서비스 객체 생성
def get_subject_service(db: Session = Depends(get_db)) -> SubjectService:
    return SubjectService(db)


def get_attendance_service(db: Session = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)
