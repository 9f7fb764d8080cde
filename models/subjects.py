from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship
from database.db import Base


class Subject(Base):
    __tablename__ = "subjects"  # 과목 정보 테이블

    id = Column(Integer, primary_key=True, index=True)                   # 과목 고유 ID (Primary Key)
    code = Column(String(20), unique=True, nullable=False)               # 과목 코드 (예: CS101, 유일)
    name = Column(String(100), nullable=False)                           # 과목 이름
    department = Column(String(100), nullable=False)                     # 개설 학과
    description = Column(Text)                                           # 과목 설명 (선택)
    is_active = Column(Boolean, nullable=False, default=True)            # 개설 여부
    attendance_enabled = Column(Boolean, nullable=False, default=False)  # 학생 자가 출석 허용 여부
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # ✅ 과목 삭제 시 배정/수강/출결 모두 함께 삭제
    teacher_assignments = relationship(
        "TeacherSubject", back_populates="subject", cascade="all, delete-orphan"
    )
    enrollments = relationship(
        "StudentSubject", back_populates="subject", cascade="all, delete-orphan"
    )
    attendance = relationship(
        "SubjectAttendance", back_populates="subject", cascade="all, delete-orphan"
    )
