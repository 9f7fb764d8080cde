from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from database.db import Base


class User(Base):
    __tablename__ = "users"  # 계정 테이블 (관리자/교사/학생 공용)

    id = Column(Integer, primary_key=True, index=True)              # 계정 고유 ID (PK)
    username = Column(String(50), unique=True, nullable=False)      # 로그인 아이디 (유일)
    password = Column(String(255), nullable=False)                  # 해시된 비밀번호 (응답에 절대 포함 X)
    name = Column(String(100), nullable=False)                      # 표시 이름
    email = Column(String(120), unique=True)                        # 이메일 (유일, 선택)
    role = Column(String(20), nullable=False, index=True)           # SUPER_ADMIN / ADMIN / TEACHER / STUDENT
    student_id = Column(String(50))                                 # 학번 (STUDENT 전용)
    department = Column(String(100))                                # 학과 (STUDENT, TEACHER)
    semester = Column(String(50))                                   # 학기 (STUDENT 전용)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # ==========================================================
    # [관계 설정]
    # ==========================================================

    # ✅ 교사로서 배정된 과목들 (계정 삭제 시 함께 삭제)
    teacher_assignments = relationship(
        "TeacherSubject", back_populates="teacher", cascade="all, delete-orphan"
    )

    # ✅ 학생으로서 수강 중인 과목들 (계정 삭제 시 함께 삭제)
    enrollments = relationship(
        "StudentSubject", back_populates="student", cascade="all, delete-orphan"
    )

    # ✅ 본인의 출결 기록 (계정 삭제 시 함께 삭제)
    attendance = relationship(
        "SubjectAttendance",
        back_populates="student",
        foreign_keys="SubjectAttendance.student_id",
        cascade="all, delete-orphan",
    )

    # ✅ 본인이 기록한 출결 (계정 삭제 시 taken_by_id 만 NULL 처리)
    taken_attendance = relationship(
        "SubjectAttendance",
        back_populates="taken_by",
        foreign_keys="SubjectAttendance.taken_by_id",
    )
