from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database.db import Base


class TeacherSubject(Base):
    __tablename__ = "teacher_subjects"  # 교사-과목 배정 (N:M)
    __table_args__ = (
        UniqueConstraint("teacher_id", "subject_id", name="uq_teacher_subject"),
    )

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_at = Column(DateTime, nullable=False, server_default=func.now())

    teacher = relationship("User", back_populates="teacher_assignments")
    subject = relationship("Subject", back_populates="teacher_assignments")


class StudentSubject(Base):
    __tablename__ = "student_subjects"  # 학생-과목 수강 (N:M)
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", name="uq_student_subject"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    enrolled_at = Column(DateTime, nullable=False, server_default=func.now())

    student = relationship("User", back_populates="enrollments")
    subject = relationship("Subject", back_populates="enrollments")
