from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database.db import Base


class SubjectAttendance(Base):
    __tablename__ = "subject_attendance"  # 과목별 출결 기록 테이블
    __table_args__ = (
        # 과목 + 학생 + 날짜 당 기록은 하나뿐
        UniqueConstraint("subject_id", "student_id", "date", name="uq_attendance_subject_student_date"),
    )

    id = Column(Integer, primary_key=True, index=True)                   # 출결 고유 ID (Primary Key)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)                      # 수업 날짜
    status = Column(String(10), nullable=False)                          # present / absent / late
    taken_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))  # 기록한 계정
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    subject = relationship("Subject", back_populates="attendance")
    student = relationship("User", back_populates="attendance", foreign_keys=[student_id])
    taken_by = relationship("User", back_populates="taken_attendance", foreign_keys=[taken_by_id])
