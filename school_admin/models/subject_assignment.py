from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import TenantModel, utcnow


class SubjectAssignment(TenantModel):
    """
    A teaching duty: teacher X teaches subject Y to a stream (streamed
    schools) or a classroom (plain schools) during an academic year.
    Exactly one of ``stream_id`` / ``classroom_id`` is set.
    """
    __tablename__ = "subject_assignments"
    __table_args__ = (
        UniqueConstraint(
            "teacher_id", "subject_id", "academic_year_id", "stream_id",
            name="uq_subject_assignment_stream"
        ),
        UniqueConstraint(
            "teacher_id", "subject_id", "academic_year_id", "classroom_id",
            name="uq_subject_assignment_classroom"
        ),
    )

    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True)
    stream_id = Column(Integer, ForeignKey("streams.id", ondelete="CASCADE"), nullable=True, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=True, index=True)
    weekly_periods = Column(Integer, nullable=False, default=5)
    assignment_type = Column(String(30), nullable=False, default="main_teacher")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    teacher = relationship("Teacher", lazy="joined", innerjoin=True)
    subject = relationship("Subject", lazy="joined", innerjoin=True)
    academic_year = relationship("AcademicYear", lazy="joined", innerjoin=True)
    stream = relationship("Stream", lazy="joined")
    classroom = relationship("Classroom", lazy="joined")

    def __repr__(self):
        return (
            f"<SubjectAssignment(teacher_id={self.teacher_id}, subject_id={self.subject_id}, "
            f"academic_year_id={self.academic_year_id})>"
        )
