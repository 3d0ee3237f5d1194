# teacher.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, TenantModel, utcnow


class Teacher(TenantModel):
    """
    Teaching profile of a user.

    ``max_classes`` caps how many classrooms (plain schools) or streams
    (streamed schools) the teacher can be attached to. The current load is
    never stored here; it is counted from the link tables when needed.
    """
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, unique=True)
    combination_id = Column(Integer, ForeignKey('teacher_combinations.id', ondelete="SET NULL"), nullable=True)

    employee_number = Column(String(50), nullable=True)
    tsc_number = Column(String(50), nullable=True)
    qualification = Column(String(255), nullable=True)
    curriculum_specialization = Column(String(10), nullable=False, default="Both")
    teaching_levels = Column(JSON, nullable=True)
    teaching_pathways = Column(JSON, nullable=True)

    max_classes = Column(Integer, nullable=False, default=10)
    max_subjects = Column(Integer, nullable=False, default=8)
    max_weekly_lessons = Column(Integer, nullable=False, default=40)
    min_weekly_lessons = Column(Integer, nullable=False, default=20)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="teacher_profile", lazy="joined", innerjoin=True)
    school = relationship("School", back_populates="teachers")
    combination = relationship("TeacherCombination")
    qualified_subjects = relationship(
        "TeacherSubject",
        back_populates="teacher",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    @property
    def name(self):
        return self.user.name if self.user else None

    @property
    def email(self):
        return self.user.email if self.user else None

    def __repr__(self):
        return f"<Teacher(id={self.id}, school_id={self.school_id}, max_classes={self.max_classes})>"


class TeacherSubject(Base):
    """Subjects a teacher is qualified to teach"""
    __tablename__ = "teacher_subjects"
    __table_args__ = (
        UniqueConstraint("teacher_id", "subject_id", name="uq_teacher_subject"),
    )

    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary_subject = Column(Boolean, default=False, nullable=False)
    years_experience = Column(Integer, nullable=True)
    can_teach_levels = Column(JSON, nullable=True)

    teacher = relationship("Teacher", back_populates="qualified_subjects")
    subject = relationship("Subject", lazy="joined")
