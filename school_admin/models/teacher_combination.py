from sqlalchemy import Column, Integer, String, Boolean, JSON, Text
from .base import Base


class TeacherCombination(Base):
    """
    A B.Ed subject combination, e.g. "Mathematics/Physics".

    Shared reference data, not owned by a school. Primary subjects are the
    two subjects of the degree; derived subjects are the ones the
    combination also qualifies the holder for.
    """
    __tablename__ = "teacher_combinations"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    degree_title = Column(String(255), nullable=True)
    primary_subjects = Column(JSON, nullable=False, default=list)
    derived_subjects = Column(JSON, nullable=False, default=list)
    eligible_levels = Column(JSON, nullable=False, default=list)
    eligible_pathways = Column(JSON, nullable=False, default=list)
    curriculum_types = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def all_subjects(self):
        return list(self.primary_subjects or []) + list(self.derived_subjects or [])

    def covers_subject(self, subject_name: str) -> bool:
        wanted = subject_name.strip().lower()
        return any(name.strip().lower() == wanted for name in self.all_subjects())

    def covers_level(self, level: str) -> bool:
        return level in (self.eligible_levels or [])

    def can_teach(self, subject_name: str, level: str) -> bool:
        return self.covers_subject(subject_name) and self.covers_level(level)

    def __repr__(self):
        return f"<TeacherCombination(code={self.code}, name={self.name})>"
