from sqlalchemy import Column, Integer, String, Boolean, JSON
from .base import TenantModel


class Subject(TenantModel):
    """Subject catalogue entry. Maintained by the curriculum tooling; read-only here."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    curriculum_type = Column(String(10), nullable=False)   # CBC | 8-4-4
    level = Column(String(50), nullable=True)               # EducationalLevel value
    grade_levels = Column(JSON, nullable=True)
    pathway = Column(String(50), nullable=True)
    category = Column(String(100), nullable=True)
    is_core = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Subject(id={self.id}, name={self.name}, curriculum_type={self.curriculum_type})>"
