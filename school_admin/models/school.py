from sqlalchemy import Column, String, JSON, Integer, DateTime, Boolean
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class School(Base):
    """
    Root of the tenant hierarchy.

    The curriculum fields and level flags decide which levels, pathways and
    curricula are legal for the school's subjects and academic years, and
    ``has_streams`` decides whether teachers are attached to classrooms or
    to streams.
    """
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True)

    # Basic information
    name = Column(String(255), nullable=False, unique=True)
    code = Column(String(50), nullable=True, unique=True)
    email = Column(String(255), nullable=True)

    # Curriculum configuration
    has_streams = Column(Boolean, default=False, nullable=False)
    primary_curriculum = Column(String(10), nullable=True)    # CBC | 8-4-4 | Both
    secondary_curriculum = Column(String(10), nullable=True)
    has_pre_primary = Column(Boolean, default=False, nullable=False)
    has_primary = Column(Boolean, default=False, nullable=False)
    has_junior_secondary = Column(Boolean, default=False, nullable=False)
    has_senior_secondary = Column(Boolean, default=False, nullable=False)
    has_secondary = Column(Boolean, default=False, nullable=False)
    senior_secondary_pathways = Column(JSON, nullable=True)
    grade_levels = Column(JSON, nullable=True)

    # Activity tracking
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    users = relationship("User", back_populates="school", passive_deletes=True)
    teachers = relationship("Teacher", back_populates="school", passive_deletes=True)
    classrooms = relationship("Classroom", back_populates="school", passive_deletes=True)

    def __repr__(self):
        return f"<School(id={self.id}, name={self.name}, has_streams={self.has_streams})>"
