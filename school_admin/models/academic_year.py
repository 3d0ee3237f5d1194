from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Index, UniqueConstraint, text
from .base import TenantModel, utcnow


class AcademicYear(TenantModel):
    """
    One term of a school year, tagged with the curriculum it runs under.

    The partial unique index keeps at most one active term per school even
    when two activations race.
    """
    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("school_id", "year", "term", "curriculum_type", name="uq_academic_year_term"),
        Index(
            "uq_academic_year_single_active",
            "school_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active = true"),
        ),
    )

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    term = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    curriculum_type = Column(String(10), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<AcademicYear(year={self.year}, term={self.term}, is_active={self.is_active})>"
