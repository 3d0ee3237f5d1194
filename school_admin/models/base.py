# base.py
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantModel(Base):
    """
    A base mixin for multi-tenant architecture.
    This ensures models have a school_id foreign key.
    """
    __abstract__ = True

    # Simple foreign key to schools - relationships is defined in child classes
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
