from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, TenantModel, utcnow


class Stream(TenantModel):
    __tablename__ = "streams"
    __table_args__ = (
        UniqueConstraint("class_id", "name", name="uq_stream_class_name"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)  # e.g., "Blue"
    class_id = Column(Integer, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True)
    capacity = Column(Integer, nullable=True)
    # One stream per class teacher school-wide
    class_teacher_id = Column(
        Integer,
        ForeignKey("teachers.id", ondelete="SET NULL"),
        nullable=True,
        unique=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    classroom = relationship("Classroom", back_populates="streams")
    class_teacher = relationship("Teacher", lazy="joined")
    teacher_links = relationship(
        "StreamTeacher",
        back_populates="stream",
        order_by="StreamTeacher.teacher_id",
        lazy="selectin",
        passive_deletes=True
    )

    def __repr__(self):
        return f"<Stream(name={self.name}, class_id={self.class_id}, school_id={self.school_id})>"


class StreamTeacher(Base):
    """Regular (non class-teacher) link between a teacher and a stream"""
    __tablename__ = "stream_teacher"
    __table_args__ = (
        UniqueConstraint("stream_id", "teacher_id", name="uq_stream_teacher_pair"),
    )

    id = Column(Integer, primary_key=True)
    stream_id = Column(Integer, ForeignKey("streams.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    stream = relationship("Stream", back_populates="teacher_links")
    teacher = relationship("Teacher", lazy="joined", innerjoin=True)
