from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from .base import Base, TenantModel, utcnow


class Classroom(TenantModel):
    __tablename__ = "classrooms"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_classroom_school_name"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)  # e.g., "Grade 7"
    capacity = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    school = relationship("School", back_populates="classrooms")
    streams = relationship(
        "Stream",
        back_populates="classroom",
        order_by="Stream.id",
        lazy="selectin",
        passive_deletes=True
    )
    teacher_links = relationship(
        "ClassroomTeacher",
        back_populates="classroom",
        order_by="ClassroomTeacher.teacher_id",
        lazy="selectin",
        passive_deletes=True
    )

    @property
    def class_teacher_link(self):
        return next((link for link in self.teacher_links if link.is_class_teacher), None)

    @property
    def class_teacher(self):
        link = self.class_teacher_link
        return link.teacher if link else None

    @property
    def teacher_count(self) -> int:
        return len(self.teacher_links)

    def __repr__(self):
        name = self.__dict__.get('name', '<detached>')
        school_id = self.__dict__.get('school_id', '<detached>')
        return f"<Classroom(name={name}, school_id={school_id})>"


class ClassroomTeacher(Base):
    """
    Plain-mode link between a teacher and a classroom.

    The two partial unique indexes back the class-teacher rules: one class
    teacher per classroom, and one classroom per class teacher.
    """
    __tablename__ = "classroom_teacher"
    __table_args__ = (
        UniqueConstraint("classroom_id", "teacher_id", name="uq_classroom_teacher_pair"),
        Index(
            "uq_classroom_single_class_teacher",
            "classroom_id",
            unique=True,
            sqlite_where=text("is_class_teacher = 1"),
            postgresql_where=text("is_class_teacher = true"),
        ),
        Index(
            "uq_teacher_single_class_teacher",
            "teacher_id",
            unique=True,
            sqlite_where=text("is_class_teacher = 1"),
            postgresql_where=text("is_class_teacher = true"),
        ),
    )

    id = Column(Integer, primary_key=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    is_class_teacher = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    classroom = relationship("Classroom", back_populates="teacher_links")
    teacher = relationship("Teacher", lazy="joined", innerjoin=True)

    def __repr__(self):
        return (
            f"<ClassroomTeacher(classroom_id={self.classroom_id}, teacher_id={self.teacher_id}, "
            f"is_class_teacher={self.is_class_teacher})>"
        )
