"""
How a school attaches teachers: to classrooms (plain) or to streams.

The mode is resolved once per school and handed to the assignment engine,
so both code paths answer the same questions the same way:

* how many classes does a teacher currently hold (counted live)
* where, if anywhere, is the teacher class teacher
"""
from dataclasses import dataclass
from typing import Optional, Union
from sqlalchemy import func, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.errors import WrongModeError
from school_admin.models.classroom import Classroom, ClassroomTeacher
from school_admin.models.school import School
from school_admin.models.stream import Stream, StreamTeacher

STREAMS_ENABLED_MESSAGE = "Your school has streams enabled. Assign teachers to streams instead."
STREAMS_DISABLED_MESSAGE = "Your school does not have streams enabled."


@dataclass(frozen=True)
class ClassTeacherHolding:
    """Where a teacher is class teacher"""
    classroom_id: int
    name: str
    stream_id: Optional[int] = None


@dataclass(frozen=True)
class PlainMode:
    name: str = "plain"

    def require_plain(self) -> None:
        return None

    def require_streamed(self) -> None:
        raise WrongModeError(STREAMS_DISABLED_MESSAGE)

    async def count_load(self, db: AsyncSession, teacher_id: int) -> int:
        # Every classroom link counts, promoted or not
        result = await db.execute(
            select(func.count(ClassroomTeacher.id)).where(ClassroomTeacher.teacher_id == teacher_id)
        )
        return result.scalar_one()

    async def class_teacher_holding(
        self,
        db: AsyncSession,
        teacher_id: int,
        exclude_id: Optional[int] = None
    ) -> Optional[ClassTeacherHolding]:
        query = (
            select(Classroom.id, Classroom.name)
            .join(ClassroomTeacher, ClassroomTeacher.classroom_id == Classroom.id)
            .where(
                ClassroomTeacher.teacher_id == teacher_id,
                ClassroomTeacher.is_class_teacher.is_(True)
            )
        )
        if exclude_id is not None:
            query = query.where(Classroom.id != exclude_id)
        row = (await db.execute(query.limit(1))).first()
        if row is None:
            return None
        return ClassTeacherHolding(classroom_id=row.id, name=row.name)


@dataclass(frozen=True)
class StreamedMode:
    name: str = "streamed"

    def require_plain(self) -> None:
        raise WrongModeError(STREAMS_ENABLED_MESSAGE)

    def require_streamed(self) -> None:
        return None

    async def count_load(self, db: AsyncSession, teacher_id: int) -> int:
        # A stream counts once whether the teacher is linked, class teacher, or both
        linked = select(StreamTeacher.stream_id.label("stream_id")).where(
            StreamTeacher.teacher_id == teacher_id
        )
        headed = select(Stream.id.label("stream_id")).where(Stream.class_teacher_id == teacher_id)
        streams = union(linked, headed).subquery()
        result = await db.execute(select(func.count()).select_from(streams))
        return result.scalar_one()

    async def class_teacher_holding(
        self,
        db: AsyncSession,
        teacher_id: int,
        exclude_id: Optional[int] = None
    ) -> Optional[ClassTeacherHolding]:
        query = (
            select(Stream.id, Stream.name, Classroom.id.label("classroom_id"), Classroom.name.label("classroom_name"))
            .join(Classroom, Classroom.id == Stream.class_id)
            .where(Stream.class_teacher_id == teacher_id)
        )
        if exclude_id is not None:
            query = query.where(Stream.id != exclude_id)
        row = (await db.execute(query.limit(1))).first()
        if row is None:
            return None
        return ClassTeacherHolding(
            classroom_id=row.classroom_id,
            name=f"{row.classroom_name} {row.name}",
            stream_id=row.id
        )


AssignmentMode = Union[PlainMode, StreamedMode]


def resolve_mode(school: School) -> AssignmentMode:
    return StreamedMode() if school.has_streams else PlainMode()
