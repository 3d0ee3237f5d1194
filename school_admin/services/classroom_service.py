from typing import List, Optional
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.errors import ValidationError, WrongModeError
from school_admin.core.logging import logger, log_function_call
from school_admin.models import (
    Classroom,
    ClassroomTeacher,
    School,
    Stream,
    StreamTeacher,
    SubjectAssignment
)
from school_admin.schemas.classroom.requests import (
    ClassroomCreateRequest,
    ClassroomUpdateRequest,
    StreamCreateRequest,
    StreamUpdateRequest
)
from school_admin.services.assignment_engine import AssignmentEngine, PromoteStreamClassTeacher
from school_admin.services.assignment_modes import STREAMS_DISABLED_MESSAGE, STREAMS_ENABLED_MESSAGE
from school_admin.services.base_service import BaseService


class ClassroomService(BaseService):
    """Classrooms and their streams, scoped to one school"""

    def __init__(self, db: AsyncSession, school: School):
        super().__init__(db, school)
        self.engine = AssignmentEngine(db, school)

    async def validate_classroom_name(self, name: str, exclude_id: Optional[int] = None) -> None:
        """Validate classroom name uniqueness within the school"""
        query = select(Classroom.id).where(
            Classroom.school_id == self.school_id,
            func.lower(Classroom.name) == name.strip().lower()
        )
        if exclude_id:
            query = query.where(Classroom.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ValidationError(
                f"Classroom '{name}' already exists in this school",
                errors={"name": ["The name has already been taken."]}
            )

    async def validate_stream_name(self, class_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        """Validate stream name uniqueness within a classroom"""
        query = select(Stream.id).where(
            Stream.class_id == class_id,
            func.lower(Stream.name) == name.strip().lower()
        )
        if exclude_id:
            query = query.where(Stream.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ValidationError(
                f"Stream '{name}' already exists in this classroom",
                errors={"name": ["The name has already been taken."]}
            )

    @log_function_call(logger)
    async def create_classroom(self, data: ClassroomCreateRequest) -> Classroom:
        """
        Create a classroom together with its streams or teachers.

        Everything in the payload is checked before the first row is
        written, and the whole thing commits or rolls back as one.
        """
        if data.streams and not self.has_streams:
            raise WrongModeError(STREAMS_DISABLED_MESSAGE)
        if data.teachers and self.has_streams:
            raise WrongModeError(STREAMS_ENABLED_MESSAGE)

        async with self.transaction():
            await self.validate_classroom_name(data.name)
            await self.engine.check_new_classroom_links(
                [(entry.teacher_id, entry.is_class_teacher) for entry in data.teachers]
            )
            await self.engine.check_new_stream_class_teachers(
                [stream.class_teacher_id for stream in data.streams]
            )

            classroom = Classroom(
                school_id=self.school_id,
                name=data.name.strip(),
                capacity=data.capacity
            )
            self.db.add(classroom)
            await self.db.flush()

            for entry in data.teachers:
                self.db.add(ClassroomTeacher(
                    classroom_id=classroom.id,
                    teacher_id=entry.teacher_id,
                    is_class_teacher=entry.is_class_teacher
                ))
            for stream in data.streams:
                self.db.add(Stream(
                    school_id=self.school_id,
                    class_id=classroom.id,
                    name=stream.name.strip(),
                    capacity=stream.capacity,
                    class_teacher_id=stream.class_teacher_id
                ))
            await self.db.flush()
            classroom_id = classroom.id

        logger.info(
            f"Created classroom {classroom_id} for school {self.school_id} with "
            f"{len(data.teachers)} teacher(s) and {len(data.streams)} stream(s)"
        )
        return await self.fetch_classroom(classroom_id)

    async def list_classrooms(self) -> List[Classroom]:
        result = await self.db.execute(
            select(Classroom)
            .where(Classroom.school_id == self.school_id)
            .order_by(Classroom.name)
        )
        return list(result.unique().scalars())

    async def get_classroom(self, classroom_id: int) -> Classroom:
        return await self.fetch_classroom(classroom_id)

    async def update_classroom(self, classroom_id: int, data: ClassroomUpdateRequest) -> Classroom:
        async with self.transaction():
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)
            if data.name is not None:
                await self.validate_classroom_name(data.name, exclude_id=classroom.id)
                classroom.name = data.name.strip()
            if data.capacity is not None:
                classroom.capacity = data.capacity
            await self.db.flush()
        logger.info(f"Updated classroom {classroom_id}")
        return await self.fetch_classroom(classroom_id)

    async def delete_classroom(self, classroom_id: int) -> None:
        """Delete a classroom with its streams, teacher links and subject assignments"""
        async with self.transaction():
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)
            stream_ids = select(Stream.id).where(Stream.class_id == classroom.id)

            await self.db.execute(
                delete(SubjectAssignment).where(
                    or_(
                        SubjectAssignment.classroom_id == classroom.id,
                        SubjectAssignment.stream_id.in_(stream_ids)
                    )
                )
            )
            await self.db.execute(delete(StreamTeacher).where(StreamTeacher.stream_id.in_(stream_ids)))
            await self.db.execute(delete(Stream).where(Stream.class_id == classroom.id))
            await self.db.execute(delete(ClassroomTeacher).where(ClassroomTeacher.classroom_id == classroom.id))
            await self.db.execute(delete(Classroom).where(Classroom.id == classroom.id))
        logger.info(f"Deleted classroom {classroom_id} of school {self.school_id}")

    # Streams

    @log_function_call(logger)
    async def add_stream(self, classroom_id: int, data: StreamCreateRequest) -> Stream:
        """Add a stream; its class teacher goes through the usual promotion rules"""
        self.engine.mode.require_streamed()
        async with self.transaction():
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)
            await self.validate_stream_name(classroom.id, data.name)

            stream = Stream(
                school_id=self.school_id,
                class_id=classroom.id,
                name=data.name.strip(),
                capacity=data.capacity
            )
            self.db.add(stream)
            await self.db.flush()
            stream_id = stream.id

            if data.class_teacher_id:
                await PromoteStreamClassTeacher(
                    stream_id=stream_id,
                    teacher_id=data.class_teacher_id,
                    field="class_teacher_id"
                ).apply(self.engine)

        logger.info(f"Added stream {stream_id} to classroom {classroom_id}")
        return await self.fetch_stream(stream_id)

    async def list_streams(self, classroom_id: int) -> List[Stream]:
        classroom = await self.get_owned(Classroom, classroom_id, "Classroom")
        result = await self.db.execute(
            select(Stream)
            .where(Stream.class_id == classroom.id)
            .order_by(Stream.name)
            .execution_options(populate_existing=True)
        )
        return list(result.unique().scalars())

    async def get_stream(self, stream_id: int) -> Stream:
        return await self.fetch_stream(stream_id)

    async def update_stream(self, stream_id: int, data: StreamUpdateRequest) -> Stream:
        async with self.transaction():
            stream = await self.get_owned(Stream, stream_id, "Stream", lock=True)
            if data.name is not None:
                await self.validate_stream_name(stream.class_id, data.name, exclude_id=stream.id)
                stream.name = data.name.strip()
            if data.capacity is not None:
                stream.capacity = data.capacity
            await self.db.flush()
        logger.info(f"Updated stream {stream_id}")
        return await self.fetch_stream(stream_id)

    async def delete_stream(self, stream_id: int) -> None:
        async with self.transaction():
            stream = await self.get_owned(Stream, stream_id, "Stream", lock=True)
            await self.db.execute(delete(SubjectAssignment).where(SubjectAssignment.stream_id == stream.id))
            await self.db.execute(delete(StreamTeacher).where(StreamTeacher.stream_id == stream.id))
            await self.db.execute(delete(Stream).where(Stream.id == stream.id))
        logger.info(f"Deleted stream {stream_id} of school {self.school_id}")
