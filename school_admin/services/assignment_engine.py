"""
Teacher to classroom / stream assignment.

Rules kept by every operation here, whatever the entry point:

* a classroom has at most one class teacher
* a teacher is class teacher of at most one classroom (or stream)
* a teacher never holds more classes than ``max_classes``

Every write locks the teacher rows first (ascending id), then the classroom
or stream row, counts the current load from the link tables and only then
writes, all inside one transaction. Batch operations validate every item
before the first write.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from school_admin.core.errors import (
    AlreadyClassTeacherElsewhereError,
    CapacityExceededError,
    ClassroomHasClassTeacherError,
    CrossTenantError,
    DuplicateAssignmentError,
    NotFoundError
)
from school_admin.core.logging import logger, log_function_call
from school_admin.models.classroom import Classroom, ClassroomTeacher
from school_admin.models.school import School
from school_admin.models.stream import Stream, StreamTeacher
from school_admin.models.teacher import Teacher
from school_admin.services.assignment_modes import AssignmentMode, resolve_mode
from school_admin.services.base_service import BaseService


def capacity_message(current: int, max_classes: int) -> str:
    return (
        f"Teacher is already assigned to {current} classes, "
        f"which is the maximum allowed ({max_classes})."
    )


@dataclass(frozen=True)
class PromoteClassTeacher:
    """Make a teacher the class teacher of a classroom, demoting the holder"""
    classroom_id: int
    teacher_id: int

    async def apply(self, engine: "AssignmentEngine") -> None:
        teacher = await engine.lock_teacher(self.teacher_id)
        classroom = await engine.get_owned(Classroom, self.classroom_id, "Classroom", lock=True)

        link = await engine.get_classroom_link(classroom.id, teacher.id)
        if link is not None and link.is_class_teacher:
            return

        await engine.ensure_not_class_teacher_elsewhere(teacher, exclude_id=classroom.id)
        if link is None:
            await engine.ensure_capacity(teacher)

        # Demote then promote inside the caller's transaction; nobody sees
        # the intermediate state
        await engine.db.execute(
            update(ClassroomTeacher)
            .where(
                ClassroomTeacher.classroom_id == classroom.id,
                ClassroomTeacher.is_class_teacher.is_(True)
            )
            .values(is_class_teacher=False)
        )
        if link is None:
            engine.db.add(ClassroomTeacher(
                classroom_id=classroom.id,
                teacher_id=teacher.id,
                is_class_teacher=True
            ))
        else:
            await engine.db.execute(
                update(ClassroomTeacher)
                .where(ClassroomTeacher.id == link.id)
                .values(is_class_teacher=True)
            )
        await engine.db.flush()
        logger.info(f"Teacher {teacher.id} is now class teacher of classroom {classroom.id}")


@dataclass(frozen=True)
class PromoteStreamClassTeacher:
    """Make a teacher the class teacher of a stream, replacing the holder"""
    stream_id: int
    teacher_id: int
    field: str = "teacher_id"

    async def apply(self, engine: "AssignmentEngine") -> None:
        teacher = await engine.lock_teacher(self.teacher_id, field=self.field)
        stream = await engine.get_owned(Stream, self.stream_id, "Stream", lock=True)

        if stream.class_teacher_id == teacher.id:
            return

        await engine.ensure_not_class_teacher_elsewhere(teacher, exclude_id=stream.id, field=self.field)
        if not await engine.is_linked_to_stream(stream.id, teacher.id):
            await engine.ensure_capacity(teacher, field=self.field)

        await engine.db.execute(
            update(Stream)
            .where(Stream.id == stream.id)
            .values(class_teacher_id=teacher.id)
        )
        await engine.db.flush()
        logger.info(f"Teacher {teacher.id} is now class teacher of stream {stream.id}")


class AssignmentEngine(BaseService):
    def __init__(self, db: AsyncSession, school: School, mode: Optional[AssignmentMode] = None):
        super().__init__(db, school)
        self.mode = mode or resolve_mode(school)

    async def execute(self, command):
        async with self.transaction():
            return await command.apply(self)

    # ---- lookups and checks -------------------------------------------------

    async def lock_teacher(self, teacher_id: int, field: str = "teacher_id") -> Teacher:
        return await self.get_owned(Teacher, teacher_id, "Teacher", field=field, lock=True)

    async def lock_teachers(self, teacher_ids: Sequence[int], field: str = "teacher_ids") -> Dict[int, Teacher]:
        ids = sorted(set(teacher_ids))
        result = await self.db.execute(
            select(Teacher)
            .where(Teacher.id.in_(ids))
            .order_by(Teacher.id)
            .with_for_update(of=Teacher)
            .execution_options(populate_existing=True)
        )
        teachers = {teacher.id: teacher for teacher in result.unique().scalars()}

        missing = [tid for tid in ids if tid not in teachers]
        if missing:
            raise NotFoundError(
                f"Teacher(s) not found: {', '.join(str(tid) for tid in missing)}",
                details={"missing_ids": missing}
            )
        foreign = [tid for tid, teacher in teachers.items() if teacher.school_id != self.school_id]
        if foreign:
            raise CrossTenantError("All teachers must belong to your school", field=field)
        return teachers

    async def load_classrooms(self, classroom_ids: Sequence[int], field: str = "classroom_ids") -> List[Classroom]:
        result = await self.db.execute(select(Classroom).where(Classroom.id.in_(list(classroom_ids))))
        found = {classroom.id: classroom for classroom in result.unique().scalars()}

        missing = [cid for cid in classroom_ids if cid not in found]
        if missing:
            raise NotFoundError(
                f"Classroom(s) not found: {', '.join(str(cid) for cid in missing)}",
                details={"missing_ids": missing}
            )
        if any(classroom.school_id != self.school_id for classroom in found.values()):
            raise CrossTenantError("All classrooms must belong to your school", field=field)
        return [found[cid] for cid in classroom_ids]

    async def get_classroom_link(self, classroom_id: int, teacher_id: int) -> Optional[ClassroomTeacher]:
        result = await self.db.execute(
            select(ClassroomTeacher)
            .where(
                ClassroomTeacher.classroom_id == classroom_id,
                ClassroomTeacher.teacher_id == teacher_id
            )
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get_class_teacher_link(self, classroom_id: int) -> Optional[ClassroomTeacher]:
        result = await self.db.execute(
            select(ClassroomTeacher)
            .where(
                ClassroomTeacher.classroom_id == classroom_id,
                ClassroomTeacher.is_class_teacher.is_(True)
            )
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def is_linked_to_stream(self, stream_id: int, teacher_id: int) -> bool:
        result = await self.db.execute(
            select(StreamTeacher.id).where(
                StreamTeacher.stream_id == stream_id,
                StreamTeacher.teacher_id == teacher_id
            )
        )
        return result.first() is not None

    async def current_load(self, teacher_id: int) -> int:
        return await self.mode.count_load(self.db, teacher_id)

    async def ensure_capacity(self, teacher: Teacher, needed: int = 1, field: str = "teacher_id") -> int:
        current = await self.current_load(teacher.id)
        if current + needed > teacher.max_classes:
            logger.warning(
                f"Capacity reached for teacher {teacher.id}: {current}/{teacher.max_classes}"
            )
            raise CapacityExceededError(
                capacity_message(current, teacher.max_classes),
                field=field,
                details={
                    "teacher_id": teacher.id,
                    "current_class_count": current,
                    "max_classes": teacher.max_classes
                }
            )
        return current

    async def ensure_not_class_teacher_elsewhere(
        self,
        teacher: Teacher,
        exclude_id: Optional[int] = None,
        field: str = "teacher_id"
    ) -> None:
        holding = await self.mode.class_teacher_holding(self.db, teacher.id, exclude_id)
        if holding is None:
            return
        existing = {"id": holding.classroom_id, "name": holding.name}
        if holding.stream_id is not None:
            existing["stream_id"] = holding.stream_id
        raise AlreadyClassTeacherElsewhereError(
            f"{teacher.name} is already the class teacher of {holding.name}. "
            "A teacher can only be class teacher of one class.",
            field=field,
            details={"existing_classroom": existing}
        )

    async def _check_classroom_promotion(self, teacher: Teacher, classroom: Classroom) -> None:
        await self.ensure_not_class_teacher_elsewhere(teacher, exclude_id=classroom.id)
        holder = await self.get_class_teacher_link(classroom.id)
        if holder is not None and holder.teacher_id != teacher.id:
            raise ClassroomHasClassTeacherError(
                f"{classroom.name} already has a class teacher ({holder.teacher.name}). "
                "Use the class teacher endpoint to replace them.",
                details={"class_teacher_id": holder.teacher_id}
            )

    async def check_new_classroom_links(self, entries: Iterable[tuple], field_prefix: str = "teachers") -> None:
        """
        Validate ``(teacher_id, is_class_teacher)`` pairs for a classroom that
        does not exist yet. Nothing is written.
        """
        entries = list(entries)
        if not entries:
            return
        teachers = await self.lock_teachers([tid for tid, _ in entries], field=field_prefix)
        for index, (teacher_id, is_class_teacher) in enumerate(entries):
            field = f"{field_prefix}.{index}.teacher_id"
            teacher = teachers[teacher_id]
            if is_class_teacher:
                await self.ensure_not_class_teacher_elsewhere(teacher, field=field)
            await self.ensure_capacity(teacher, field=field)

    async def load_link(self, classroom_id: int, teacher_id: int) -> ClassroomTeacher:
        result = await self.db.execute(
            select(ClassroomTeacher)
            .options(joinedload(ClassroomTeacher.classroom))
            .where(
                ClassroomTeacher.classroom_id == classroom_id,
                ClassroomTeacher.teacher_id == teacher_id
            )
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()

    # ---- plain mode ---------------------------------------------------------

    @log_function_call(logger)
    async def assign_teacher_to_classroom(
        self,
        classroom_id: int,
        teacher_id: int,
        is_class_teacher: bool = False
    ) -> ClassroomTeacher:
        """
        Attach a teacher to a classroom, optionally as its class teacher.

        An existing link with the same role is a duplicate; an existing link
        with the other role is promoted or demoted in place and does not use
        another class slot.
        """
        self.mode.require_plain()
        async with self.transaction():
            teacher = await self.lock_teacher(teacher_id)
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)
            link = await self.get_classroom_link(classroom.id, teacher.id)

            if link is not None:
                if link.is_class_teacher == is_class_teacher:
                    raise DuplicateAssignmentError(
                        f"{teacher.name} is already assigned to {classroom.name}."
                    )
                if is_class_teacher:
                    await self._check_classroom_promotion(teacher, classroom)
                await self.db.execute(
                    update(ClassroomTeacher)
                    .where(ClassroomTeacher.id == link.id)
                    .values(is_class_teacher=is_class_teacher)
                )
            else:
                if is_class_teacher:
                    await self._check_classroom_promotion(teacher, classroom)
                await self.ensure_capacity(teacher)
                self.db.add(ClassroomTeacher(
                    classroom_id=classroom.id,
                    teacher_id=teacher.id,
                    is_class_teacher=is_class_teacher
                ))
            await self.db.flush()

        logger.info(
            f"Assigned teacher {teacher_id} to classroom {classroom_id} "
            f"(class teacher: {is_class_teacher})"
        )
        return await self.load_link(classroom_id, teacher_id)

    async def remove_teacher_from_classroom(self, classroom_id: int, teacher_id: int) -> None:
        self.mode.require_plain()
        async with self.transaction():
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)
            teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
            result = await self.db.execute(
                delete(ClassroomTeacher).where(
                    ClassroomTeacher.classroom_id == classroom.id,
                    ClassroomTeacher.teacher_id == teacher.id
                )
            )
            if not result.rowcount:
                raise NotFoundError(f"{teacher.name} is not assigned to {classroom.name}")
        logger.info(f"Removed teacher {teacher_id} from classroom {classroom_id}")

    @log_function_call(logger)
    async def assign_teachers_to_classroom(self, classroom_id: int, teacher_ids: List[int]) -> dict:
        """Attach several teachers to one classroom; already linked ones are skipped"""
        self.mode.require_plain()
        async with self.transaction():
            teachers = await self.lock_teachers(teacher_ids)
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)

            result = await self.db.execute(
                select(ClassroomTeacher.teacher_id).where(
                    ClassroomTeacher.classroom_id == classroom.id,
                    ClassroomTeacher.teacher_id.in_(teacher_ids)
                )
            )
            linked = set(result.scalars())

            errors: Dict[str, List[str]] = {}
            for index, teacher_id in enumerate(teacher_ids):
                if teacher_id in linked:
                    continue
                teacher = teachers[teacher_id]
                current = await self.current_load(teacher_id)
                if current + 1 > teacher.max_classes:
                    errors[f"teacher_ids.{index}"] = [
                        f"{teacher.name}: " + capacity_message(current, teacher.max_classes)
                    ]
            if errors:
                raise CapacityExceededError(
                    "One or more teachers have no free class slots. No teachers were assigned.",
                    errors=errors
                )

            new_ids = [tid for tid in teacher_ids if tid not in linked]
            for teacher_id in new_ids:
                self.db.add(ClassroomTeacher(classroom_id=classroom.id, teacher_id=teacher_id))
            await self.db.flush()

        logger.info(f"Assigned {len(new_ids)} teacher(s) to classroom {classroom_id}")
        return {
            "message": f"{len(new_ids)} teacher(s) assigned to {classroom.name}",
            "assigned": [teachers[tid] for tid in new_ids],
            "already_assigned": [teachers[tid] for tid in teacher_ids if tid in linked],
            "total_requested": len(teacher_ids),
            "newly_assigned": len(new_ids),
            "skipped": len(teacher_ids) - len(new_ids),
        }

    async def assign_class_teacher(self, classroom_id: int, teacher_id: int) -> Classroom:
        self.mode.require_plain()
        await self.execute(PromoteClassTeacher(classroom_id=classroom_id, teacher_id=teacher_id))
        return await self.fetch_classroom(classroom_id)

    async def remove_class_teacher(self, classroom_id: int) -> bool:
        """Demote the classroom's class teacher, if any. Returns whether one was removed."""
        self.mode.require_plain()
        async with self.transaction():
            classroom = await self.get_owned(Classroom, classroom_id, "Classroom", lock=True)
            result = await self.db.execute(
                update(ClassroomTeacher)
                .where(
                    ClassroomTeacher.classroom_id == classroom.id,
                    ClassroomTeacher.is_class_teacher.is_(True)
                )
                .values(is_class_teacher=False)
            )
            removed = bool(result.rowcount)
        if removed:
            logger.info(f"Removed class teacher from classroom {classroom_id}")
        return removed

    @log_function_call(logger)
    async def assign_teacher_to_many_classrooms(self, teacher_id: int, classroom_ids: List[int]) -> dict:
        """
        Attach one teacher to several classrooms.

        Classrooms the teacher already has are left out before the free
        slots are compared, so they never count against capacity. If the
        rest does not fit, nothing is written.
        """
        self.mode.require_plain()
        async with self.transaction():
            teacher = await self.lock_teacher(teacher_id)
            classrooms = await self.load_classrooms(classroom_ids)

            result = await self.db.execute(
                select(ClassroomTeacher.classroom_id).where(
                    ClassroomTeacher.teacher_id == teacher.id,
                    ClassroomTeacher.classroom_id.in_(classroom_ids)
                )
            )
            linked = set(result.scalars())
            new = [classroom for classroom in classrooms if classroom.id not in linked]
            already = [classroom for classroom in classrooms if classroom.id in linked]

            current = await self.current_load(teacher.id)
            available = max(teacher.max_classes - current, 0)
            if len(new) > available:
                raise CapacityExceededError(
                    f"Teacher can only be assigned to {available} more class(es), "
                    f"but {len(new)} were requested.",
                    field="classroom_ids",
                    details={
                        "available_slots": available,
                        "requested": len(new),
                        "current_class_count": current,
                        "max_classes": teacher.max_classes
                    }
                )

            for classroom in new:
                self.db.add(ClassroomTeacher(classroom_id=classroom.id, teacher_id=teacher.id))
            await self.db.flush()

        logger.info(f"Assigned teacher {teacher_id} to {len(new)} classroom(s), skipped {len(already)}")
        return {
            "message": f"Teacher assigned to {len(new)} classroom(s)",
            "teacher_id": teacher.id,
            "assigned_to": new,
            "already_assigned": already,
            "total_requested": len(classroom_ids),
            "newly_assigned": len(new),
            "skipped": len(already),
            "max_classes": teacher.max_classes,
            "current_class_count": current + len(new),
        }

    async def available_classrooms(self, teacher_id: int) -> dict:
        self.mode.require_plain()
        teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
        linked = select(ClassroomTeacher.classroom_id).where(ClassroomTeacher.teacher_id == teacher.id)
        result = await self.db.execute(
            select(Classroom)
            .where(Classroom.school_id == self.school_id, Classroom.id.not_in(linked))
            .order_by(Classroom.name)
        )
        current = await self.current_load(teacher.id)
        return {
            "teacher_id": teacher.id,
            "current_class_count": current,
            "max_classes": teacher.max_classes,
            "available_slots": max(teacher.max_classes - current, 0),
            "classrooms": list(result.unique().scalars()),
        }

    async def teacher_classes(self, teacher_id: int) -> dict:
        """Classrooms (plain schools) or streams (streamed schools) the teacher is attached to"""
        teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
        if self.mode.name == "streamed":
            member = select(StreamTeacher.stream_id).where(StreamTeacher.teacher_id == teacher.id)
            result = await self.db.execute(
                select(Stream)
                .options(joinedload(Stream.classroom))
                .where(
                    Stream.school_id == self.school_id,
                    (Stream.id.in_(member)) | (Stream.class_teacher_id == teacher.id)
                )
                .order_by(Stream.class_id, Stream.name)
            )
            classes = [
                {
                    "classroom": stream.classroom,
                    "stream": stream,
                    "is_class_teacher": stream.class_teacher_id == teacher.id,
                }
                for stream in result.unique().scalars()
            ]
        else:
            result = await self.db.execute(
                select(ClassroomTeacher)
                .options(joinedload(ClassroomTeacher.classroom))
                .join(Classroom, Classroom.id == ClassroomTeacher.classroom_id)
                .where(ClassroomTeacher.teacher_id == teacher.id)
                .order_by(Classroom.name)
            )
            classes = [
                {"classroom": link.classroom, "stream": None, "is_class_teacher": link.is_class_teacher}
                for link in result.unique().scalars()
            ]
        return {"teacher_id": teacher.id, "mode": self.mode.name, "classes": classes}

    async def class_teachers(self) -> List[dict]:
        """Every class teacher of the school, in the school's mode"""
        if self.mode.name == "streamed":
            result = await self.db.execute(
                select(Stream)
                .options(joinedload(Stream.classroom))
                .where(Stream.school_id == self.school_id, Stream.class_teacher_id.is_not(None))
                .order_by(Stream.class_id, Stream.name)
            )
            return [
                {"teacher": stream.class_teacher, "classroom": stream.classroom, "stream": stream}
                for stream in result.unique().scalars()
            ]

        result = await self.db.execute(
            select(ClassroomTeacher)
            .options(joinedload(ClassroomTeacher.classroom))
            .join(Classroom, Classroom.id == ClassroomTeacher.classroom_id)
            .where(Classroom.school_id == self.school_id, ClassroomTeacher.is_class_teacher.is_(True))
            .order_by(Classroom.name)
        )
        return [
            {"teacher": link.teacher, "classroom": link.classroom, "stream": None}
            for link in result.unique().scalars()
        ]

    # ---- stream mode --------------------------------------------------------

    async def assign_class_teacher_to_stream(self, stream_id: int, teacher_id: int) -> Stream:
        self.mode.require_streamed()
        await self.execute(PromoteStreamClassTeacher(stream_id=stream_id, teacher_id=teacher_id))
        return await self.fetch_stream(stream_id)

    async def remove_class_teacher_from_stream(self, stream_id: int) -> bool:
        self.mode.require_streamed()
        async with self.transaction():
            stream = await self.get_owned(Stream, stream_id, "Stream", lock=True)
            removed = stream.class_teacher_id is not None
            if removed:
                await self.db.execute(
                    update(Stream).where(Stream.id == stream.id).values(class_teacher_id=None)
                )
        if removed:
            logger.info(f"Removed class teacher from stream {stream_id}")
        return removed

    @log_function_call(logger)
    async def assign_teachers_to_stream(self, stream_id: int, teacher_ids: List[int]) -> dict:
        """
        Add teachers to a stream. Existing members are skipped. The stream's
        class teacher already counts the stream in their load, so adding
        them as a member costs no slot.
        """
        self.mode.require_streamed()
        async with self.transaction():
            teachers = await self.lock_teachers(teacher_ids)
            stream = await self.get_owned(Stream, stream_id, "Stream", lock=True)

            result = await self.db.execute(
                select(StreamTeacher.teacher_id).where(
                    StreamTeacher.stream_id == stream.id,
                    StreamTeacher.teacher_id.in_(teacher_ids)
                )
            )
            linked = set(result.scalars())

            errors: Dict[str, List[str]] = {}
            for index, teacher_id in enumerate(teacher_ids):
                if teacher_id in linked or teacher_id == stream.class_teacher_id:
                    continue
                teacher = teachers[teacher_id]
                current = await self.current_load(teacher_id)
                if current + 1 > teacher.max_classes:
                    errors[f"teacher_ids.{index}"] = [
                        f"{teacher.name}: " + capacity_message(current, teacher.max_classes)
                    ]
            if errors:
                raise CapacityExceededError(
                    "One or more teachers have no free class slots. No teachers were assigned.",
                    errors=errors
                )

            new_ids = [tid for tid in teacher_ids if tid not in linked]
            for teacher_id in new_ids:
                self.db.add(StreamTeacher(stream_id=stream.id, teacher_id=teacher_id))
            await self.db.flush()

        logger.info(f"Assigned {len(new_ids)} teacher(s) to stream {stream_id}")
        return {
            "message": f"{len(new_ids)} teacher(s) assigned to {stream.name}",
            "assigned": [teachers[tid] for tid in new_ids],
            "already_assigned": [teachers[tid] for tid in teacher_ids if tid in linked],
            "total_requested": len(teacher_ids),
            "newly_assigned": len(new_ids),
            "skipped": len(teacher_ids) - len(new_ids),
        }

    async def remove_teacher_from_stream(self, stream_id: int, teacher_id: int) -> None:
        self.mode.require_streamed()
        async with self.transaction():
            stream = await self.get_owned(Stream, stream_id, "Stream", lock=True)
            teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
            result = await self.db.execute(
                delete(StreamTeacher).where(
                    StreamTeacher.stream_id == stream.id,
                    StreamTeacher.teacher_id == teacher.id
                )
            )
            if not result.rowcount:
                raise NotFoundError(f"{teacher.name} is not assigned to stream {stream.name}")
        logger.info(f"Removed teacher {teacher_id} from stream {stream_id}")

    async def check_new_stream_class_teachers(self, teacher_ids: List[Optional[int]], field_prefix: str = "streams") -> None:
        """Validate the class teachers of streams that do not exist yet"""
        indexed = [(index, tid) for index, tid in enumerate(teacher_ids) if tid]
        if not indexed:
            return
        teachers = await self.lock_teachers([tid for _, tid in indexed], field=field_prefix)
        for index, teacher_id in indexed:
            field = f"{field_prefix}.{index}.class_teacher_id"
            teacher = teachers[teacher_id]
            await self.ensure_not_class_teacher_elsewhere(teacher, field=field)
            await self.ensure_capacity(teacher, field=field)
