"""
Subject assignment ledger: which teacher teaches which subject to which
stream or classroom in an academic year.

Blocking checks run in a fixed order (lookup, same school, target, teacher
qualification, duplicate) and raise; everything softer is returned as a
warning next to the saved record.
"""
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.config import settings
from school_admin.core.errors import (
    BaseAPIError,
    CrossTenantError,
    DuplicateSubjectAssignmentError,
    NotFoundError,
    UnqualifiedTeacherError,
    ValidationError
)
from school_admin.core.logging import logger, log_function_call
from school_admin.models import (
    AcademicYear,
    Classroom,
    School,
    Stream,
    Subject,
    SubjectAssignment,
    Teacher,
    TeacherCombination,
    TeacherSubject
)
from school_admin.schemas.subject_assignment import (
    SubjectAssignmentCreateRequest,
    SubjectAssignmentUpdateRequest
)
from school_admin.services.base_service import BaseService
from school_admin.services.school_config import offers_level
from school_admin.services.teacher_service import curricula_covered
from school_admin.services.workload_calculator import WorkloadCalculator

AssignmentKey = Tuple[int, int, int, Optional[int], Optional[int]]


@dataclass
class CheckedAssignment:
    """A request that passed every blocking check"""
    data: SubjectAssignmentCreateRequest
    teacher: Teacher
    subject: Subject
    weekly_periods: int
    warnings: List[str] = dc_field(default_factory=list)

    @property
    def key(self) -> AssignmentKey:
        d = self.data
        return (d.teacher_id, d.subject_id, d.academic_year_id, d.stream_id, d.classroom_id)


class SubjectAssignmentService(BaseService):
    def __init__(self, db: AsyncSession, school: School):
        super().__init__(db, school)
        self.calculator = WorkloadCalculator()

    async def _lookup(self, model, entity_id: int, label: str, field: str):
        entity = await self.db.get(model, entity_id)
        if entity is None:
            raise NotFoundError(f"{label} with ID {entity_id} not found", field=field)
        return entity

    async def check(
        self,
        data: SubjectAssignmentCreateRequest,
        pending: Optional[List[CheckedAssignment]] = None
    ) -> CheckedAssignment:
        """
        Run every check for one request without writing anything.

        ``pending`` holds earlier items of the same batch; they count towards
        duplicates and the projected workload.
        """
        pending = pending or []

        teacher = await self._lookup(Teacher, data.teacher_id, "Teacher", "teacher_id")
        subject = await self._lookup(Subject, data.subject_id, "Subject", "subject_id")
        year = await self._lookup(AcademicYear, data.academic_year_id, "Academic year", "academic_year_id")

        owners = [
            ("teacher_id", teacher.school_id),
            ("subject_id", subject.school_id),
            ("academic_year_id", year.school_id),
        ]
        if data.stream_id is not None:
            stream = await self._lookup(Stream, data.stream_id, "Stream", "stream_id")
            result = await self.db.execute(
                select(Classroom.school_id).where(Classroom.id == stream.class_id)
            )
            owners.append(("stream_id", stream.school_id))
            owners.append(("stream_id", result.scalar_one()))
        if data.classroom_id is not None:
            classroom = await self._lookup(Classroom, data.classroom_id, "Classroom", "classroom_id")
            owners.append(("classroom_id", classroom.school_id))

        foreign = [key for key, school_id in owners if school_id != self.school_id]
        if foreign:
            logger.warning(f"Subject assignment for school {self.school_id} references foreign rows: {foreign}")
            raise CrossTenantError(
                "All entities must belong to the same school",
                field=foreign[0]
            )

        if self.has_streams and data.stream_id is None:
            raise ValidationError(
                "Your school uses streams. Assign subjects to a stream.",
                errors={"stream_id": ["The stream id field is required."]}
            )
        if not self.has_streams and data.classroom_id is None:
            raise ValidationError(
                "Your school does not use streams. Assign subjects to a classroom.",
                errors={"classroom_id": ["The classroom id field is required."]}
            )

        if subject.curriculum_type not in curricula_covered(teacher.curriculum_specialization):
            raise UnqualifiedTeacherError(
                f"{teacher.name} is a {teacher.curriculum_specialization} teacher and cannot "
                f"teach the {subject.curriculum_type} subject {subject.name}."
            )

        checked = CheckedAssignment(
            data=data,
            teacher=teacher,
            subject=subject,
            weekly_periods=data.weekly_periods or settings.DEFAULT_WEEKLY_PERIODS
        )
        if any(item.key == checked.key for item in pending):
            raise DuplicateSubjectAssignmentError(
                "This assignment is repeated in the request", field="subject_id"
            )
        if await self._exists(checked.key):
            raise DuplicateSubjectAssignmentError(field="subject_id")

        checked.warnings = await self._warnings(checked, pending)
        return checked

    async def _exists(self, key: AssignmentKey, exclude_id: Optional[int] = None) -> bool:
        teacher_id, subject_id, year_id, stream_id, classroom_id = key
        query = select(SubjectAssignment.id).where(
            SubjectAssignment.teacher_id == teacher_id,
            SubjectAssignment.subject_id == subject_id,
            SubjectAssignment.academic_year_id == year_id
        )
        if stream_id is not None:
            query = query.where(SubjectAssignment.stream_id == stream_id)
        else:
            query = query.where(SubjectAssignment.classroom_id == classroom_id)
        if exclude_id:
            query = query.where(SubjectAssignment.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def _warnings(self, checked: CheckedAssignment, pending: List[CheckedAssignment]) -> List[str]:
        teacher, subject, data = checked.teacher, checked.subject, checked.data
        warnings: List[str] = []

        qualified = await self.db.execute(
            select(TeacherSubject.id).where(
                TeacherSubject.teacher_id == teacher.id,
                TeacherSubject.subject_id == subject.id
            )
        )
        if qualified.first() is None:
            warnings.append(f"{subject.name} is not among {teacher.name}'s qualified subjects.")

        if subject.level:
            if teacher.combination_id:
                combination = await self.db.get(TeacherCombination, teacher.combination_id)
                if combination is not None and not combination.covers_level(subject.level):
                    warnings.append(
                        f"{combination.name} is not eligible for {subject.level} subjects."
                    )
            if not offers_level(self.school, subject.level):
                warnings.append(f"Your school does not offer {subject.level}.")

        if subject.pathway and teacher.teaching_pathways and subject.pathway not in teacher.teaching_pathways:
            warnings.append(f"{teacher.name} does not teach the {subject.pathway} pathway.")

        same_year = [
            item for item in pending
            if item.data.teacher_id == teacher.id and item.data.academic_year_id == data.academic_year_id
        ]
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(SubjectAssignment.weekly_periods), 0),
            ).where(
                SubjectAssignment.teacher_id == teacher.id,
                SubjectAssignment.academic_year_id == data.academic_year_id
            )
        )
        lessons = result.scalar_one() + sum(item.weekly_periods for item in same_year) + checked.weekly_periods
        if lessons > teacher.max_weekly_lessons:
            warnings.append(
                f"{teacher.name} would teach {lessons} lessons a week, "
                f"above the maximum of {teacher.max_weekly_lessons}."
            )

        result = await self.db.execute(
            select(SubjectAssignment.subject_id).distinct().where(
                SubjectAssignment.teacher_id == teacher.id,
                SubjectAssignment.academic_year_id == data.academic_year_id
            )
        )
        subjects = set(result.scalars()) | {item.data.subject_id for item in same_year} | {subject.id}
        if len(subjects) > teacher.max_subjects:
            warnings.append(
                f"{teacher.name} would teach {len(subjects)} subjects, "
                f"above the maximum of {teacher.max_subjects}."
            )
        return warnings

    def _build(self, checked: CheckedAssignment) -> SubjectAssignment:
        data = checked.data
        return SubjectAssignment(
            school_id=self.school_id,
            teacher_id=data.teacher_id,
            subject_id=data.subject_id,
            academic_year_id=data.academic_year_id,
            stream_id=data.stream_id,
            classroom_id=data.classroom_id,
            weekly_periods=checked.weekly_periods,
            assignment_type=data.assignment_type.value,
            notes=data.notes
        )

    @log_function_call(logger)
    async def create_assignment(self, data: SubjectAssignmentCreateRequest) -> Dict[str, Any]:
        async with self.transaction():
            checked = await self.check(data)
            assignment = self._build(checked)
            self.db.add(assignment)
            await self.db.flush()
            assignment_id = assignment.id

        logger.info(
            f"Assigned subject {data.subject_id} to teacher {data.teacher_id} "
            f"(assignment {assignment_id}, {len(checked.warnings)} warning(s))"
        )
        return {
            "message": "Subject assigned successfully",
            "assignment": await self.get_assignment(assignment_id),
            "warnings": checked.warnings,
        }

    async def _check_all(self, items: List[SubjectAssignmentCreateRequest]) -> Tuple[List[CheckedAssignment], Dict[str, List[str]]]:
        checked: List[CheckedAssignment] = []
        errors: Dict[str, List[str]] = {}
        for index, item in enumerate(items):
            try:
                checked.append(await self.check(item, pending=checked))
            except BaseAPIError as e:
                prefix = f"assignments.{index}"
                if e.errors:
                    for key, messages in e.errors.items():
                        errors.setdefault(f"{prefix}.{key}", []).extend(messages)
                else:
                    errors.setdefault(prefix, []).append(e.message)
        return checked, errors

    @log_function_call(logger)
    async def create_batch(self, items: List[SubjectAssignmentCreateRequest]) -> Dict[str, Any]:
        """All or nothing: a single failing item rejects the whole batch"""
        async with self.transaction():
            checked, errors = await self._check_all(items)
            if errors:
                raise ValidationError(
                    f"{len({key.split('.')[1] for key in errors})} of {len(items)} assignments are invalid. "
                    "Nothing was saved.",
                    errors=errors
                )
            records = [self._build(item) for item in checked]
            self.db.add_all(records)
            await self.db.flush()
            ids = [record.id for record in records]

        logger.info(f"Created {len(ids)} subject assignment(s) for school {self.school_id}")
        return {
            "message": f"{len(ids)} assignment(s) created",
            "assignments": await self._fetch_many(ids),
            "warnings": {
                f"assignments.{index}": item.warnings
                for index, item in enumerate(checked) if item.warnings
            },
        }

    async def preview(self, data: SubjectAssignmentCreateRequest) -> Dict[str, Any]:
        """Same checks as a create, nothing written"""
        try:
            checked = await self.check(data)
        except BaseAPIError as e:
            return {
                "valid": False,
                "errors": e.errors or {"assignment": [e.message]},
                "warnings": [],
            }
        return {"valid": True, "errors": {}, "warnings": checked.warnings}

    async def _fetch_many(self, ids: List[int]) -> List[SubjectAssignment]:
        result = await self.db.execute(
            select(SubjectAssignment).where(SubjectAssignment.id.in_(ids)).order_by(SubjectAssignment.id)
        )
        return list(result.unique().scalars())

    async def list_assignments(
        self,
        teacher_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
        stream_id: Optional[int] = None,
        classroom_id: Optional[int] = None
    ) -> List[SubjectAssignment]:
        query = select(SubjectAssignment).where(SubjectAssignment.school_id == self.school_id)
        filters = {
            SubjectAssignment.teacher_id: teacher_id,
            SubjectAssignment.subject_id: subject_id,
            SubjectAssignment.academic_year_id: academic_year_id,
            SubjectAssignment.stream_id: stream_id,
            SubjectAssignment.classroom_id: classroom_id,
        }
        for column, value in filters.items():
            if value is not None:
                query = query.where(column == value)
        result = await self.db.execute(query.order_by(SubjectAssignment.id))
        return list(result.unique().scalars())

    async def get_assignment(self, assignment_id: int) -> SubjectAssignment:
        return await self.get_owned(SubjectAssignment, assignment_id, "Subject assignment")

    async def update_assignment(self, assignment_id: int, data: SubjectAssignmentUpdateRequest) -> SubjectAssignment:
        async with self.transaction():
            assignment = await self.get_owned(SubjectAssignment, assignment_id, "Subject assignment", lock=True)
            if data.weekly_periods is not None:
                assignment.weekly_periods = data.weekly_periods
            if data.assignment_type is not None:
                assignment.assignment_type = data.assignment_type.value
            if data.notes is not None:
                assignment.notes = data.notes
            await self.db.flush()
        logger.info(f"Updated subject assignment {assignment_id}")
        return assignment

    async def delete_assignment(self, assignment_id: int) -> None:
        async with self.transaction():
            assignment = await self.get_owned(SubjectAssignment, assignment_id, "Subject assignment", lock=True)
            await self.db.delete(assignment)
        logger.info(f"Deleted subject assignment {assignment_id}")

    # Workload

    async def _workload_year(self, academic_year_id: Optional[int]) -> Optional[int]:
        if academic_year_id is not None:
            year = await self.get_owned(AcademicYear, academic_year_id, "Academic year", field="academic_year_id")
            return year.id
        result = await self.db.execute(
            select(AcademicYear.id).where(
                AcademicYear.school_id == self.school_id,
                AcademicYear.is_active.is_(True)
            )
        )
        return result.scalars().first()

    async def _teacher_assignments(self, teacher_id: int, year_id: Optional[int]) -> List[SubjectAssignment]:
        query = select(SubjectAssignment).where(SubjectAssignment.teacher_id == teacher_id)
        if year_id is not None:
            query = query.where(SubjectAssignment.academic_year_id == year_id)
        result = await self.db.execute(query)
        return list(result.unique().scalars())

    async def teacher_workload(self, teacher_id: int, academic_year_id: Optional[int] = None) -> Dict[str, Any]:
        teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
        year_id = await self._workload_year(academic_year_id)
        workload = self.calculator.calculate(teacher, await self._teacher_assignments(teacher.id, year_id))
        workload["academic_year_id"] = year_id
        return workload

    async def workload_report(self, academic_year_id: Optional[int] = None) -> Dict[str, Any]:
        year_id = await self._workload_year(academic_year_id)
        result = await self.db.execute(
            select(Teacher).where(Teacher.school_id == self.school_id).order_by(Teacher.id)
        )
        workloads = []
        for teacher in result.unique().scalars():
            workload = self.calculator.calculate(teacher, await self._teacher_assignments(teacher.id, year_id))
            workload["academic_year_id"] = year_id
            workloads.append(workload)
        return {"teachers": workloads, "summary": self.calculator.summarize(workloads)}
