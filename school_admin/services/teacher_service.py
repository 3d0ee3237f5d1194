# teacher_service.py
from typing import Any, Dict, List, Optional
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.config import settings
from school_admin.core.errors import CrossTenantError, NotFoundError, UnqualifiedTeacherError, ValidationError
from school_admin.core.logging import logger, log_function_call
from school_admin.models import (
    ClassroomTeacher,
    School,
    Stream,
    StreamTeacher,
    Subject,
    SubjectAssignment,
    Teacher,
    TeacherCombination,
    TeacherSubject,
    User
)
from school_admin.schemas.enums import CURRICULUM_COVERAGE, CurriculumType, UserRole
from school_admin.schemas.teacher import QualifiedSubjectRequest, TeacherCreateRequest, TeacherUpdateRequest
from school_admin.services.assignment_modes import resolve_mode
from school_admin.services.base_service import BaseService
from school_admin.services.school_config import offered_curricula


def curricula_covered(specialization: Optional[str]) -> set:
    """Curriculum values a specialization stands for ("Both" covers both)"""
    try:
        return {c.value for c in CURRICULUM_COVERAGE[CurriculumType(specialization)]}
    except ValueError:
        return set()


class TeacherService(BaseService):
    def __init__(self, db: AsyncSession, school: School):
        super().__init__(db, school)
        self.mode = resolve_mode(school)

    async def _validate_unique_tsc(self, tsc_number: str, exclude_teacher_id: Optional[int] = None) -> None:
        query = select(Teacher.id).where(
            Teacher.school_id == self.school_id,
            Teacher.tsc_number == tsc_number
        )
        if exclude_teacher_id:
            query = query.where(Teacher.id != exclude_teacher_id)
        if (await self.db.execute(query)).first():
            raise ValidationError(
                "TSC number already registered",
                errors={"tsc_number": ["The TSC number has already been taken."]}
            )

    def _default_specialization(self) -> str:
        offered = offered_curricula(self.school)
        return offered[0] if len(offered) == 1 else CurriculumType.BOTH.value

    async def _get_combination(self, combination_id: int, specialization: str) -> TeacherCombination:
        result = await self.db.execute(
            select(TeacherCombination).where(TeacherCombination.id == combination_id)
        )
        combination = result.scalar_one_or_none()
        if combination is None or not combination.is_active:
            raise ValidationError(
                "The selected combination is invalid",
                errors={"combination_id": ["The combination does not exist or is no longer active."]}
            )
        missing = curricula_covered(specialization) - set(combination.curriculum_types or [])
        if missing:
            raise ValidationError(
                f"{combination.name} does not cover the {specialization} curriculum",
                errors={"combination_id": [
                    f"The combination is only offered for: {', '.join(combination.curriculum_types or []) or 'none'}"
                ]}
            )
        return combination

    async def _check_subject_ids(self, subject_ids: List[int]) -> List[Subject]:
        if not subject_ids:
            return []
        result = await self.db.execute(
            select(Subject).where(Subject.id.in_(subject_ids), Subject.school_id == self.school_id)
        )
        subjects = {subject.id: subject for subject in result.scalars()}
        rejected = [sid for sid in subject_ids if sid not in subjects]
        if rejected:
            raise ValidationError(
                "Some subjects do not belong to your school",
                errors={"subject_ids": [f"Invalid subject id(s): {', '.join(str(sid) for sid in rejected)}"]}
            )
        return [subjects[sid] for sid in subject_ids]

    async def _seed_subjects(
        self,
        teacher: Teacher,
        combination: Optional[TeacherCombination],
        explicit: List[Subject]
    ) -> int:
        """Replace the teacher's qualified subjects; returns how many were written"""
        await self.db.execute(delete(TeacherSubject).where(TeacherSubject.teacher_id == teacher.id))

        rows: Dict[int, bool] = {}
        if combination is not None:
            covered = curricula_covered(teacher.curriculum_specialization)
            wanted = {name.strip().lower() for name in combination.all_subjects()}
            primary = {name.strip().lower() for name in combination.primary_subjects or []}
            result = await self.db.execute(
                select(Subject).where(
                    Subject.school_id == self.school_id,
                    func.lower(Subject.name).in_(wanted)
                )
            )
            for subject in result.scalars():
                if subject.curriculum_type in covered:
                    rows[subject.id] = subject.name.strip().lower() in primary

        for subject in explicit:
            rows.setdefault(subject.id, False)

        for subject_id, is_primary in rows.items():
            self.db.add(TeacherSubject(
                teacher_id=teacher.id,
                subject_id=subject_id,
                is_primary_subject=is_primary
            ))
        return len(rows)

    async def _retained_subjects(self, teacher: Teacher) -> List[Subject]:
        """Current qualifications still inside the teacher's curriculum"""
        covered = curricula_covered(teacher.curriculum_specialization)
        result = await self.db.execute(
            select(Subject)
            .join(TeacherSubject, TeacherSubject.subject_id == Subject.id)
            .where(TeacherSubject.teacher_id == teacher.id)
            .order_by(Subject.id)
        )
        return [subject for subject in result.scalars() if subject.curriculum_type in covered]

    async def _fetch_teacher(self, teacher_id: int) -> Teacher:
        result = await self.db.execute(
            select(Teacher)
            .where(Teacher.id == teacher_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()

    @log_function_call(logger)
    async def create_teacher(self, data: TeacherCreateRequest) -> Teacher:
        """Promote a user of the school to teacher"""
        async with self.transaction():
            result = await self.db.execute(select(User).where(User.id == data.user_id))
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFoundError(f"User with ID {data.user_id} not found")
            if user.school_id != self.school_id:
                raise CrossTenantError("User does not belong to your school", field="user_id")

            existing = await self.db.execute(select(Teacher.id).where(Teacher.user_id == user.id))
            if existing.first():
                raise ValidationError(
                    "This user is already a teacher",
                    errors={"user_id": ["The user already has a teacher profile."]}
                )
            if data.tsc_number:
                await self._validate_unique_tsc(data.tsc_number)

            specialization = (
                data.curriculum_specialization.value
                if data.curriculum_specialization else self._default_specialization()
            )
            combination = None
            if data.combination_id:
                combination = await self._get_combination(data.combination_id, specialization)
            explicit = await self._check_subject_ids(data.subject_ids or [])

            teacher = Teacher(
                school_id=self.school_id,
                user_id=user.id,
                combination_id=combination.id if combination else None,
                employee_number=data.employee_number,
                tsc_number=data.tsc_number,
                qualification=data.qualification,
                curriculum_specialization=specialization,
                teaching_levels=[level.value for level in data.teaching_levels] if data.teaching_levels else None,
                teaching_pathways=[p.value for p in data.teaching_pathways] if data.teaching_pathways else None,
                max_classes=data.max_classes or settings.DEFAULT_MAX_CLASSES,
                max_subjects=data.max_subjects or settings.DEFAULT_MAX_SUBJECTS,
                max_weekly_lessons=data.max_weekly_lessons or settings.DEFAULT_MAX_WEEKLY_LESSONS,
                min_weekly_lessons=data.min_weekly_lessons or settings.DEFAULT_MIN_WEEKLY_LESSONS
            )
            if teacher.min_weekly_lessons > teacher.max_weekly_lessons:
                raise ValidationError(
                    "min_weekly_lessons cannot exceed max_weekly_lessons",
                    errors={"min_weekly_lessons": ["Must not be greater than max_weekly_lessons."]}
                )
            self.db.add(teacher)
            user.role = UserRole.TEACHER.value
            await self.db.flush()

            seeded = await self._seed_subjects(teacher, combination, explicit)
            await self.db.flush()
            teacher_id = teacher.id

        logger.info(
            f"User {data.user_id} promoted to teacher {teacher_id} in school {self.school_id} "
            f"with {seeded} qualified subject(s)"
        )
        return await self._fetch_teacher(teacher_id)

    async def list_teachers(
        self,
        curriculum: Optional[CurriculumType] = None,
        has_capacity: Optional[bool] = None
    ) -> List[Teacher]:
        query = select(Teacher).where(Teacher.school_id == self.school_id).order_by(Teacher.id)
        if curriculum is not None and curriculum != CurriculumType.BOTH:
            query = query.where(
                Teacher.curriculum_specialization.in_([curriculum.value, CurriculumType.BOTH.value])
            )
        result = await self.db.execute(query)
        teachers = list(result.unique().scalars())

        if has_capacity is None:
            return teachers
        filtered = []
        for teacher in teachers:
            load = await self.mode.count_load(self.db, teacher.id)
            if (load < teacher.max_classes) == has_capacity:
                filtered.append(teacher)
        return filtered

    async def load_summary(self, teacher: Teacher) -> Dict[str, Any]:
        current = await self.mode.count_load(self.db, teacher.id)
        holding = await self.mode.class_teacher_holding(self.db, teacher.id)
        return {
            "mode": self.mode.name,
            "current_class_count": current,
            "max_classes": teacher.max_classes,
            "available_slots": max(teacher.max_classes - current, 0),
            "class_teacher_of": holding.name if holding else None,
        }

    async def _qualified_subjects(self, teacher_id: int) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(TeacherSubject, Subject)
            .join(Subject, Subject.id == TeacherSubject.subject_id)
            .where(TeacherSubject.teacher_id == teacher_id)
            .order_by(TeacherSubject.subject_id)
        )
        return [
            {
                "subject_id": subject.id,
                "name": subject.name,
                "code": subject.code,
                "curriculum_type": subject.curriculum_type,
                "level": subject.level,
                "pathway": subject.pathway,
                "is_primary_subject": row.is_primary_subject,
                "years_experience": row.years_experience,
                "can_teach_levels": row.can_teach_levels,
            }
            for row, subject in result.unique().all()
        ]

    async def get_teacher_detail(self, teacher_id: int) -> Dict[str, Any]:
        teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
        qualified = await self._qualified_subjects(teacher.id)
        detail = {
            column.key: getattr(teacher, column.key)
            for column in Teacher.__table__.columns
        }
        detail.update({
            "name": teacher.name,
            "email": teacher.email,
            "load": await self.load_summary(teacher),
            "qualified_subjects": qualified,
        })
        return detail

    @log_function_call(logger)
    async def update_teacher(self, teacher_id: int, data: TeacherUpdateRequest) -> Teacher:
        changes = data.model_dump(exclude_unset=True)
        async with self.transaction():
            teacher = await self.get_owned(Teacher, teacher_id, "Teacher", lock=True)

            if changes.get("max_classes") is not None:
                current = await self.mode.count_load(self.db, teacher.id)
                if changes["max_classes"] < current:
                    logger.warning(
                        f"Rejected max_classes={changes['max_classes']} for teacher {teacher.id} "
                        f"holding {current} classes"
                    )
                    raise ValidationError(
                        "max_classes cannot be lower than the teacher's current class count",
                        errors={"max_classes": [
                            f"The teacher is currently assigned to {current} classes."
                        ]}
                    )
            if changes.get("tsc_number"):
                await self._validate_unique_tsc(changes["tsc_number"], exclude_teacher_id=teacher.id)

            for key in (
                "employee_number", "tsc_number", "qualification",
                "max_classes", "max_subjects", "max_weekly_lessons", "min_weekly_lessons"
            ):
                if changes.get(key) is not None:
                    setattr(teacher, key, changes[key])
            specialization_changed = (
                data.curriculum_specialization is not None
                and data.curriculum_specialization.value != teacher.curriculum_specialization
            )
            if data.curriculum_specialization is not None:
                teacher.curriculum_specialization = data.curriculum_specialization.value
            if data.teaching_levels is not None:
                teacher.teaching_levels = [level.value for level in data.teaching_levels]
            if data.teaching_pathways is not None:
                teacher.teaching_pathways = [p.value for p in data.teaching_pathways]

            if teacher.min_weekly_lessons > teacher.max_weekly_lessons:
                raise ValidationError(
                    "min_weekly_lessons cannot exceed max_weekly_lessons",
                    errors={"min_weekly_lessons": ["Must not be greater than max_weekly_lessons."]}
                )

            combination_changed = (
                data.combination_id is not None and data.combination_id != teacher.combination_id
            )
            if combination_changed or specialization_changed or data.subject_ids is not None:
                combination_id = data.combination_id or teacher.combination_id
                combination = (
                    await self._get_combination(combination_id, teacher.curriculum_specialization)
                    if combination_id else None
                )
                if data.subject_ids is not None:
                    explicit = await self._check_subject_ids(data.subject_ids)
                elif combination_changed:
                    explicit = []
                else:
                    explicit = await self._retained_subjects(teacher)
                teacher.combination_id = combination_id
                await self._seed_subjects(teacher, combination, explicit)
            await self.db.flush()

        logger.info(f"Updated teacher {teacher_id}: {', '.join(sorted(changes)) or 'no changes'}")
        return await self._fetch_teacher(teacher_id)

    async def list_qualified_subjects(self, teacher_id: int) -> List[Dict[str, Any]]:
        teacher = await self.get_owned(Teacher, teacher_id, "Teacher")
        return await self._qualified_subjects(teacher.id)

    @log_function_call(logger)
    async def add_qualified_subject(self, teacher_id: int, data: QualifiedSubjectRequest) -> List[Dict[str, Any]]:
        """Add one subject to the qualified list; an existing entry is updated in place"""
        async with self.transaction():
            teacher = await self.get_owned(Teacher, teacher_id, "Teacher", lock=True)
            subject = await self.get_owned(Subject, data.subject_id, "Subject", field="subject_id")
            if subject.curriculum_type not in curricula_covered(teacher.curriculum_specialization):
                raise UnqualifiedTeacherError(
                    f"{teacher.name} is a {teacher.curriculum_specialization} teacher and cannot "
                    f"be qualified for the {subject.curriculum_type} subject {subject.name}.",
                    field="subject_id"
                )

            result = await self.db.execute(
                select(TeacherSubject).where(
                    TeacherSubject.teacher_id == teacher.id,
                    TeacherSubject.subject_id == subject.id
                )
            )
            row = result.unique().scalar_one_or_none()
            if row is None:
                row = TeacherSubject(teacher_id=teacher.id, subject_id=subject.id)
                self.db.add(row)
            row.is_primary_subject = data.is_primary_subject
            row.years_experience = data.years_experience
            row.can_teach_levels = (
                [level.value for level in data.can_teach_levels] if data.can_teach_levels else None
            )
            await self.db.flush()

        logger.info(f"Subject {data.subject_id} added to teacher {teacher_id}'s qualified list")
        return await self._qualified_subjects(teacher_id)

    async def remove_qualified_subject(self, teacher_id: int, subject_id: int) -> None:
        async with self.transaction():
            teacher = await self.get_owned(Teacher, teacher_id, "Teacher", lock=True)
            result = await self.db.execute(
                delete(TeacherSubject).where(
                    TeacherSubject.teacher_id == teacher.id,
                    TeacherSubject.subject_id == subject_id
                )
            )
            if not result.rowcount:
                raise NotFoundError(f"Subject {subject_id} is not among the teacher's qualified subjects")
        logger.info(f"Subject {subject_id} removed from teacher {teacher_id}'s qualified list")

    async def delete_teacher(self, teacher_id: int) -> None:
        """Delete the teacher profile and every link; the user account stays"""
        async with self.transaction():
            teacher = await self.get_owned(Teacher, teacher_id, "Teacher", lock=True)
            await self.db.execute(delete(ClassroomTeacher).where(ClassroomTeacher.teacher_id == teacher.id))
            await self.db.execute(delete(StreamTeacher).where(StreamTeacher.teacher_id == teacher.id))
            await self.db.execute(
                update(Stream).where(Stream.class_teacher_id == teacher.id).values(class_teacher_id=None)
            )
            await self.db.execute(delete(SubjectAssignment).where(SubjectAssignment.teacher_id == teacher.id))
            await self.db.execute(delete(TeacherSubject).where(TeacherSubject.teacher_id == teacher.id))
            await self.db.execute(delete(Teacher).where(Teacher.id == teacher.id))
        logger.info(f"Deleted teacher {teacher_id} of school {self.school_id}")

    async def list_combinations(self) -> List[TeacherCombination]:
        result = await self.db.execute(
            select(TeacherCombination)
            .where(TeacherCombination.is_active.is_(True))
            .order_by(TeacherCombination.name)
        )
        return list(result.scalars())
