from collections import Counter
from typing import List, Optional
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.errors import DuplicateTermError, NotFoundError, ValidationError
from school_admin.core.logging import logger, log_function_call
from school_admin.models import AcademicYear, School, SubjectAssignment
from school_admin.schemas.academic_year import (
    AcademicYearCreateRequest,
    AcademicYearUpdateRequest,
    BulkTermsCreateRequest
)
from school_admin.schemas.enums import CurriculumType
from school_admin.services.base_service import BaseService
from school_admin.services.school_config import resolve_curriculum


class AcademicYearService(BaseService):
    """Terms of the school year; at most one is active per school"""

    def __init__(self, db: AsyncSession, school: School):
        super().__init__(db, school)

    async def _existing_terms(self, year: int, curriculum_type: str) -> List[str]:
        result = await self.db.execute(
            select(AcademicYear.term).where(
                AcademicYear.school_id == self.school_id,
                AcademicYear.year == year,
                AcademicYear.curriculum_type == curriculum_type
            )
        )
        return list(result.scalars())

    async def _lock_school(self) -> None:
        # Serialises activations within one school
        await self.db.execute(
            select(School.id).where(School.id == self.school_id).with_for_update()
        )

    async def _deactivate_others(self, keep_id: Optional[int] = None) -> None:
        await self._lock_school()
        query = update(AcademicYear).where(
            AcademicYear.school_id == self.school_id,
            AcademicYear.is_active.is_(True)
        )
        if keep_id is not None:
            query = query.where(AcademicYear.id != keep_id)
        await self.db.execute(query.values(is_active=False))

    @log_function_call(logger)
    async def create_academic_year(self, data: AcademicYearCreateRequest) -> AcademicYear:
        curriculum = resolve_curriculum(self.school, data.curriculum_type)
        term = data.term.strip()
        async with self.transaction():
            existing = {name.lower() for name in await self._existing_terms(data.year, curriculum)}
            if term.lower() in existing:
                raise DuplicateTermError(
                    f"{term} {data.year} ({curriculum}) already exists for this school"
                )
            if data.is_active:
                await self._deactivate_others()

            academic_year = AcademicYear(
                school_id=self.school_id,
                year=data.year,
                term=term,
                start_date=data.start_date,
                end_date=data.end_date,
                curriculum_type=curriculum,
                is_active=data.is_active
            )
            self.db.add(academic_year)
            await self.db.flush()

        logger.info(
            f"Created academic year {academic_year.id} ({term} {data.year}, {curriculum}) "
            f"for school {self.school_id}"
        )
        return academic_year

    @log_function_call(logger)
    async def create_bulk_terms(self, data: BulkTermsCreateRequest) -> List[AcademicYear]:
        """Create every term of a year, or none of them"""
        curriculum = resolve_curriculum(self.school, data.curriculum_type)
        names = [entry.term.strip() for entry in data.terms]

        async with self.transaction():
            existing = {name.lower() for name in await self._existing_terms(data.year, curriculum)}
            repeated = {name for name, count in Counter(n.lower() for n in names).items() if count > 1}
            conflicts = [
                name for name in dict.fromkeys(names)
                if name.lower() in existing or name.lower() in repeated
            ]
            if conflicts:
                logger.warning(f"Rejected bulk terms for school {self.school_id}: {conflicts}")
                raise DuplicateTermError(
                    f"The following terms already exist or are repeated for {data.year} "
                    f"({curriculum}): {', '.join(conflicts)}",
                    field="terms",
                    details={"conflicting_terms": conflicts}
                )

            if any(entry.is_active for entry in data.terms):
                await self._deactivate_others()

            records = [
                AcademicYear(
                    school_id=self.school_id,
                    year=data.year,
                    term=name,
                    start_date=entry.start_date,
                    end_date=entry.end_date,
                    curriculum_type=curriculum,
                    is_active=entry.is_active
                )
                for name, entry in zip(names, data.terms)
            ]
            self.db.add_all(records)
            await self.db.flush()

        logger.info(f"Created {len(records)} term(s) of {data.year} for school {self.school_id}")
        return records

    async def set_active(self, academic_year_id: int) -> AcademicYear:
        async with self.transaction():
            await self._lock_school()
            academic_year = await self.get_owned(AcademicYear, academic_year_id, "Academic year", lock=True)
            await self._deactivate_others(keep_id=academic_year.id)
            academic_year.is_active = True
            await self.db.flush()
        logger.info(f"Academic year {academic_year_id} is now active for school {self.school_id}")
        return academic_year

    async def list_academic_years(
        self,
        year: Optional[int] = None,
        curriculum: Optional[CurriculumType] = None,
        is_active: Optional[bool] = None
    ) -> List[AcademicYear]:
        query = select(AcademicYear).where(AcademicYear.school_id == self.school_id)
        if year is not None:
            query = query.where(AcademicYear.year == year)
        if curriculum is not None:
            query = query.where(AcademicYear.curriculum_type == curriculum.value)
        if is_active is not None:
            query = query.where(AcademicYear.is_active.is_(is_active))
        result = await self.db.execute(
            query.order_by(AcademicYear.year.desc(), AcademicYear.start_date)
        )
        return list(result.scalars())

    async def get_active(self) -> AcademicYear:
        result = await self.db.execute(
            select(AcademicYear).where(
                AcademicYear.school_id == self.school_id,
                AcademicYear.is_active.is_(True)
            )
        )
        academic_year = result.scalars().first()
        if academic_year is None:
            raise NotFoundError("No active academic year found")
        return academic_year

    async def get_academic_year(self, academic_year_id: int) -> AcademicYear:
        return await self.get_owned(AcademicYear, academic_year_id, "Academic year")

    async def update_academic_year(self, academic_year_id: int, data: AcademicYearUpdateRequest) -> AcademicYear:
        async with self.transaction():
            if data.is_active:
                await self._lock_school()
            academic_year = await self.get_owned(AcademicYear, academic_year_id, "Academic year", lock=True)

            start = data.start_date or academic_year.start_date
            end = data.end_date or academic_year.end_date
            if end <= start:
                raise ValidationError(
                    "end_date must be after start_date",
                    errors={"end_date": ["The end date must be a date after start date."]}
                )

            if data.term is not None:
                term = data.term.strip()
                taken = await self.db.execute(
                    select(AcademicYear.id).where(
                        AcademicYear.school_id == self.school_id,
                        AcademicYear.year == academic_year.year,
                        AcademicYear.curriculum_type == academic_year.curriculum_type,
                        func.lower(AcademicYear.term) == term.lower(),
                        AcademicYear.id != academic_year.id
                    )
                )
                if taken.first():
                    raise DuplicateTermError(
                        f"{term} {academic_year.year} ({academic_year.curriculum_type}) already exists for this school"
                    )
                academic_year.term = term

            academic_year.start_date = start
            academic_year.end_date = end
            if data.is_active is True:
                await self._deactivate_others(keep_id=academic_year.id)
            if data.is_active is not None:
                academic_year.is_active = data.is_active
            await self.db.flush()

        logger.info(f"Updated academic year {academic_year_id}")
        return academic_year

    async def delete_academic_year(self, academic_year_id: int) -> None:
        async with self.transaction():
            academic_year = await self.get_owned(AcademicYear, academic_year_id, "Academic year", lock=True)
            result = await self.db.execute(
                select(func.count(SubjectAssignment.id)).where(
                    SubjectAssignment.academic_year_id == academic_year.id
                )
            )
            in_use = result.scalar_one()
            if in_use:
                raise ValidationError(
                    "Cannot delete an academic year that has subject assignments",
                    errors={"academic_year": [f"{in_use} subject assignment(s) reference this year."]}
                )
            await self.db.delete(academic_year)
        logger.info(f"Deleted academic year {academic_year_id}")
