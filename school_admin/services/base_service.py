# school_admin/services/base_service.py
from contextlib import asynccontextmanager
from typing import Optional, Type, TypeVar
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.errors import (
    BaseAPIError,
    ConcurrentAssignmentError,
    CrossTenantError,
    DuplicateSubjectAssignmentError,
    NotFoundError,
    TransientStoreError
)
from school_admin.core.logging import logger
from school_admin.models.classroom import Classroom
from school_admin.models.school import School
from school_admin.models.stream import Stream

ModelT = TypeVar("ModelT")


def is_duplicate_subject_assignment(error: IntegrityError) -> bool:
    """True when the ledger uniqueness constraints rejected the row"""
    # Postgres names the constraint, SQLite names the table and columns
    message = str(error.orig)
    return (
        "uq_subject_assignment_" in message
        or "UNIQUE constraint failed: subject_assignments." in message
    )


class BaseService:
    """
    Shared plumbing for services bound to one school.

    ``school`` is read once at construction; services keep only its id and
    flags so that a rolled back session never has to reload it.
    """

    def __init__(self, db: AsyncSession, school: School):
        self.db = db
        self.school_id = school.id
        self.has_streams = bool(school.has_streams)
        self.school = school

    @asynccontextmanager
    async def transaction(self):
        """Commit on success, roll back and translate store failures otherwise"""
        try:
            yield
            await self.db.commit()
        except BaseAPIError:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity check rejected write for school {self.school_id}: {e.orig}")
            if is_duplicate_subject_assignment(e):
                raise DuplicateSubjectAssignmentError()
            raise ConcurrentAssignmentError()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.error(f"Transaction failed for school {self.school_id}", exc_info=True)
            raise TransientStoreError()
        except Exception:
            await self.db.rollback()
            raise

    async def get_owned(
        self,
        model: Type[ModelT],
        entity_id: int,
        label: str,
        field: Optional[str] = None,
        lock: bool = False
    ) -> ModelT:
        """
        Load ``model`` by id and make sure it belongs to the caller's school.

        ``field`` names the request body field the id came from; when it is
        absent the id came from the URL and a foreign row is a 403.
        """
        query = select(model).where(model.id == entity_id)
        if lock:
            # Re-read under the lock so values cached in the session are not trusted
            query = query.with_for_update(of=model).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        entity = result.unique().scalar_one_or_none()
        if entity is None:
            raise NotFoundError(f"{label} with ID {entity_id} not found")
        if entity.school_id != self.school_id:
            logger.warning(
                f"Cross-school access to {label} {entity_id} by school {self.school_id}"
            )
            if field is None:
                raise CrossTenantError(
                    f"{label} does not belong to your school", status_code=403
                )
            raise CrossTenantError(
                f"{label} does not belong to your school", field=field
            )
        return entity

    async def fetch_classroom(self, classroom_id: int) -> Classroom:
        """Fresh copy of a classroom with its streams and teacher links"""
        result = await self.db.execute(
            select(Classroom)
            .where(Classroom.id == classroom_id)
            .execution_options(populate_existing=True)
        )
        classroom = result.unique().scalar_one_or_none()
        if classroom is None:
            raise NotFoundError(f"Classroom with ID {classroom_id} not found")
        if classroom.school_id != self.school_id:
            raise CrossTenantError("Classroom does not belong to your school", status_code=403)
        return classroom

    async def fetch_stream(self, stream_id: int) -> Stream:
        result = await self.db.execute(
            select(Stream)
            .where(Stream.id == stream_id)
            .execution_options(populate_existing=True)
        )
        stream = result.unique().scalar_one_or_none()
        if stream is None:
            raise NotFoundError(f"Stream with ID {stream_id} not found")
        if stream.school_id != self.school_id:
            raise CrossTenantError("Stream does not belong to your school", status_code=403)
        return stream
