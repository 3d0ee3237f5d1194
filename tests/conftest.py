"""Pytest configuration and shared fixtures.

Every test gets its own SQLite database file. Each HTTP request runs in its
own session, the same way the app does, while the fixtures that seed data
use a separate session.
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from school_admin import create_app
from school_admin.core.database import enable_sqlite_foreign_keys, get_db
from school_admin.core.security import create_access_token
from school_admin.models import (
    AcademicYear,
    Base,
    Classroom,
    ClassroomTeacher,
    School,
    Stream,
    StreamTeacher,
    Subject,
    Teacher,
    TeacherCombination,
    User
)


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    enable_sqlite_foreign_keys(engine.sync_engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used to seed data"""
    async with session_factory() as session:
        yield session


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def app(session_factory):
    app = create_app()

    async def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def auth_headers(user: User, school_id: Optional[int] = None) -> dict:
    headers = {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
    if school_id is not None:
        headers["X-School-ID"] = str(school_id)
    return headers


# =============================================================================
# Data factories
# =============================================================================


class Factory:
    """Seeds rows and commits them one call at a time"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def school(self, **kwargs) -> School:
        n = self._next()
        values = {
            "name": f"School {n}",
            "code": f"SCH{n:03d}",
            "has_streams": False,
            "primary_curriculum": "CBC",
            "secondary_curriculum": "CBC",
            "has_primary": True,
            "has_junior_secondary": True,
        }
        values.update(kwargs)
        return await self._save(School(**values))

    async def user(self, school: Optional[School], role: str = "school_admin", **kwargs) -> User:
        n = self._next()
        values = {
            "school_id": school.id if school else None,
            "name": f"User {n}",
            "email": f"user{n}@example.com",
            "role": role,
            "password_hash": "not-a-real-hash",
            "is_active": True,
        }
        values.update(kwargs)
        return await self._save(User(**values))

    async def admin(self, school: School) -> User:
        return await self.user(school, role="school_admin")

    async def teacher(
        self,
        school: School,
        max_classes: int = 10,
        name: Optional[str] = None,
        **kwargs
    ) -> Teacher:
        user = await self.user(school, role="teacher", **({"name": name} if name else {}))
        values = {
            "school_id": school.id,
            "user_id": user.id,
            "curriculum_specialization": "CBC",
            "max_classes": max_classes,
        }
        values.update(kwargs)
        teacher = await self._save(Teacher(**values))
        # Reload so the joined user is attached for name lookups
        result = await self.session.execute(
            select(Teacher).where(Teacher.id == teacher.id).execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()

    async def classroom(self, school: School, name: Optional[str] = None, **kwargs) -> Classroom:
        values = {"school_id": school.id, "name": name or f"Grade {self._next()}"}
        values.update(kwargs)
        return await self._save(Classroom(**values))

    async def stream(self, classroom: Classroom, name: Optional[str] = None, **kwargs) -> Stream:
        values = {
            "school_id": classroom.school_id,
            "class_id": classroom.id,
            "name": name or f"Stream {self._next()}",
        }
        values.update(kwargs)
        return await self._save(Stream(**values))

    async def link(self, classroom: Classroom, teacher: Teacher, is_class_teacher: bool = False) -> ClassroomTeacher:
        return await self._save(ClassroomTeacher(
            classroom_id=classroom.id, teacher_id=teacher.id, is_class_teacher=is_class_teacher
        ))

    async def stream_link(self, stream: Stream, teacher: Teacher) -> StreamTeacher:
        return await self._save(StreamTeacher(stream_id=stream.id, teacher_id=teacher.id))

    async def subject(self, school: School, name: Optional[str] = None, **kwargs) -> Subject:
        values = {
            "school_id": school.id,
            "name": name or f"Subject {self._next()}",
            "curriculum_type": "CBC",
            "level": "Junior Secondary",
        }
        values.update(kwargs)
        return await self._save(Subject(**values))

    async def academic_year(self, school: School, **kwargs) -> AcademicYear:
        values = {
            "school_id": school.id,
            "year": 2025,
            "term": f"Term {self._next()}",
            "start_date": date(2025, 1, 6),
            "end_date": date(2025, 4, 4),
            "curriculum_type": "CBC",
            "is_active": False,
        }
        values.update(kwargs)
        return await self._save(AcademicYear(**values))

    async def combination(self, **kwargs) -> TeacherCombination:
        n = self._next()
        values = {
            "code": f"BED-{n}",
            "name": "Mathematics/Physics",
            "primary_subjects": ["Mathematics", "Physics"],
            "derived_subjects": ["Integrated Science"],
            "eligible_levels": ["Junior Secondary", "Senior Secondary"],
            "eligible_pathways": ["STEM"],
            "curriculum_types": ["CBC", "8-4-4"],
            "is_active": True,
        }
        values.update(kwargs)
        return await self._save(TeacherCombination(**values))


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


@pytest_asyncio.fixture
async def plain_school(factory) -> School:
    """School that attaches teachers to classrooms"""
    return await factory.school(has_streams=False)


@pytest_asyncio.fixture
async def streamed_school(factory) -> School:
    """School that attaches teachers to streams"""
    return await factory.school(has_streams=True)


@pytest_asyncio.fixture
async def admin_headers(factory, plain_school) -> dict:
    return auth_headers(await factory.admin(plain_school))


@pytest_asyncio.fixture
async def streamed_admin_headers(factory, streamed_school) -> dict:
    return auth_headers(await factory.admin(streamed_school))


@pytest.fixture
def headers_for():
    """Bearer headers for any seeded user"""
    return auth_headers


# =============================================================================
# Query helpers
# =============================================================================


@pytest.fixture
def fetch_row(session_factory):
    """Read one row through a fresh session, bypassing the seeding session's cache"""
    async def _fetch(model, entity_id):
        async with session_factory() as session:
            return await session.get(model, entity_id)
    return _fetch


@pytest.fixture
def count_rows(session_factory):
    """Count rows of a model in a fresh session, optionally filtered"""
    async def _count(model, *criteria) -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model).where(*criteria))
            return result.scalar_one()
    return _count
