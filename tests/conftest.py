"""Shared pytest fixtures: in-memory SQLite database, app client and user factories."""

import os
import uuid
from datetime import date, timedelta
from typing import AsyncGenerator

# Settings are read at import time; point them at the test database first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TASK_SECRET"] = "test-task-secret"
os.environ["LOG_FORMAT"] = "text"
os.environ["RESEND_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config import settings
from app.database import Base, get_db
from app.models.enums import UserRole
from app.utils.time import get_utc_today
from tests.factories import auth_headers, make_class, make_user

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, schema built from the model metadata."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client; each request gets its own session on the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def api_base() -> str:
    return settings.API_V1_PREFIX


@pytest.fixture
def unique_suffix() -> str:
    """Unique suffix for test data to avoid collisions."""
    return str(uuid.uuid4())[:8]


@pytest.fixture
async def teacher(db_session):
    return await make_user(db_session, UserRole.TEACHER, first_name="Tina")


@pytest.fixture
async def student(db_session):
    return await make_user(db_session, UserRole.STUDENT, first_name="Sam")


@pytest.fixture
async def classroom(db_session, teacher, student):
    """A class taught by ``teacher`` with ``student`` enrolled."""
    return await make_class(db_session, teacher, [student])


@pytest.fixture
def future_due() -> date:
    return get_utc_today() + timedelta(days=10)


@pytest.fixture
def teacher_headers(teacher) -> dict:
    return auth_headers(teacher)


@pytest.fixture
def student_headers(student) -> dict:
    return auth_headers(student)
