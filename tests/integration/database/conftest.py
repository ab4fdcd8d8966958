# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Provides an engine, sessionmaker and repository backed by an in-memory
SQLite database. Set TEST_DATABASE_URL to run against PostgreSQL instead.
"""

import os
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.domains.enrollment.repository import EnrollmentRequestRepository
from src.infrastructure.database.connection import create_sessionmaker
from src.infrastructure.database.models import (
    Base,
    Enrollment,
    EnrollmentRequest,
    EnrollmentRequestStatus,
)


@pytest.fixture(scope="session")
def db_url() -> str:
    """Get database URL for tests."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture(scope="function")
async def db_engine(db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine with a fresh schema."""
    if db_url.startswith("sqlite"):
        engine = create_async_engine(
            db_url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(db_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def db_sessionmaker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the sessionmaker used by the repository."""
    return create_sessionmaker(db_engine)


@pytest.fixture
def repository(db_sessionmaker: async_sessionmaker[AsyncSession]) -> EnrollmentRequestRepository:
    """Create repository bound to the test database."""
    return EnrollmentRequestRepository(db_sessionmaker)


@pytest.fixture
def insert_request(
    db_sessionmaker: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[EnrollmentRequest]]:
    """Insert a request row directly, e.g. with a chosen created_at."""

    async def _insert(
        student_id: str,
        course_id: str,
        status: EnrollmentRequestStatus = EnrollmentRequestStatus.PENDING,
        created_at: datetime | None = None,
        **overrides: Any,
    ) -> EnrollmentRequest:
        values: dict[str, Any] = {
            "student_id": student_id,
            "course_id": course_id,
            "status": status,
        }
        if created_at is not None:
            values["created_at"] = created_at
            values["updated_at"] = created_at
        if status != EnrollmentRequestStatus.PENDING:
            values["reviewed_by"] = "admin-seed"
            values["reviewed_at"] = created_at or datetime(2025, 1, 1, tzinfo=timezone.utc)
        values.update(overrides)

        request = EnrollmentRequest(**values)
        async with db_sessionmaker() as session:
            async with session.begin():
                session.add(request)
        return request

    return _insert


@pytest.fixture
def insert_enrollment(
    db_sessionmaker: async_sessionmaker[AsyncSession],
) -> Callable[[str, str], Awaitable[None]]:
    """Insert an enrollment row directly."""

    async def _insert(student_id: str, course_id: str) -> None:
        async with db_sessionmaker() as session:
            async with session.begin():
                session.add(Enrollment(student_id=student_id, course_id=course_id))

    return _insert


@pytest.fixture
def count_enrollments(
    db_sessionmaker: async_sessionmaker[AsyncSession],
) -> Callable[[str, str], Awaitable[int]]:
    """Count enrollment rows for a student and course."""

    async def _count(student_id: str, course_id: str) -> int:
        async with db_sessionmaker() as session:
            result = await session.execute(
                select(func.count())
                .select_from(Enrollment)
                .where(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
            )
            return result.scalar_one()

    return _count
