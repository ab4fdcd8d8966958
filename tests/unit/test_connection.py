# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database connection management and service wiring."""

import os
from unittest.mock import patch

import pytest
from sqlalchemy import text

from src.core.config.settings import Settings
from src.domains.enrollment.service import EnrollmentRequestService, create_enrollment_service
from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    get_sessionmaker,
    init_database,
)
from src.infrastructure.events import EventBus
from src.infrastructure.notifications import EventBusNotifier, NullNotifier

SQLITE_ENV = {"DATABASE_URL": "sqlite+aiosqlite:///:memory:"}


def sqlite_settings(**env: str) -> Settings:
    with patch.dict(os.environ, {**SQLITE_ENV, **env}, clear=True):
        return Settings()


class TestDatabaseConnection:
    """Tests for engine lifecycle."""

    @pytest.mark.asyncio
    async def test_uninitialized_raises(self):
        """Test accessors fail before init_database."""
        await close_database()

        with pytest.raises(DatabaseError):
            get_sessionmaker()

    @pytest.mark.asyncio
    async def test_init_use_and_close(self):
        """Test a SQLite database can be initialized, used and closed."""
        await init_database(sqlite_settings())
        try:
            async with get_sessionmaker()() as session:
                result = await session.execute(text("SELECT 1"))
                assert result.scalar_one() == 1
        finally:
            await close_database()

        with pytest.raises(DatabaseError):
            get_sessionmaker()

    def test_database_error_str(self):
        """Test DatabaseError includes the underlying error."""
        error = DatabaseError("Database operation failed", ValueError("boom"))

        assert str(error) == "Database operation failed: boom"


class TestCreateEnrollmentService:
    """Tests for the service factory."""

    @pytest.mark.asyncio
    async def test_factory_wires_event_bus_notifier(self):
        """Test the factory publishes on the given bus by default."""
        settings = sqlite_settings(ENROLLMENT_BULK_MAX_CONCURRENCY="3")
        event_bus = EventBus()
        await init_database(settings)
        try:
            service = create_enrollment_service(settings, event_bus=event_bus)
        finally:
            await close_database()

        assert isinstance(service, EnrollmentRequestService)
        assert isinstance(service.notifier, EventBusNotifier)
        assert service.notifier.event_bus is event_bus
        assert service.settings.bulk_max_concurrency == 3

    @pytest.mark.asyncio
    async def test_factory_without_notifications(self):
        """Test disabled notifications use NullNotifier."""
        settings = sqlite_settings(ENROLLMENT_NOTIFICATIONS_ENABLED="false")
        await init_database(settings)
        try:
            service = create_enrollment_service(settings)
        finally:
            await close_database()

        assert isinstance(service.notifier, NullNotifier)

    def test_factory_requires_database(self):
        """Test the factory fails before init_database."""
        with pytest.raises(DatabaseError):
            create_enrollment_service(sqlite_settings())
