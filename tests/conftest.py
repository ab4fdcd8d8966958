# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from datetime import datetime, timezone
from typing import Any, Callable, Generator

import pytest

from src.core.config.settings import clear_settings_cache
from src.infrastructure.database.models.enrollment import (
    EnrollmentRequest,
    EnrollmentRequestStatus,
)
from src.infrastructure.events import reset_event_bus


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "ENROLLMENT_BULK_MAX_CONCURRENCY": "1",
    }


@pytest.fixture(autouse=True)
def clean_global_state() -> Generator[None, None, None]:
    """Reset cached settings and the event bus around every test."""
    clear_settings_cache()
    reset_event_bus()
    yield
    clear_settings_cache()
    reset_event_bus()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a database)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_course_id() -> str:
    """Provide a sample course ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440010"


@pytest.fixture
def sample_admin_id() -> str:
    """Provide a sample admin ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440099"


@pytest.fixture
def make_request(
    sample_student_id: str,
    sample_course_id: str,
) -> Callable[..., EnrollmentRequest]:
    """Build detached EnrollmentRequest rows as a repository would return them."""

    def _make(
        request_id: str = "r1",
        status: EnrollmentRequestStatus = EnrollmentRequestStatus.PENDING,
        **overrides: Any,
    ) -> EnrollmentRequest:
        now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        values: dict[str, Any] = {
            "id": request_id,
            "student_id": sample_student_id,
            "course_id": sample_course_id,
            "status": status,
            "message": None,
            "admin_note": None,
            "reviewed_by": None,
            "reviewed_at": None,
            "created_at": now,
            "updated_at": now,
        }
        if status != EnrollmentRequestStatus.PENDING:
            values["reviewed_by"] = "admin-1"
            values["reviewed_at"] = now
        values.update(overrides)
        return EnrollmentRequest(**values)

    return _make
