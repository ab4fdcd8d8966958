# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides the SQLAlchemy async engine and sessions used to
store enrollment requests and enrollments.

Example:
    from src.infrastructure.database import init_database, get_sessionmaker

    await init_database(settings)
    repository = EnrollmentRequestRepository(get_sessionmaker())
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    create_sessionmaker,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "close_database",
    "create_sessionmaker",
    "get_sessionmaker",
    "init_database",
]
