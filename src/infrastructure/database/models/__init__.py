# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database models for CourseGate."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.enrollment import (
    ALLOWED_TRANSITIONS,
    Enrollment,
    EnrollmentRequest,
    EnrollmentRequestStatus,
    can_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Base",
    "TimestampMixin",
    "Enrollment",
    "EnrollmentRequest",
    "EnrollmentRequestStatus",
    "can_transition",
]
