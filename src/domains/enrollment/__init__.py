# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides the enrollment request workflow:
- Students requesting enrollment in a course
- Admin approval (creating the enrollment) or rejection
- Bulk approve/reject with per-request outcomes
"""

from src.domains.enrollment.bulk import BulkEnrollmentProcessor, BulkResultAggregator
from src.domains.enrollment.errors import (
    AlreadyEnrolledError,
    DuplicateRequestError,
    EnrollmentErrorKind,
    EnrollmentRequestError,
    InvalidActionError,
    InvalidStateError,
    NoRequestIdsError,
    NotPendingError,
    RequestNotFoundError,
    StoreUnavailableError,
)
from src.domains.enrollment.repository import EnrollmentRequestRepository
from src.domains.enrollment.service import (
    EnrollmentRequestService,
    create_enrollment_service,
)
from src.infrastructure.database.models.enrollment import (
    ALLOWED_TRANSITIONS,
    can_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AlreadyEnrolledError",
    "BulkEnrollmentProcessor",
    "BulkResultAggregator",
    "DuplicateRequestError",
    "EnrollmentErrorKind",
    "EnrollmentRequestError",
    "EnrollmentRequestRepository",
    "EnrollmentRequestService",
    "InvalidActionError",
    "InvalidStateError",
    "NoRequestIdsError",
    "NotPendingError",
    "RequestNotFoundError",
    "StoreUnavailableError",
    "can_transition",
    "create_enrollment_service",
]
