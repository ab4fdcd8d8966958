# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the enrollment request engine.

The hierarchy is closed: every failure the engine reports is one of the
classes below, and each carries an EnrollmentErrorKind so callers can
dispatch on the kind (e.g. to pick a transport status code) without ever
inspecting message text:

- NoRequestIdsError, InvalidActionError: bulk call preconditions
- RequestNotFoundError, NotPendingError, AlreadyEnrolledError,
  DuplicateRequestError, InvalidStateError: per-request failures
- StoreUnavailableError: database unreachable or failing
"""

from enum import Enum
from typing import Any, ClassVar


class EnrollmentErrorKind(str, Enum):
    """Failure kinds reported by the enrollment engine."""

    NO_REQUEST_IDS = "no_request_ids"
    INVALID_ACTION = "invalid_action"
    NOT_FOUND = "not_found"
    NOT_PENDING = "not_pending"
    ALREADY_ENROLLED = "already_enrolled"
    DUPLICATE_REQUEST = "duplicate_request"
    INVALID_STATE = "invalid_state"
    STORE_UNAVAILABLE = "store_unavailable"


class EnrollmentRequestError(Exception):
    """Base exception for enrollment request errors.

    Attributes:
        kind: Failure kind, fixed per subclass.
        message: Human-readable error description.
        request_id: Request the failure concerns, if any.
        details: Additional error context.
    """

    kind: ClassVar[EnrollmentErrorKind]
    default_message: ClassVar[str] = "enrollment request error"

    def __init__(
        self,
        message: str | None = None,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.request_id = request_id
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.request_id:
            return f"{self.message} (request {self.request_id})"
        return self.message


class NoRequestIdsError(EnrollmentRequestError):
    """Raised when a bulk call receives no request ids."""

    kind = EnrollmentErrorKind.NO_REQUEST_IDS
    default_message = "no request ids provided"


class InvalidActionError(EnrollmentRequestError):
    """Raised when a bulk action is neither approve nor reject."""

    kind = EnrollmentErrorKind.INVALID_ACTION
    default_message = "invalid action, must be 'approve' or 'reject'"


class RequestNotFoundError(EnrollmentRequestError):
    """Raised when an enrollment request does not exist."""

    kind = EnrollmentErrorKind.NOT_FOUND
    default_message = "not found"


class NotPendingError(EnrollmentRequestError):
    """Raised when a request was already approved or rejected."""

    kind = EnrollmentErrorKind.NOT_PENDING
    default_message = "not pending"


class AlreadyEnrolledError(EnrollmentRequestError):
    """Raised when the student is already enrolled in the course."""

    kind = EnrollmentErrorKind.ALREADY_ENROLLED
    default_message = "already enrolled"


class DuplicateRequestError(EnrollmentRequestError):
    """Raised when a pending request already exists for the student and course."""

    kind = EnrollmentErrorKind.DUPLICATE_REQUEST
    default_message = "duplicate request"


class InvalidStateError(EnrollmentRequestError):
    """Raised when an operation is not allowed in the request's current state."""

    kind = EnrollmentErrorKind.INVALID_STATE
    default_message = "invalid state"


class StoreUnavailableError(EnrollmentRequestError):
    """Raised when the database cannot be reached or fails mid-operation.

    Transient; retrying is left to the caller.
    """

    kind = EnrollmentErrorKind.STORE_UNAVAILABLE
    default_message = "store unavailable"
