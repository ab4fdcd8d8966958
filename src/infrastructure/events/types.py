# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions for CourseGate.

Using constants instead of string literals keeps event names in one place
and lets pattern subscribers pick up new events automatically.
"""


class EventTypes:
    """All event types in CourseGate organized by domain."""

    class EnrollmentRequest:
        """Enrollment request lifecycle events."""

        CREATED = "request.created"
        APPROVED = "request.approved"
        REJECTED = "request.rejected"


class EventPatterns:
    """Wildcard patterns for subscribing to multiple events."""

    ALL_ENROLLMENT_REQUEST = "request.*"
