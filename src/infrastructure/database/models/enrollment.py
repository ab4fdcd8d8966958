# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request and enrollment models.

A student asks to join a course through an EnrollmentRequest. An admin
moves the request from PENDING to APPROVED or REJECTED exactly once; an
approval also creates the Enrollment row for the same student and course.
"""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import CheckConstraint, DateTime, Enum, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.utils.datetime import utc_now


class EnrollmentRequestStatus(str, enum.Enum):
    """Lifecycle states of an enrollment request."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible from this state."""
        return not ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[EnrollmentRequestStatus, frozenset[EnrollmentRequestStatus]] = {
    EnrollmentRequestStatus.PENDING: frozenset(
        {EnrollmentRequestStatus.APPROVED, EnrollmentRequestStatus.REJECTED}
    ),
    EnrollmentRequestStatus.APPROVED: frozenset(),
    EnrollmentRequestStatus.REJECTED: frozenset(),
}


def can_transition(
    current: EnrollmentRequestStatus,
    target: EnrollmentRequestStatus,
) -> bool:
    """Check whether a request in status current may move to target."""
    return target in ALLOWED_TRANSITIONS[current]


class EnrollmentRequest(Base, TimestampMixin):
    """A student's application to join a course."""

    __tablename__ = "enrollment_requests"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[EnrollmentRequestStatus] = mapped_column(
        Enum(
            EnrollmentRequestStatus,
            name="enrollment_request_status",
            native_enum=False,
            length=16,
        ),
        default=EnrollmentRequestStatus.PENDING,
        nullable=False,
        index=True,
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        # One open request per student and course; reviewed ones are history.
        Index(
            "uq_enrollment_requests_pending_pair",
            "student_id",
            "course_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("ix_enrollment_requests_created_at", "created_at"),
        CheckConstraint(
            "(status = 'PENDING') = (reviewed_by IS NULL AND reviewed_at IS NULL)",
            name="ck_enrollment_requests_review_fields",
        ),
    )

    @property
    def is_pending(self) -> bool:
        """Check whether the request still awaits review."""
        return self.status == EnrollmentRequestStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<EnrollmentRequest(id={self.id}, student_id={self.student_id}, "
            f"course_id={self.course_id}, status={self.status})>"
        )


class Enrollment(Base):
    """A student's membership in a course."""

    __tablename__ = "enrollments"

    student_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Enrollment(student_id={self.student_id}, course_id={self.course_id})>"
