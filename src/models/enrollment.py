# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request DTOs.

Snapshots, queries and results returned by EnrollmentRequestService.
Snapshots are immutable: two reads of an unchanged request compare equal.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.infrastructure.database.models.enrollment import EnrollmentRequestStatus


class BulkAction(str, Enum):
    """Decision applied to every request of a bulk call."""

    APPROVE = "approve"
    REJECT = "reject"


class EnrollmentRequestResponse(BaseModel):
    """Read-only snapshot of an enrollment request."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    student_id: str
    course_id: str
    status: EnrollmentRequestStatus
    message: str | None = None
    admin_note: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class EnrollmentRequestQuery(BaseModel):
    """Filters and pagination for listing enrollment requests."""

    status: EnrollmentRequestStatus | None = None
    student_id: str | None = None
    course_id: str | None = None
    created_from: datetime | None = Field(
        default=None,
        description="Only requests created at or after this instant.",
    )
    created_to: datetime | None = Field(
        default=None,
        description="Only requests created at or before this instant.",
    )
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    sort_order: Literal["asc", "desc"] = "desc"

    @model_validator(mode="after")
    def validate_date_range(self) -> Self:
        """Reject ranges that end before they start."""
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValueError("created_from must not be after created_to")
        return self

    @property
    def offset(self) -> int:
        """Rows to skip for the requested page."""
        return (self.page - 1) * self.page_size


class PaginatedEnrollmentRequests(BaseModel):
    """One page of enrollment requests."""

    items: list[EnrollmentRequestResponse]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def build(
        cls,
        items: list[EnrollmentRequestResponse],
        total: int,
        query: EnrollmentRequestQuery,
    ) -> "PaginatedEnrollmentRequests":
        return cls(
            items=items,
            total=total,
            page=query.page,
            page_size=query.page_size,
            total_pages=math.ceil(total / query.page_size),
        )


class BulkFailure(BaseModel):
    """One request a bulk call could not process.

    Attributes:
        request_id: The failing request id, as given by the caller.
        error: Human-readable reason, e.g. "not pending".
        code: Failure kind, e.g. "not_pending".
    """

    model_config = ConfigDict(frozen=True)

    request_id: str
    error: str
    code: str


class BulkResult(BaseModel):
    """Outcome of a bulk approve/reject call.

    successful and failed each keep the relative order of the input ids.
    success_count + failure_count always equals total_processed, which
    equals total_requested unless the call was cancelled part way.
    """

    successful: list[str] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)
    total_requested: int
    total_processed: int
    success_count: int
    failure_count: int
    cancelled: bool = False


class MonthlyRequestCount(BaseModel):
    """Requests created in one calendar month (``YYYY-MM``)."""

    month: str
    count: int


class CourseRequestCount(BaseModel):
    """Requests made for one course."""

    course_id: str
    count: int


class EnrollmentRequestStatistics(BaseModel):
    """Dashboard figures for enrollment requests."""

    total_requests: int
    pending_requests: int
    approved_requests: int
    rejected_requests: int
    requests_by_month: list[MonthlyRequestCount]
    requests_by_course: list[CourseRequestCount]
    recent_requests: list[EnrollmentRequestResponse]
