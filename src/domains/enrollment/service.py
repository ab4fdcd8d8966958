# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request service.

This module provides the EnrollmentRequestService class for:
- Students requesting enrollment in a course
- Admins approving or rejecting single requests
- Bulk approve/reject with per-request outcomes
- Listing, counting and dashboard statistics
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any, Sequence

from src.core.config.settings import EnrollmentSettings, Settings, get_settings
from src.domains.enrollment.bulk import BulkEnrollmentProcessor
from src.domains.enrollment.errors import RequestNotFoundError
from src.domains.enrollment.repository import EnrollmentRequestRepository
from src.infrastructure.database.connection import get_sessionmaker
from src.infrastructure.database.models.enrollment import EnrollmentRequestStatus
from src.infrastructure.events import EventBus, EventTypes, get_event_bus
from src.infrastructure.notifications import EventBusNotifier, Notifier, NullNotifier
from src.models.enrollment import (
    BulkAction,
    BulkResult,
    CourseRequestCount,
    EnrollmentRequestQuery,
    EnrollmentRequestResponse,
    EnrollmentRequestStatistics,
    MonthlyRequestCount,
    PaginatedEnrollmentRequests,
)
from src.utils.datetime import month_key, month_start

logger = logging.getLogger(__name__)


def _clean_text(value: str | None) -> str | None:
    """Trim free text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class EnrollmentRequestService:
    """Service for the enrollment request lifecycle.

    A request is created PENDING and is reviewed exactly once, ending
    APPROVED (with an Enrollment for the student) or REJECTED. All status
    changes go through EnrollmentRequestRepository.transition_atomic.

    Attributes:
        repository: Enrollment request repository.
        notifier: Receives request.created/approved/rejected events.
        settings: Enrollment processing settings.
    """

    def __init__(
        self,
        repository: EnrollmentRequestRepository,
        notifier: Notifier | None = None,
        settings: EnrollmentSettings | None = None,
    ) -> None:
        """Initialize enrollment request service.

        Args:
            repository: Enrollment request repository.
            notifier: Event notifier. Defaults to dropping events.
            settings: Enrollment settings. Defaults to environment values.
        """
        self.repository = repository
        self.notifier: Notifier = notifier or NullNotifier()
        self.settings = settings or EnrollmentSettings()
        self._bulk_processor = BulkEnrollmentProcessor(
            self,
            max_concurrency=self.settings.bulk_max_concurrency,
        )

    async def create_enrollment_request(
        self,
        student_id: str,
        course_id: str,
        message: str | None = None,
    ) -> EnrollmentRequestResponse:
        """Create a pending enrollment request for a student.

        Args:
            student_id: Requesting student.
            course_id: Requested course.
            message: Optional note to the reviewing admin.

        Returns:
            The created request.

        Raises:
            AlreadyEnrolledError: If the student is already enrolled.
            DuplicateRequestError: If a pending request already exists.
            StoreUnavailableError: If the database fails.
        """
        request = await self.repository.create(
            student_id=student_id,
            course_id=course_id,
            message=_clean_text(message),
        )
        snapshot = EnrollmentRequestResponse.model_validate(request)

        logger.info(
            "Created enrollment request: id=%s, student=%s, course=%s",
            snapshot.id,
            student_id,
            course_id,
        )

        self._notify(EventTypes.EnrollmentRequest.CREATED, snapshot)
        return snapshot

    async def get_enrollment_request_by_id(self, request_id: str) -> EnrollmentRequestResponse:
        """Get an enrollment request by ID.

        Raises:
            RequestNotFoundError: If the request does not exist.
        """
        request = await self.repository.find_by_id(request_id)
        if request is None:
            raise RequestNotFoundError(request_id=request_id)
        return EnrollmentRequestResponse.model_validate(request)

    async def list_enrollment_requests(
        self,
        query: EnrollmentRequestQuery | None = None,
    ) -> PaginatedEnrollmentRequests:
        """List enrollment requests, newest first by default.

        Args:
            query: Filters and pagination. page_size is capped by
                settings.max_page_size.

        Returns:
            One page of requests with totals.
        """
        if query is None:
            query = EnrollmentRequestQuery(page_size=self.settings.default_page_size)
        if query.page_size > self.settings.max_page_size:
            query = query.model_copy(update={"page_size": self.settings.max_page_size})

        requests, total = await self.repository.find_many(query)
        items = [EnrollmentRequestResponse.model_validate(r) for r in requests]
        return PaginatedEnrollmentRequests.build(items, total, query)

    async def approve_enrollment_request(
        self,
        request_id: str,
        reviewed_by: str,
        admin_note: str | None = None,
    ) -> EnrollmentRequestResponse:
        """Approve a pending request and enroll the student.

        The status change and the new Enrollment are written in one
        transaction.

        Args:
            request_id: Request to approve.
            reviewed_by: Reviewing admin.
            admin_note: Optional note to the student.

        Returns:
            The approved request.

        Raises:
            RequestNotFoundError: If the request does not exist.
            NotPendingError: If the request was already reviewed.
            AlreadyEnrolledError: If the student is already enrolled.
            StoreUnavailableError: If the database fails.
        """
        return await self._review(
            request_id,
            EnrollmentRequestStatus.APPROVED,
            reviewed_by,
            admin_note,
        )

    async def reject_enrollment_request(
        self,
        request_id: str,
        reviewed_by: str,
        admin_note: str | None = None,
    ) -> EnrollmentRequestResponse:
        """Reject a pending request.

        Raises:
            RequestNotFoundError: If the request does not exist.
            NotPendingError: If the request was already reviewed.
            StoreUnavailableError: If the database fails.
        """
        return await self._review(
            request_id,
            EnrollmentRequestStatus.REJECTED,
            reviewed_by,
            admin_note,
        )

    async def bulk_process_enrollment_requests(
        self,
        request_ids: Sequence[str],
        action: BulkAction | str,
        reviewed_by: str,
        admin_note: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BulkResult:
        """Approve or reject many requests, isolating each one.

        A failing request never affects the others; its reason is reported
        in BulkResult.failed. Setting cancel_event stops the call before the
        next request is started, and requests not started are left out of
        the result.

        Args:
            request_ids: Requests to process, in order.
            action: "approve" or "reject".
            reviewed_by: Reviewing admin.
            admin_note: Optional note applied to every request.
            cancel_event: Optional event that cancels remaining requests.

        Returns:
            Per-request outcomes and counts.

        Raises:
            NoRequestIdsError: If request_ids is empty or a bare string.
            InvalidActionError: If action is not approve or reject.
        """
        return await self._bulk_processor.process(
            request_ids,
            action,
            reviewed_by,
            admin_note=admin_note,
            cancel_event=cancel_event,
        )

    async def delete_enrollment_request(self, request_id: str) -> None:
        """Delete a pending request.

        Raises:
            RequestNotFoundError: If the request does not exist.
            InvalidStateError: If the request was already reviewed.
        """
        await self.repository.delete_by_id(request_id)

    async def get_pending_requests_count(self, course_id: str | None = None) -> int:
        """Count pending requests, optionally for one course."""
        return await self.repository.count_pending(course_id)

    async def get_enrollment_request_statistics(self) -> EnrollmentRequestStatistics:
        """Build dashboard statistics.

        Covers counts per status, requests per month for the last
        settings.statistics_months months (newest month first, months without
        requests omitted), the courses with most requests and the most recent
        requests.

        Returns:
            Enrollment request statistics.
        """
        by_status = await self.repository.count_by_status()

        since = month_start(months_back=self.settings.statistics_months - 1)
        created = await self.repository.created_since(since)
        per_month = Counter(month_key(created_at) for created_at in created)

        top_courses = await self.repository.count_by_course(
            self.settings.statistics_top_courses
        )

        recent_query = EnrollmentRequestQuery(
            page_size=min(self.settings.statistics_recent_limit, self.settings.max_page_size)
        )
        recent, _ = await self.repository.find_many(recent_query)

        return EnrollmentRequestStatistics(
            total_requests=sum(by_status.values()),
            pending_requests=by_status.get(EnrollmentRequestStatus.PENDING, 0),
            approved_requests=by_status.get(EnrollmentRequestStatus.APPROVED, 0),
            rejected_requests=by_status.get(EnrollmentRequestStatus.REJECTED, 0),
            requests_by_month=[
                MonthlyRequestCount(month=month, count=count)
                for month, count in sorted(per_month.items(), reverse=True)
            ],
            requests_by_course=[
                CourseRequestCount(course_id=course_id, count=count)
                for course_id, count in top_courses
            ],
            recent_requests=[EnrollmentRequestResponse.model_validate(r) for r in recent],
        )

    async def _review(
        self,
        request_id: str,
        target_status: EnrollmentRequestStatus,
        reviewed_by: str,
        admin_note: str | None,
    ) -> EnrollmentRequestResponse:
        request = await self.repository.transition_atomic(
            request_id,
            target_status,
            reviewed_by,
            _clean_text(admin_note),
        )
        snapshot = EnrollmentRequestResponse.model_validate(request)

        logger.info(
            "Reviewed enrollment request: id=%s, status=%s, by=%s",
            request_id,
            target_status.value,
            reviewed_by,
        )

        if target_status == EnrollmentRequestStatus.APPROVED:
            self._notify(EventTypes.EnrollmentRequest.APPROVED, snapshot)
        else:
            self._notify(EventTypes.EnrollmentRequest.REJECTED, snapshot)
        return snapshot

    def _notify(self, event_type: str, request: EnrollmentRequestResponse) -> None:
        """Hand an event to the notifier; failures are only logged."""
        payload: dict[str, Any] = {
            "request_id": request.id,
            "student_id": request.student_id,
            "course_id": request.course_id,
            "status": request.status.value,
            "reviewed_by": request.reviewed_by,
            "admin_note": request.admin_note,
        }
        try:
            self.notifier.notify(event_type, payload)
        except Exception as e:
            logger.warning(
                "Notifier failed for %s on request %s: %s",
                event_type,
                request.id,
                str(e),
            )


def create_enrollment_service(
    settings: Settings | None = None,
    event_bus: EventBus | None = None,
) -> EnrollmentRequestService:
    """Wire an EnrollmentRequestService to the initialized database.

    init_database() must have been called first.

    Args:
        settings: Application settings. Defaults to get_settings().
        event_bus: Bus for lifecycle events. Defaults to the global bus.

    Returns:
        Ready-to-use service.
    """
    settings = settings or get_settings()
    repository = EnrollmentRequestRepository(get_sessionmaker())

    notifier: Notifier
    if settings.enrollment.notifications_enabled:
        notifier = EventBusNotifier(event_bus or get_event_bus())
    else:
        notifier = NullNotifier()

    return EnrollmentRequestService(repository, notifier, settings.enrollment)
