# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request repository.

Typed access to the enrollment_requests and enrollments tables. Every
method runs in its own session and transaction, so callers processing
several requests get one isolated unit of work per call.

transition_atomic() is the only place a request's status changes. It locks
the request row (SELECT ... FOR UPDATE) before checking that the request is
still pending, and writes the status together with the Enrollment row of an
approval in the same transaction.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from sqlalchemy import ColumnElement, exists, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.enrollment.errors import (
    AlreadyEnrolledError,
    DuplicateRequestError,
    EnrollmentRequestError,
    InvalidStateError,
    NotPendingError,
    RequestNotFoundError,
    StoreUnavailableError,
)
from src.infrastructure.database.models.enrollment import (
    Enrollment,
    EnrollmentRequest,
    EnrollmentRequestStatus,
    can_transition,
)
from src.models.enrollment import EnrollmentRequestQuery
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EnrollmentRequestRepository:
    """Repository for enrollment requests and the enrollments they create.

    Returned EnrollmentRequest objects are detached from their session and
    fully loaded.

    Attributes:
        session_factory: Sessionmaker producing one session per operation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository.

        Args:
            session_factory: Sessionmaker configured with expire_on_commit=False.
        """
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Open a session with a transaction committed on success.

        Raises:
            StoreUnavailableError: On any database or connection failure.
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except EnrollmentRequestError:
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.error("Enrollment store failure: %s", str(e))
            raise StoreUnavailableError(details={"error": str(e)}) from e

    async def create(
        self,
        student_id: str,
        course_id: str,
        message: str | None = None,
    ) -> EnrollmentRequest:
        """Create a pending enrollment request.

        Args:
            student_id: Requesting student.
            course_id: Requested course.
            message: Optional note from the student.

        Returns:
            The new request.

        Raises:
            AlreadyEnrolledError: If the student is already enrolled.
            DuplicateRequestError: If a pending request exists for the pair.
        """
        async with self._transaction() as session:
            if await self._enrollment_exists(session, student_id, course_id):
                raise AlreadyEnrolledError(
                    details={"student_id": student_id, "course_id": course_id}
                )

            existing = await session.execute(
                select(EnrollmentRequest.id).where(
                    EnrollmentRequest.student_id == student_id,
                    EnrollmentRequest.course_id == course_id,
                    EnrollmentRequest.status == EnrollmentRequestStatus.PENDING,
                )
            )
            existing_id = existing.scalar_one_or_none()
            if existing_id is not None:
                raise DuplicateRequestError(request_id=existing_id)

            request = EnrollmentRequest(
                student_id=student_id,
                course_id=course_id,
                message=message,
                status=EnrollmentRequestStatus.PENDING,
            )
            session.add(request)

            try:
                await session.flush()
            except IntegrityError as e:
                # A concurrent create for the same pair won the unique index.
                raise DuplicateRequestError(
                    details={"student_id": student_id, "course_id": course_id}
                ) from e

        return request

    async def find_by_id(self, request_id: str) -> EnrollmentRequest | None:
        """Get a request by ID, or None if it does not exist."""
        async with self._transaction() as session:
            result = await session.execute(
                select(EnrollmentRequest).where(EnrollmentRequest.id == request_id)
            )
            return result.scalar_one_or_none()

    async def find_many(
        self,
        query: EnrollmentRequestQuery,
    ) -> tuple[list[EnrollmentRequest], int]:
        """List requests matching the query's filters.

        Results are ordered by created_at (newest first unless the query
        asks for ascending order) with id as tie-breaker, so pages do not
        overlap.

        Args:
            query: Filters and pagination.

        Returns:
            Tuple of (requests on the page, total matching requests).
        """
        conditions = self._filter_conditions(query)

        if query.sort_order == "asc":
            ordering = (EnrollmentRequest.created_at.asc(), EnrollmentRequest.id.asc())
        else:
            ordering = (EnrollmentRequest.created_at.desc(), EnrollmentRequest.id.desc())

        async with self._transaction() as session:
            total_result = await session.execute(
                select(func.count()).select_from(EnrollmentRequest).where(*conditions)
            )
            total = total_result.scalar_one()

            result = await session.execute(
                select(EnrollmentRequest)
                .where(*conditions)
                .order_by(*ordering)
                .offset(query.offset)
                .limit(query.page_size)
            )
            items = list(result.scalars().all())

        return items, total

    async def count_pending(self, course_id: str | None = None) -> int:
        """Count pending requests, optionally for one course."""
        stmt = (
            select(func.count())
            .select_from(EnrollmentRequest)
            .where(EnrollmentRequest.status == EnrollmentRequestStatus.PENDING)
        )
        if course_id is not None:
            stmt = stmt.where(EnrollmentRequest.course_id == course_id)

        async with self._transaction() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def delete_by_id(self, request_id: str) -> None:
        """Delete a pending request.

        Reviewed requests are kept as history and cannot be deleted.

        Raises:
            RequestNotFoundError: If the request does not exist.
            InvalidStateError: If the request is not pending.
        """
        async with self._transaction() as session:
            request = await self._get_for_update(session, request_id)
            if not request.is_pending:
                raise InvalidStateError(
                    "only pending requests can be deleted",
                    request_id=request_id,
                    details={"status": request.status.value},
                )
            await session.delete(request)

        logger.info("Deleted enrollment request %s", request_id)

    async def transition_atomic(
        self,
        request_id: str,
        target_status: EnrollmentRequestStatus,
        reviewed_by: str,
        note: str | None = None,
    ) -> EnrollmentRequest:
        """Move a pending request to a terminal status in one transaction.

        The request row is locked before its status is checked, so of two
        concurrent transitions only the first sees PENDING. For an approval
        the Enrollment row is inserted in the same transaction; any failure
        rolls back both writes.

        Args:
            request_id: Request to transition.
            target_status: APPROVED or REJECTED.
            reviewed_by: Admin performing the review.
            note: Optional admin note.

        Returns:
            The updated request.

        Raises:
            RequestNotFoundError: If the request does not exist.
            NotPendingError: If the request was already reviewed.
            InvalidStateError: If the pending request cannot move to
                target_status.
            AlreadyEnrolledError: If approving and the student is enrolled.
        """
        async with self._transaction() as session:
            request = await self._get_for_update(session, request_id)

            if request.status.is_terminal:
                raise NotPendingError(
                    request_id=request_id,
                    details={"status": request.status.value},
                )
            if not can_transition(request.status, target_status):
                raise InvalidStateError(
                    f"cannot transition from {request.status.value} to {target_status.value}",
                    request_id=request_id,
                )

            if target_status == EnrollmentRequestStatus.APPROVED:
                if await self._enrollment_exists(
                    session, request.student_id, request.course_id
                ):
                    raise AlreadyEnrolledError(request_id=request_id)
                session.add(
                    Enrollment(student_id=request.student_id, course_id=request.course_id)
                )

            request.status = target_status
            request.reviewed_by = reviewed_by
            request.reviewed_at = utc_now()
            request.admin_note = note

            try:
                await session.flush()
            except IntegrityError as e:
                # Enrollment inserted concurrently by a path that does not
                # go through this request.
                raise AlreadyEnrolledError(request_id=request_id) from e

        return request

    async def count_by_status(self) -> dict[EnrollmentRequestStatus, int]:
        """Count requests per status; statuses without requests map to 0."""
        async with self._transaction() as session:
            result = await session.execute(
                select(EnrollmentRequest.status, func.count()).group_by(
                    EnrollmentRequest.status
                )
            )
            rows = result.all()

        counts = {status: 0 for status in EnrollmentRequestStatus}
        for status, count in rows:
            counts[EnrollmentRequestStatus(status)] = count
        return counts

    async def count_by_course(self, limit: int) -> list[tuple[str, int]]:
        """Get the courses with the most requests.

        Args:
            limit: Maximum number of courses.

        Returns:
            (course_id, request count) pairs, highest count first.
        """
        request_count = func.count(EnrollmentRequest.id)
        async with self._transaction() as session:
            result = await session.execute(
                select(EnrollmentRequest.course_id, request_count)
                .group_by(EnrollmentRequest.course_id)
                .order_by(request_count.desc(), EnrollmentRequest.course_id)
                .limit(limit)
            )
            return [(course_id, count) for course_id, count in result.all()]

    async def created_since(self, since: datetime) -> list[datetime]:
        """Get creation timestamps of requests created at or after since."""
        async with self._transaction() as session:
            result = await session.execute(
                select(EnrollmentRequest.created_at).where(
                    EnrollmentRequest.created_at >= since
                )
            )
            return list(result.scalars().all())

    async def _get_for_update(
        self,
        session: AsyncSession,
        request_id: str,
    ) -> EnrollmentRequest:
        """Load and lock a request row.

        Raises:
            RequestNotFoundError: If not found.
        """
        result = await session.execute(
            select(EnrollmentRequest)
            .where(EnrollmentRequest.id == request_id)
            .with_for_update()
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(request_id=request_id)
        return request

    async def _enrollment_exists(
        self,
        session: AsyncSession,
        student_id: str,
        course_id: str,
    ) -> bool:
        result = await session.execute(
            select(
                exists().where(
                    Enrollment.student_id == student_id,
                    Enrollment.course_id == course_id,
                )
            )
        )
        return bool(result.scalar())

    @staticmethod
    def _filter_conditions(query: EnrollmentRequestQuery) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if query.status is not None:
            conditions.append(EnrollmentRequest.status == query.status)
        if query.student_id is not None:
            conditions.append(EnrollmentRequest.student_id == query.student_id)
        if query.course_id is not None:
            conditions.append(EnrollmentRequest.course_id == query.course_id)
        if query.created_from is not None:
            conditions.append(EnrollmentRequest.created_at >= query.created_from)
        if query.created_to is not None:
            conditions.append(EnrollmentRequest.created_at <= query.created_to)
        return conditions
