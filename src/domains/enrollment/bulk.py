# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk approve/reject of enrollment requests.

Each request of a bulk call is processed as its own single-request review,
in its own transaction. A failure is recorded against the request and the
call moves on; nothing one request does can roll back another.

With max_concurrency=1 requests are processed strictly in input order.
Above 1, up to max_concurrency reviews run at once and outcomes are
collected in input order after all of them finished, so the result has the
same shape either way.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from src.domains.enrollment.errors import (
    EnrollmentRequestError,
    InvalidActionError,
    NoRequestIdsError,
)
from src.models.enrollment import BulkAction, BulkFailure, BulkResult

if TYPE_CHECKING:
    from src.domains.enrollment.service import EnrollmentRequestService

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "unexpected error"
UNEXPECTED_ERROR_CODE = "internal_error"

ReviewOperation = Callable[[str, str, "str | None"], Awaitable[object]]


class _Skipped:
    """Marker for a request not started because the call was cancelled."""


_SKIPPED = _Skipped()


class BulkResultAggregator:
    """Collects per-request outcomes into a BulkResult.

    Outcomes must be recorded in input order; successful and failed keep
    that order.

    Example:
        aggregator = BulkResultAggregator(total_requested=3)
        aggregator.record_success("r1")
        aggregator.record_failure("r2", NotPendingError(request_id="r2"))
        result = aggregator.finalize()
    """

    def __init__(self, total_requested: int) -> None:
        self.total_requested = total_requested
        self._successful: list[str] = []
        self._failed: list[BulkFailure] = []

    @property
    def processed_count(self) -> int:
        return len(self._successful) + len(self._failed)

    def record_success(self, request_id: str) -> None:
        self._successful.append(request_id)

    def record_failure(self, request_id: str, error: BaseException) -> None:
        """Record a failed request.

        Engine errors are reported by kind. Anything else is reported as an
        unexpected error without leaking its message.
        """
        if isinstance(error, EnrollmentRequestError):
            failure = BulkFailure(
                request_id=request_id,
                error=error.default_message,
                code=error.kind.value,
            )
        else:
            failure = BulkFailure(
                request_id=request_id,
                error=UNEXPECTED_ERROR_MESSAGE,
                code=UNEXPECTED_ERROR_CODE,
            )
        self._failed.append(failure)

    def record(self, request_id: str, outcome: BaseException | None) -> None:
        """Record an outcome: None for success, the exception for a failure."""
        if outcome is None:
            self.record_success(request_id)
        else:
            self.record_failure(request_id, outcome)

    def finalize(self, cancelled: bool = False) -> BulkResult:
        """Build the result from everything recorded so far."""
        return BulkResult(
            successful=list(self._successful),
            failed=list(self._failed),
            total_requested=self.total_requested,
            total_processed=self.processed_count,
            success_count=len(self._successful),
            failure_count=len(self._failed),
            cancelled=cancelled,
        )


class BulkEnrollmentProcessor:
    """Runs single-request reviews for every id of a bulk call.

    Attributes:
        service: Service whose approve/reject operations are applied.
        max_concurrency: Maximum reviews in flight at once.
    """

    def __init__(
        self,
        service: EnrollmentRequestService,
        max_concurrency: int = 1,
    ) -> None:
        self.service = service
        self.max_concurrency = max(1, max_concurrency)

    async def process(
        self,
        request_ids: Sequence[str],
        action: BulkAction | str,
        reviewed_by: str,
        admin_note: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BulkResult:
        """Apply action to every request id.

        Args:
            request_ids: Requests to process, in order.
            action: "approve" or "reject".
            reviewed_by: Reviewing admin.
            admin_note: Optional note applied to every request.
            cancel_event: Once set, no further request is started.

        Returns:
            Per-request outcomes and counts.

        Raises:
            NoRequestIdsError: If request_ids is empty or a bare string.
            InvalidActionError: If action is not approve or reject.
        """
        if isinstance(request_ids, str):
            raise NoRequestIdsError(
                "request ids must be a sequence of ids, not a string",
                details={"request_ids": request_ids},
            )
        ids = list(request_ids) if request_ids is not None else []
        if not ids:
            raise NoRequestIdsError()

        try:
            bulk_action = BulkAction(action)
        except ValueError:
            raise InvalidActionError(details={"action": str(action)}) from None

        operation = self._operation_for(bulk_action)
        aggregator = BulkResultAggregator(total_requested=len(ids))

        if self.max_concurrency == 1:
            cancelled = await self._run_sequential(
                ids, operation, reviewed_by, admin_note, cancel_event, aggregator
            )
        else:
            cancelled = await self._run_concurrent(
                ids, operation, reviewed_by, admin_note, cancel_event, aggregator
            )

        result = aggregator.finalize(cancelled=cancelled)
        logger.info(
            "Bulk enrollment processed: action=%s, by=%s, requested=%d, "
            "processed=%d, success=%d, failed=%d, cancelled=%s",
            bulk_action.value,
            reviewed_by,
            result.total_requested,
            result.total_processed,
            result.success_count,
            result.failure_count,
            result.cancelled,
        )
        return result

    def _operation_for(self, action: BulkAction) -> ReviewOperation:
        if action == BulkAction.APPROVE:
            return self.service.approve_enrollment_request
        return self.service.reject_enrollment_request

    async def _run_sequential(
        self,
        ids: list[str],
        operation: ReviewOperation,
        reviewed_by: str,
        admin_note: str | None,
        cancel_event: asyncio.Event | None,
        aggregator: BulkResultAggregator,
    ) -> bool:
        for request_id in ids:
            if cancel_event is not None and cancel_event.is_set():
                return True
            outcome = await self._process_one(operation, request_id, reviewed_by, admin_note)
            aggregator.record(request_id, outcome)
        return False

    async def _run_concurrent(
        self,
        ids: list[str],
        operation: ReviewOperation,
        reviewed_by: str,
        admin_note: str | None,
        cancel_event: asyncio.Event | None,
        aggregator: BulkResultAggregator,
    ) -> bool:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def worker(request_id: str) -> BaseException | None | _Skipped:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return _SKIPPED
                return await self._process_one(operation, request_id, reviewed_by, admin_note)

        outcomes = await asyncio.gather(*(worker(request_id) for request_id in ids))

        cancelled = False
        for request_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, _Skipped):
                cancelled = True
                continue
            aggregator.record(request_id, outcome)
        return cancelled

    async def _process_one(
        self,
        operation: ReviewOperation,
        request_id: str,
        reviewed_by: str,
        admin_note: str | None,
    ) -> BaseException | None:
        """Review one request, returning the failure instead of raising it."""
        try:
            await operation(request_id, reviewed_by, admin_note)
        except EnrollmentRequestError as e:
            logger.warning(
                "Bulk item failed: request=%s, code=%s, error=%s",
                request_id,
                e.kind.value,
                e.message,
            )
            return e
        except Exception as e:
            logger.exception("Bulk item raised unexpected error: request=%s", request_id)
            return e
        return None
