# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for CourseGate.

All timestamps are stored in UTC and all Python datetimes handled by the
application are timezone-aware.

Usage:
    from src.utils.datetime import utc_now

    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return a UTC-aware datetime.

    Naive datetimes are assumed to already be UTC, which is what some
    drivers (SQLite) hand back for TIMESTAMPTZ columns.

    Args:
        dt: Datetime to normalize.

    Returns:
        Timezone-aware datetime in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def month_start(months_back: int = 0, reference: datetime | None = None) -> datetime:
    """Get the first instant of a month counted back from a reference.

    Args:
        months_back: Number of whole months to go back (0 = current month).
        reference: Reference time, defaults to now.

    Returns:
        Timezone-aware UTC datetime at midnight of the first day of the month.

    Example:
        >>> month_start(2, datetime(2025, 3, 15, tzinfo=timezone.utc))
        datetime.datetime(2025, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    ref = ensure_utc(reference) if reference else utc_now()
    index = ref.year * 12 + (ref.month - 1) - months_back
    year, month = divmod(index, 12)
    return datetime(year, month + 1, 1, tzinfo=timezone.utc)


def month_key(dt: datetime) -> str:
    """Format a datetime as its UTC calendar month, e.g. ``2025-03``."""
    return ensure_utc(dt).strftime("%Y-%m")
