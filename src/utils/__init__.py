# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for CourseGate.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from src.utils.datetime import ensure_utc, month_key, month_start, utc_now
from src.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Datetime
    "utc_now",
    "ensure_utc",
    "month_start",
    "month_key",
]
