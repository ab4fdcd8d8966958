# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for CourseGate.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.enrollment.bulk_max_concurrency)
    1
"""

from src.core.config.settings import (
    DatabaseSettings,
    EnrollmentSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "DatabaseSettings",
    "EnrollmentSettings",
]
