# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for CourseGate.

This package contains domain services that encapsulate business logic.

Domains:
    enrollment: Enrollment requests, review and bulk processing.
"""
