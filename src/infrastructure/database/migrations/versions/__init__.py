# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Migration revisions.

- 001_add_enrollment_tables: enrollment_requests and enrollments
"""
