"""CourseGate Backend.

Course enrollment workflow: students request to join courses and
administrators review those requests individually or in bulk.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
