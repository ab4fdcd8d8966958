# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification hand-off for CourseGate.

Enrollment operations emit lifecycle events through a Notifier. Delivery
to students (in-app, email, push) subscribes to the event bus and is owned
by the notification subsystem.
"""

from src.infrastructure.notifications.notifier import (
    EventBusNotifier,
    Notifier,
    NullNotifier,
)

__all__ = [
    "Notifier",
    "EventBusNotifier",
    "NullNotifier",
]
