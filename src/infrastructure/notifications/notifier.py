# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fire-and-forget notifiers for enrollment lifecycle events.

Enrollment operations hand their events to a Notifier and return without
waiting for delivery. Delivery problems are logged here and never reach the
operation that produced the event.

Example:
    notifier = EventBusNotifier(get_event_bus())
    notifier.notify("request.approved", {"request_id": "123"})
    ...
    await notifier.drain()  # at shutdown
"""

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

from src.infrastructure.events.bus import EventBus

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Receives lifecycle events without blocking the caller."""

    def notify(self, event_type: str, payload: dict[str, Any]) -> None:
        """Hand an event over for delivery.

        Args:
            event_type: Event type string, e.g. "request.approved".
            payload: JSON-serializable event data.
        """
        ...


class NullNotifier:
    """Notifier that drops every event (notifications disabled)."""

    def notify(self, event_type: str, payload: dict[str, Any]) -> None:
        logger.debug("Notifications disabled, dropping %s", event_type)


class EventBusNotifier:
    """Publishes events on the in-process EventBus as background tasks.

    Each notify() schedules EventBus.publish on the running loop and returns
    at once. References to in-flight tasks are kept until they finish so
    they are not garbage collected mid-flight.

    Attributes:
        event_bus: Bus the events are published on.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self.event_bus = event_bus
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        """Number of events still being delivered."""
        return len(self._pending)

    def notify(self, event_type: str, payload: dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping event %s", event_type)
            return

        task = loop.create_task(self._publish(event_type, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for all in-flight events to be delivered."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        try:
            await self.event_bus.publish(event_type, payload)
        except Exception as e:
            logger.error(
                "Failed to publish event %s: %s",
                event_type,
                str(e),
                exc_info=True,
            )
