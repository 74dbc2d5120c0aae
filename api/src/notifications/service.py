"""Fire-and-forget delivery of forum events.

Services call ``emit`` after their state change is committed and their
content lock is released. Each event is handed to every sink in a
background task bounded by a timeout. A failing or slow sink is logged and
otherwise ignored: committed forum state never depends on delivery.
"""

import asyncio
from typing import Any
from uuid import UUID

import structlog

from .models import EventType, ForumEvent
from .sinks import EventSink


logger = structlog.get_logger(__name__)


class NotificationService:
    """Publishes forum events to the configured sinks."""

    def __init__(self, sinks: list[EventSink] | None = None, timeout: float = 2.0):
        """Initialize notification service.

        Args:
            sinks: Event destinations, in delivery order
            timeout: Upper bound in seconds for delivering one event to one sink
        """
        self.sinks = list(sinks or [])
        self.timeout = timeout
        self._pending: set[asyncio.Task] = set()
        self._events_published = 0
        self._events_failed = 0

    def emit(
        self,
        event_type: EventType,
        content_id: UUID,
        actor_id: UUID | None,
        **metadata: Any,
    ) -> ForumEvent:
        """Build and publish an event. Never raises, never blocks."""
        event = ForumEvent(
            event_type=event_type,
            content_id=content_id,
            actor_id=actor_id,
            metadata=metadata,
        )
        self.publish(event)
        return event

    def publish(self, event: ForumEvent) -> None:
        """Schedule delivery of an event to every sink."""
        for sink in self.sinks:
            task = asyncio.create_task(self._deliver(sink, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, sink: EventSink, event: ForumEvent) -> None:
        try:
            await asyncio.wait_for(sink.publish(event), timeout=self.timeout)
            self._events_published += 1
        except TimeoutError:
            self._events_failed += 1
            logger.warning(
                "event_publish_timeout",
                sink=sink.name,
                event_type=event.event_type.value,
                content_id=str(event.content_id),
                timeout=self.timeout,
            )
        except Exception as e:
            # Delivery is best effort; forum state is already committed
            self._events_failed += 1
            logger.warning(
                "event_publish_failed",
                sink=sink.name,
                event_type=event.event_type.value,
                content_id=str(event.content_id),
                error=str(e),
                error_type=type(e).__name__,
            )

    async def drain(self) -> None:
        """Wait for in-flight deliveries, e.g. on shutdown."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def get_stats(self) -> dict[str, int]:
        """Delivery counters for the health endpoint."""
        return {
            "sinks": len(self.sinks),
            "pending": len(self._pending),
            "published": self._events_published,
            "failed": self._events_failed,
        }
