"""Destinations for forum events."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import orjson
import structlog

from .models import ForumEvent


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


class EventSink(ABC):
    """Receives every published event."""

    name = "sink"

    @abstractmethod
    async def publish(self, event: ForumEvent) -> None:
        """Deliver one event. May raise; the caller isolates failures."""


class RedisEventSink(EventSink):
    """Publishes events to a Redis Pub/Sub channel for real-time consumers."""

    name = "redis"

    def __init__(self, redis: "Redis", channel: str = "forum:events"):
        self.redis = redis
        self.channel = channel

    async def publish(self, event: ForumEvent) -> None:
        message = {"type": "forum_event", "data": event.to_dict()}
        await self.redis.publish(self.channel, orjson.dumps(message))


class LoggingEventSink(EventSink):
    """Writes events to the structured log, where analytics pipelines pick them up."""

    name = "log"

    async def publish(self, event: ForumEvent) -> None:
        logger.info(
            "forum_event",
            event_type=event.event_type.value,
            content_id=str(event.content_id),
            event_actor_id=str(event.actor_id) if event.actor_id else None,
            metadata=event.metadata,
        )
