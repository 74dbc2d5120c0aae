"""Forum event delivery to notification and analytics collaborators."""

from src.notifications.models import EventType, ForumEvent
from src.notifications.service import NotificationService
from src.notifications.sinks import EventSink, LoggingEventSink, RedisEventSink


__all__ = [
    "EventSink",
    "EventType",
    "ForumEvent",
    "LoggingEventSink",
    "NotificationService",
    "RedisEventSink",
]
