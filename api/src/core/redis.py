"""Redis coordination for the forum services.

Redis is optional. When it answers, content locks are shared across
processes and forum events are published on ``notification_channel``.
When it is disabled or down, ``ForumRedis.connect`` returns None and the
services run with in-process locks and log-only events.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.config.settings import Settings, get_settings
from src.core.locks import ContentLockManager
from src.core.logging import get_logger
from src.notifications.sinks import EventSink, LoggingEventSink, RedisEventSink


logger = get_logger(__name__)


class ForumRedis:
    """Process-wide Redis client holder."""

    _client: redis.Redis | None = None

    @classmethod
    async def connect(cls, settings: Settings | None = None) -> redis.Redis | None:
        """Connect and ping; None when Redis is disabled or unreachable."""
        if cls._client is not None:
            return cls._client

        settings = settings or get_settings()
        if not settings.redis_enabled:
            logger.info("redis_disabled", locks="in_process", events="log_only")
            return None

        client = redis.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_connect_timeout,
            retry_on_timeout=settings.redis_retry_on_timeout,
            health_check_interval=settings.redis_health_check_interval,
            decode_responses=True,
        )
        try:
            await client.ping()
        except RedisError as e:
            logger.warning(
                "redis_unavailable",
                url=settings.redis_url,
                error=str(e),
                message="Running without Redis - in-process locks, log-only events",
            )
            await client.aclose()
            return None

        cls._client = client
        logger.info(
            "redis_connected",
            url=settings.redis_url,
            event_channel=settings.notification_channel,
        )
        return client

    @classmethod
    async def disconnect(cls) -> None:
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None
            logger.info("redis_disconnected")

    @classmethod
    def client(cls) -> redis.Redis | None:
        return cls._client

    @classmethod
    def is_connected(cls) -> bool:
        return cls._client is not None


def build_lock_manager(
    settings: Settings, client: redis.Redis | None = None
) -> ContentLockManager:
    """Content locks on Redis when connected, in-process otherwise."""
    return ContentLockManager(
        redis=client,
        timeout=settings.lock_timeout_seconds,
        blocking_timeout=settings.lock_blocking_timeout_seconds,
    )


def build_event_sinks(
    settings: Settings, client: redis.Redis | None = None
) -> list[EventSink]:
    """Always log events; also publish them when Redis is connected."""
    sinks: list[EventSink] = [LoggingEventSink()]
    if client is not None:
        sinks.append(RedisEventSink(client, settings.notification_channel))
    return sinks
