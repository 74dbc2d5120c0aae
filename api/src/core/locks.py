"""Per-content mutual exclusion.

Every mutation of a post, comment, poll or moderation target runs while
holding the lock for that target id, so concurrent calls against the same
id never interleave. Calls against different ids never contend.

With Redis configured the lock is a Redis lock shared by all API workers;
otherwise it is an in-process ``asyncio.Lock`` per key.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import LockError

from src.core.exceptions import ContentBusyError


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


def content_key(kind: str, content_id: UUID | str) -> str:
    """Lock key for a piece of content, e.g. ``post:<uuid>``."""
    return f"{kind}:{content_id}"


class ContentLockManager:
    """Hands out per-key locks."""

    def __init__(
        self,
        redis: "Redis | None" = None,
        timeout: float = 10.0,
        blocking_timeout: float = 5.0,
        prefix: str = "locks:content",
    ):
        """Initialize lock manager.

        Args:
            redis: Optional Redis client for cross-process locks
            timeout: Seconds before a Redis lock expires on its own
            blocking_timeout: Seconds to wait for a busy lock
            prefix: Redis key prefix
        """
        self.redis = redis
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.prefix = prefix
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Raises:
            ContentBusyError: If the lock is not acquired within blocking_timeout
        """
        if self.redis is not None:
            async with self._hold_redis(key):
                yield
            return

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.blocking_timeout)
            except TimeoutError:
                logger.warning("content_lock_busy", key=key)
                raise ContentBusyError(key) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    @asynccontextmanager
    async def _hold_redis(self, key: str) -> AsyncIterator[None]:
        lock = self.redis.lock(
            f"{self.prefix}:{key}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        if not await lock.acquire():
            logger.warning("content_lock_busy", key=key, backend="redis")
            raise ContentBusyError(key)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired before release; another holder may already own it
                logger.warning("content_lock_expired", key=key, timeout=self.timeout)

    def active_keys(self) -> list[str]:
        """Keys with holders or waiters (in-process backend only)."""
        return list(self._holders)
