"""Tests for per-content locks."""

import asyncio
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from redis.exceptions import LockError

from src.core.exceptions import ContentBusyError
from src.core.locks import ContentLockManager, content_key


def test_content_key() -> None:
    post_id = uuid4()
    assert content_key("post", post_id) == f"post:{post_id}"


class TestInProcessLocks:
    """Tests for the asyncio.Lock backend."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = ContentLockManager(blocking_timeout=1.0)
        order = []

        async def worker(name: str):
            async with locks.hold("post:1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    @pytest.mark.asyncio
    async def test_busy_lock_times_out(self):
        locks = ContentLockManager(blocking_timeout=0.05)

        async with locks.hold("post:1"):
            with pytest.raises(ContentBusyError) as exc:
                async with locks.hold("post:1"):
                    pass

        assert exc.value.code == "content_busy"
        assert exc.value.key == "post:1"
        assert locks.active_keys() == []

    @pytest.mark.asyncio
    async def test_different_keys_do_not_contend(self):
        locks = ContentLockManager(blocking_timeout=0.05)

        async with locks.hold("post:1"):
            async with locks.hold("post:2"):
                assert sorted(locks.active_keys()) == ["post:1", "post:2"]

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = ContentLockManager(blocking_timeout=0.05)

        with pytest.raises(RuntimeError):
            async with locks.hold("post:1"):
                raise RuntimeError("boom")

        async with locks.hold("post:1"):
            pass
        assert locks.active_keys() == []


class TestRedisLocks:
    """Tests for the Redis backend."""

    @pytest.fixture
    def redis_lock(self):
        lock = Mock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock()
        return lock

    @pytest.fixture
    def redis(self, redis_lock):
        client = Mock()
        client.lock = Mock(return_value=redis_lock)
        return client

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, redis, redis_lock):
        locks = ContentLockManager(redis=redis, timeout=3.0, blocking_timeout=1.0)

        async with locks.hold("post:1"):
            redis_lock.release.assert_not_awaited()

        redis.lock.assert_called_once_with(
            "locks:content:post:1", timeout=3.0, blocking_timeout=1.0
        )
        redis_lock.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_acquired_raises_busy(self, redis, redis_lock):
        redis_lock.acquire.return_value = False
        locks = ContentLockManager(redis=redis)

        with pytest.raises(ContentBusyError):
            async with locks.hold("post:1"):
                pass

        redis_lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_lock_release_is_logged(self, redis, redis_lock):
        redis_lock.release.side_effect = LockError("expired")
        locks = ContentLockManager(redis=redis)

        async with locks.hold("post:1"):
            pass

        redis_lock.release.assert_awaited_once()
