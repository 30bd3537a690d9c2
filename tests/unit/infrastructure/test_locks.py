"""Tests for the per-user lock backends."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError

from tabguard.domain.entities.errors import StoreUnavailable
from tabguard.infrastructure.locks import (
    AsyncioUserLocks,
    NullUserLocks,
    RedisUserLocks,
)


class TestNullUserLocks:
    async def test_hold_is_noop(self) -> None:
        async with NullUserLocks().hold("u1"):
            pass


class TestAsyncioUserLocks:
    async def test_serializes_same_user(self) -> None:
        locks = AsyncioUserLocks()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("u1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    async def test_different_users_do_not_block(self) -> None:
        locks = AsyncioUserLocks()
        async with locks.hold("u1"):
            await asyncio.wait_for(self._enter(locks, "u2"), timeout=1)

    @staticmethod
    async def _enter(locks: AsyncioUserLocks, user_id: str) -> None:
        async with locks.hold(user_id):
            pass

    async def test_locks_are_released_when_idle(self) -> None:
        locks = AsyncioUserLocks()
        async with locks.hold("u1"):
            assert locks.active_users() == 1
        assert locks.active_users() == 0

    async def test_released_on_error(self) -> None:
        locks = AsyncioUserLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("u1"):
                raise RuntimeError("boom")
        assert locks.active_users() == 0


def _redis_client(lock: MagicMock) -> MagicMock:
    client = MagicMock()
    client.lock = MagicMock(return_value=lock)
    return client


class TestRedisUserLocks:
    async def test_acquires_and_releases(self) -> None:
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock()
        client = _redis_client(lock)

        locks = RedisUserLocks(client, key_prefix="tg_", timeout_seconds=3)
        async with locks.hold("u1"):
            lock.release.assert_not_awaited()

        client.lock.assert_called_once_with(
            "tg_lock:u1", timeout=3, blocking_timeout=5.0
        )
        lock.release.assert_awaited_once()

    async def test_acquire_timeout_raises_store_unavailable(self) -> None:
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=False)
        locks = RedisUserLocks(_redis_client(lock))

        with pytest.raises(StoreUnavailable) as exc_info:
            async with locks.hold("u1"):
                pass
        assert exc_info.value.backend == "redis-lock"

    async def test_connection_error_raises_store_unavailable(self) -> None:
        lock = MagicMock()
        lock.acquire = AsyncMock(side_effect=RedisConnectionError("down"))
        locks = RedisUserLocks(_redis_client(lock))

        with pytest.raises(StoreUnavailable):
            async with locks.hold("u1"):
                pass

    async def test_expired_lock_on_release_is_tolerated(self) -> None:
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock(side_effect=LockError("expired"))
        locks = RedisUserLocks(_redis_client(lock))

        async with locks.hold("u1"):
            pass

    async def test_release_error_keeps_body_outcome(self) -> None:
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock(side_effect=RedisConnectionError("gone"))
        locks = RedisUserLocks(_redis_client(lock))

        with pytest.raises(ValueError, match="body failed"):
            async with locks.hold("u1"):
                raise ValueError("body failed")

        async with locks.hold("u1"):
            pass
        assert lock.release.await_count == 2
