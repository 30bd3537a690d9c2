"""Per-user lock backends for TabSet read-modify-write cycles.

- ``NullUserLocks``: no coordination (last writer wins).
- ``AsyncioUserLocks``: one ``asyncio.Lock`` per user id, exact within one
  worker process.
- ``RedisUserLocks``: short-lived Redis lock per user id, for several worker
  processes sharing one Redis.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Literal

import structlog
from redis.asyncio import Redis
from redis.exceptions import LockError, RedisError

from tabguard.domain.entities.errors import StoreUnavailable

log = structlog.get_logger(__name__)

LockBackend = Literal["none", "local", "redis"]


class NullUserLocks:
    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        yield


class AsyncioUserLocks:
    """One asyncio.Lock per user id, dropped again once nobody waits on it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[user_id] - 1
            if remaining:
                self._waiters[user_id] = remaining
            else:
                del self._waiters[user_id]
                del self._locks[user_id]

    def active_users(self) -> int:
        """Number of users currently holding or waiting for a lock."""
        return len(self._locks)


class RedisUserLocks:
    """Redis-backed per-user lock (``redis.asyncio.lock.Lock``).

    Args:
        client: Connected ``redis.asyncio.Redis`` client.
        key_prefix: Namespace for lock keys.
        timeout_seconds: Lock auto-expiry, guards against crashed holders.
        blocking_timeout_seconds: Max wait to acquire before giving up.
    """

    def __init__(
        self,
        client: Redis,
        *,
        key_prefix: str = "tab_guard_",
        timeout_seconds: float = 5.0,
        blocking_timeout_seconds: float = 5.0,
    ) -> None:
        self._client = client
        self._prefix = f"{key_prefix}lock:"
        self._timeout = timeout_seconds
        self._blocking_timeout = blocking_timeout_seconds

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._client.lock(
            f"{self._prefix}{user_id}",
            timeout=self._timeout,
            blocking_timeout=self._blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            log.error("user_lock_error", user_id=user_id, error=str(e))
            raise StoreUnavailable("redis-lock", str(e)) from e
        if not acquired:
            log.warning("user_lock_timeout", user_id=user_id, wait=self._blocking_timeout)
            raise StoreUnavailable("redis-lock", f"timed out locking user {user_id}")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired while held; the next holder already owns the key.
                log.warning("user_lock_expired", user_id=user_id, timeout=self._timeout)
            except RedisError as e:
                log.error("user_lock_release_error", user_id=user_id, error=str(e))
