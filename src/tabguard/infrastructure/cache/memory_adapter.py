"""In-process cache adapter - dict with per-key expiry, for dev and tests."""

from __future__ import annotations

import time
from typing import Any

import structlog

log = structlog.get_logger(__name__)


class MemoryCacheAdapter:
    """Dict-backed CachePort for a single worker process.

    Expiry is checked lazily on access using ``time.monotonic()``. Values are
    stored as-is (no serialization), so callers must not mutate what they
    read back.

    Args:
        ttl_seconds: Default TTL for `set()` without explicit value.
    """

    def __init__(self, ttl_seconds: int = 3600) -> None:
        self.default_ttl = ttl_seconds
        self._data: dict[str, tuple[Any, float | None]] = {}

    async def __aenter__(self) -> MemoryCacheAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._data.clear()

    def _live(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        _, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._data[key]
            return False
        return True

    async def get(self, key: str) -> Any | None:
        if not self._live(key):
            log.debug("cache_miss", key=key)
            return None
        return self._data[key][0]

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        expire_time = ttl if ttl is not None else self.default_ttl
        expires_at = time.monotonic() + expire_time if expire_time > 0 else None
        self._data[key] = (value, expires_at)
        log.debug("cache_set", key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        existed = self._live(key)
        self._data.pop(key, None)
        return existed

    async def exists(self, key: str) -> bool:
        return self._live(key)

    async def keys(self, prefix: str) -> list[str]:
        return [k for k in list(self._data) if k.startswith(prefix) and self._live(k)]

    async def clear(self) -> None:
        self._data.clear()
        log.warning("cache_cleared", backend="memory")
