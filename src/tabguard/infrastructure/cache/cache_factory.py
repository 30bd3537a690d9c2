"""Cache factory - builds the adapter selected by config."""

from __future__ import annotations

from typing import Literal

import structlog

from tabguard.domain.ports.cache import CachePort
from tabguard.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from tabguard.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from tabguard.infrastructure.cache.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache", "redis"]


def create_cache(
    backend: CacheBackend = "memory",
    *,
    # Diskcache-Config
    directory: str = "./cache",
    # Redis-Config
    redis_url: str = "redis://localhost:6379/0",
    # Shared Config
    ttl_seconds: int = 3600,
    max_concurrent: int = 10,
) -> CachePort:
    """Create a cache adapter for *backend*.

    Args:
        backend: "memory" (single process), "diskcache" (SQLite) or "redis".
        directory: Diskcache path.
        redis_url: Redis connection string.
        ttl_seconds: Default TTL for all backends.
        max_concurrent: Semaphore limit (diskcache; Redis uses at least 50).

    Returns:
        CachePort implementation.

    Raises:
        ValueError: If `backend` is unknown.
    """
    if backend == "memory":
        log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
        return MemoryCacheAdapter(ttl_seconds=ttl_seconds)
    elif backend == "diskcache":
        log.info(
            "cache_factory_create",
            backend=backend,
            directory=directory,
            ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    elif backend == "redis":
        redis_concurrent = max(max_concurrent, 50)
        log.info(
            "cache_factory_create",
            backend=backend,
            url=redis_url,
            ttl=ttl_seconds,
            max_concurrent=redis_concurrent,
        )
        return RedisAdapter(
            url=redis_url,
            ttl_seconds=ttl_seconds,
            max_concurrent=redis_concurrent,
        )
    else:
        raise ValueError(
            f"Unknown cache backend: {backend!r}. "
            "Must be 'memory', 'diskcache' or 'redis'."
        )
