"""Composition root: wires the guard from config, for the app lifespan and the CLI."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, cast

import structlog
from fastapi import FastAPI
from redis.asyncio import Redis

from tabguard.application.audit import AuditPolicy
from tabguard.application.evaluator import AdmissionEvaluator
from tabguard.application.registry import TabRegistry
from tabguard.application.use_cases import (
    CloseTabUseCase,
    GuardStatusUseCase,
    HeartbeatUseCase,
    TabInfoUseCase,
)
from tabguard.domain.entities.rules import RuleConfig
from tabguard.domain.ports.cache import CachePort
from tabguard.domain.ports.user_lock import UserLockPort
from tabguard.infrastructure.cache import RedisAdapter, create_cache
from tabguard.infrastructure.clock import SystemClock
from tabguard.infrastructure.config.schema import AppConfig
from tabguard.infrastructure.locks import (
    AsyncioUserLocks,
    NullUserLocks,
    RedisUserLocks,
)
from tabguard.infrastructure.persistence.tab_store import (
    SessionTabStore,
    UserTabStore,
)
from tabguard.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@dataclass
class GuardComponents:
    cache: CachePort
    rules: RuleConfig
    registry: TabRegistry
    evaluator: AdmissionEvaluator


def audit_policy(config: AppConfig) -> AuditPolicy:
    return AuditPolicy(
        enabled=config.logging.enabled,
        log_attempts=config.logging.log_attempts,
        log_violations=config.logging.log_violations,
        log_cleanup=config.logging.log_cleanup,
    )


@asynccontextmanager
async def _user_locks(config: AppConfig, cache: CachePort) -> AsyncIterator[UserLockPort]:
    backend = config.concurrency.lock_backend
    if backend == "none":
        yield NullUserLocks()
        return
    if backend == "local":
        yield AsyncioUserLocks()
        return

    # Reuse the cache's connection pool when the cache itself is Redis.
    if isinstance(cache, RedisAdapter):
        yield RedisUserLocks(
            cache.client,
            key_prefix=config.session.key_prefix,
            timeout_seconds=config.concurrency.lock_timeout_seconds,
            blocking_timeout_seconds=config.concurrency.lock_timeout_seconds,
        )
        return

    client = Redis.from_url(config.cache.redis_url, decode_responses=False)
    try:
        yield RedisUserLocks(
            client,
            key_prefix=config.session.key_prefix,
            timeout_seconds=config.concurrency.lock_timeout_seconds,
            blocking_timeout_seconds=config.concurrency.lock_timeout_seconds,
        )
    finally:
        await client.aclose()
        log.info("lock_client_closed")


@asynccontextmanager
async def guard_components(config: AppConfig) -> AsyncIterator[GuardComponents]:
    """Create and tear down everything the guard needs.

    Order matters:
        1. Cache (both tab stores live in it)
        2. Tab stores (session TTL = session lifetime, user TTL = tab timeout)
        3. Lock backend (may share the Redis connection of the cache)
        4. Registry and evaluator
    """
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        ttl_seconds=config.session.lifetime_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    log.info("cache_initialized", backend=config.cache.backend)

    try:
        primary = SessionTabStore(
            cache,
            key_prefix=config.session.key_prefix,
            ttl_seconds=config.session.lifetime_seconds,
        )
        secondary = (
            UserTabStore(
                cache,
                key_prefix=config.session.key_prefix,
                ttl_seconds=config.session.tab_timeout,
            )
            if config.security.prevent_incognito_bypass
            else None
        )

        async with _user_locks(config, cache) as locks:
            audit = audit_policy(config)
            clock = SystemClock()
            rules = config.to_rules()
            registry = TabRegistry(
                primary=primary,
                secondary=secondary,
                clock=clock,
                locks=locks,
                timeout_seconds=config.session.tab_timeout,
                audit=audit,
            )
            evaluator = AdmissionEvaluator(
                registry=registry,
                rules=rules,
                clock=clock,
                fail_open=config.security.fail_open,
                on_deny=config.security.on_deny,
                audit=audit,
            )
            log.info(
                "tab_guard_initialized",
                enabled=rules.enabled,
                anti_bypass=registry.anti_bypass,
                lock_backend=config.concurrency.lock_backend,
                tab_timeout=config.session.tab_timeout,
            )
            yield GuardComponents(
                cache=cache, rules=rules, registry=registry, evaluator=evaluator
            )
    finally:
        await cache.aclose()
        log.info("cache_closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan hook: initialize and clean up all resources (DI composition root)."""
    state = cast(AppState, app.state)
    config = state.config

    async with guard_components(config) as components:
        state.cache = components.cache
        state.rules = components.rules
        state.registry = components.registry
        state.evaluator = components.evaluator

        state.close_tab_uc = CloseTabUseCase(registry=components.registry)
        state.heartbeat_uc = HeartbeatUseCase(registry=components.registry)
        state.tab_info_uc = TabInfoUseCase(
            registry=components.registry,
            global_limit=components.rules.global_max_tabs,
        )
        state.guard_status_uc = GuardStatusUseCase(rules=components.rules)

        log.info("app_startup_complete")
        yield

    log.info("app_shutdown_complete")
