"""Shared test fixtures for the tabguard test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from tabguard.application.audit import AuditPolicy
from tabguard.application.context import RequestContext
from tabguard.application.evaluator import AdmissionEvaluator
from tabguard.application.registry import TabRegistry
from tabguard.domain.entities.rules import ModuleRule, RouteRule, RuleConfig
from tabguard.domain.entities.tab import Tab
from tabguard.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from tabguard.infrastructure.locks import AsyncioUserLocks
from tabguard.infrastructure.persistence.tab_store import (
    SessionTabStore,
    UserTabStore,
)

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """ClockPort whose time only moves when a test says so."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def make_tab(
    tab_id: str,
    route: str = "dashboard",
    *,
    at: datetime = T0,
    session_id: str = "sess-1",
) -> Tab:
    return Tab(id=tab_id, route=route, created_at=at, session_id=session_id)


def make_ctx(
    route: str,
    *,
    user_id: str | None = "u1",
    roles: tuple[str, ...] = (),
    session_id: str = "sess-1",
    tab_id: str | None = None,
) -> RequestContext:
    return RequestContext(
        user_id=user_id,
        roles=roles,
        route=route,
        session_id=session_id,
        user_agent="pytest",
        ip="127.0.0.1",
        tab_id=tab_id,
    )


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def tab_factory():
    return make_tab


@pytest.fixture()
def ctx_factory():
    return make_ctx


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def memory_cache() -> MemoryCacheAdapter:
    async with MemoryCacheAdapter(ttl_seconds=7200) as cache:
        yield cache


@pytest.fixture()
def session_store(memory_cache: MemoryCacheAdapter) -> SessionTabStore:
    return SessionTabStore(memory_cache, key_prefix="tg_", ttl_seconds=7200)


@pytest.fixture()
def user_store(memory_cache: MemoryCacheAdapter) -> UserTabStore:
    return UserTabStore(memory_cache, key_prefix="tg_", ttl_seconds=1800)


@pytest.fixture()
def registry(
    session_store: SessionTabStore, user_store: UserTabStore, clock: FakeClock
) -> TabRegistry:
    return TabRegistry(
        primary=session_store,
        secondary=user_store,
        clock=clock,
        locks=AsyncioUserLocks(),
        timeout_seconds=1800,
        audit=AuditPolicy(log_cleanup=True),
    )


@pytest.fixture()
def rules() -> RuleConfig:
    """Global 5, two roles, two standalone route ceilings."""
    return RuleConfig(
        global_max_tabs=5,
        excluded_routes=("login", "logout", "password.*", "register"),
        roles={
            "counselor": (
                ModuleRule(
                    name="applications",
                    max_tabs=2,
                    routes=("application.*", "applications.*"),
                ),
                ModuleRule(name="students", max_tabs=3, routes=("student.*",)),
            ),
            "admin": (ModuleRule(name="users", max_tabs=1, routes=("admin.users.*",)),),
        },
        routes=(
            RouteRule(pattern="sensitive.*", max_tabs=1),
            RouteRule(
                pattern="reports.*",
                max_tabs=2,
                message="Only :max report tabs, please.",
            ),
        ),
    )


@pytest.fixture()
def evaluator(
    registry: TabRegistry, rules: RuleConfig, clock: FakeClock
) -> AdmissionEvaluator:
    return AdmissionEvaluator(registry=registry, rules=rules, clock=clock)


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.exists = AsyncMock(return_value=False)
    cache.keys = AsyncMock(return_value=[])
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache
