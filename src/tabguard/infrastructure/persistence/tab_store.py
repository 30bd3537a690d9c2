"""TabSet stores backed by CachePort (memory/diskcache/redis).

Two scopes share one serialization format:

- ``SessionTabStore``: key ``<prefix>session:<session_id>:<user_id>``, TTL =
  session lifetime. This is the primary store.
- ``UserTabStore``: key ``<prefix>user:<user_id>``, TTL = tab timeout. This is
  the cross-session (anti-bypass) store.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import structlog

from tabguard.domain.entities.errors import StoreUnavailable
from tabguard.domain.entities.tab import Tab, TabSet
from tabguard.domain.ports.cache import CachePort
from tabguard.domain.ports.tab_store import StoreSlot

log = structlog.get_logger(__name__)


def _parse_ts(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _serialize_tab(tab: Tab) -> dict[str, Any]:
    return {
        "id": tab.id,
        "route": tab.route,
        "created_at": tab.created_at.isoformat(),
        "last_activity": tab.seen_at.isoformat(),
        "user_agent": tab.user_agent,
        "ip": tab.ip,
        "session_id": tab.session_id,
    }


def _deserialize_tab(d: dict[str, Any]) -> Tab:
    created_at = _parse_ts(d["created_at"])
    last_activity = d.get("last_activity")
    return Tab(
        id=d["id"],
        route=d.get("route") or "",
        created_at=created_at,
        last_activity=_parse_ts(last_activity) if last_activity else created_at,
        user_agent=d.get("user_agent") or "",
        ip=d.get("ip") or "",
        session_id=d.get("session_id") or "",
    )


def serialize_tabs(tabs: TabSet) -> str:
    """Serialize a TabSet to a JSON object keyed by tab id."""
    return json.dumps({tab_id: _serialize_tab(tab) for tab_id, tab in tabs.items()})


def deserialize_tabs(data: str) -> TabSet:
    """Deserialize a TabSet; raises on malformed input."""
    raw = json.loads(data)
    if not isinstance(raw, dict):
        raise ValueError(f"TabSet must be a JSON object, got {type(raw).__name__}")
    return {tab_id: _deserialize_tab(entry) for tab_id, entry in raw.items()}


class _CacheTabStore:
    name = "cache"
    _scope = ""

    def __init__(self, cache: CachePort, *, key_prefix: str, ttl_seconds: int) -> None:
        """
        Args:
            cache: CachePort implementation (injected by composition root).
            key_prefix: Namespace for all keys of this store.
            ttl_seconds: TTL applied on every save.
        """
        self.cache = cache
        self.ttl = ttl_seconds
        self._prefix = f"{key_prefix}{self._scope}:"

    def _key(self, user_id: str, session_id: str) -> str:
        raise NotImplementedError

    def _slot(self, key: str) -> StoreSlot | None:
        raise NotImplementedError

    async def load(self, user_id: str, session_id: str = "") -> TabSet:
        key = self._key(user_id, session_id)
        data = await self.cache.get(key)
        if data is None:
            return {}

        try:
            return deserialize_tabs(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("tab_store_deserialize_error", store=self.name, key=key, error=str(e))
            raise StoreUnavailable(self.name, f"unreadable TabSet at {key}: {e}") from e

    async def save(self, user_id: str, tabs: TabSet, session_id: str = "") -> None:
        key = self._key(user_id, session_id)
        await self.cache.set(key, serialize_tabs(tabs), ttl=self.ttl)
        log.debug("tab_store_saved", store=self.name, user_id=user_id, tabs=len(tabs))

    async def slots(self, user_id: str | None = None) -> list[StoreSlot]:
        found: list[StoreSlot] = []
        for key in await self.cache.keys(self._prefix):
            slot = self._slot(key)
            if slot is None:
                continue
            if user_id is not None and slot.user_id != user_id:
                continue
            found.append(slot)
        return found


class SessionTabStore(_CacheTabStore):
    """Primary store: one TabSet per (session, user)."""

    name = "session"
    _scope = "session"

    def _key(self, user_id: str, session_id: str) -> str:
        return f"{self._prefix}{session_id}:{user_id}"

    def _slot(self, key: str) -> StoreSlot | None:
        session_id, sep, user_id = key[len(self._prefix):].partition(":")
        if not sep or not user_id:
            return None
        return StoreSlot(user_id=user_id, session_id=session_id)


class UserTabStore(_CacheTabStore):
    """Secondary store: one TabSet per user, shared by all sessions."""

    name = "user"
    _scope = "user"

    def _key(self, user_id: str, session_id: str) -> str:
        return f"{self._prefix}{user_id}"

    def _slot(self, key: str) -> StoreSlot | None:
        user_id = key[len(self._prefix):]
        return StoreSlot(user_id=user_id) if user_id else None
