"""Tab registry: live-tab bookkeeping across the session and user stores.

Reads and writes always apply the expiry rule, so every TabSet handed out
contains live tabs only. Methods here do not lock; callers that need exact
counts hold ``registry.locks.hold(user_id)`` around their read-modify-write
cycle. ``sweep`` is the exception and locks each user itself.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import structlog

from tabguard.application.audit import AuditPolicy
from tabguard.domain.entities.tab import (
    SweepReport,
    Tab,
    TabSet,
    live_tabs,
    merge_tab_sets,
)
from tabguard.domain.ports.clock import ClockPort
from tabguard.domain.ports.tab_store import StoreSlot, TabStorePort
from tabguard.domain.ports.user_lock import UserLockPort
from tabguard.domain.route_patterns import matches_any

log = structlog.get_logger(__name__)


class TabRegistry:
    """Stores and expires the tabs of each user.

    Args:
        primary: Session-scoped store (always written).
        secondary: Cross-session store; ``None`` disables anti-bypass mode.
        clock: Time source for ``created_at``/``last_activity`` and expiry.
        locks: Per-user lock backend shared with the callers.
        timeout_seconds: A tab idle for longer than this is stale.
        audit: Which activity events to emit.
    """

    def __init__(
        self,
        *,
        primary: TabStorePort,
        secondary: TabStorePort | None,
        clock: ClockPort,
        locks: UserLockPort,
        timeout_seconds: int = 1800,
        audit: AuditPolicy | None = None,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._clock = clock
        self.timeout_seconds = timeout_seconds
        self.locks = locks
        self._audit = audit or AuditPolicy()

    @property
    def anti_bypass(self) -> bool:
        return self._secondary is not None

    def _live(self, tabs: TabSet, timeout_seconds: int | None = None) -> TabSet:
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        return live_tabs(tabs, self._clock.now(), timeout)

    async def register(self, user_id: str, tab: Tab) -> TabSet:
        """Upsert *tab* into the user's session TabSet and mirror it.

        Re-registering a known id keeps its original ``created_at``. Returns
        the live session TabSet, which always contains *tab*.
        """
        session_id = tab.session_id
        tabs = await self._primary.load(user_id, session_id)

        existing = tabs.get(tab.id)
        if existing is not None:
            tab = replace(tab, created_at=existing.created_at)
        tabs[tab.id] = tab

        tabs = self._live(tabs)
        await self._primary.save(user_id, tabs, session_id)

        if self._secondary is not None:
            # Upsert into the shared set so tabs of other sessions stay visible.
            shared = await self._secondary.load(user_id)
            await self._secondary.save(user_id, self._live(merge_tab_sets(shared, tabs)))

        self._audit.activity("tab_registered", user_id=user_id, tab_id=tab.id, route=tab.route)
        return tabs

    async def current_tabs(self, user_id: str, *, session_id: str = "") -> TabSet:
        """Merged live view of both stores; the user store wins on collision."""
        primary = await self._primary.load(user_id, session_id)
        secondary = (
            await self._secondary.load(user_id) if self._secondary is not None else {}
        )
        return self._live(merge_tab_sets(primary, secondary))

    async def tabs_matching_routes(
        self, user_id: str, patterns: Iterable[str], *, session_id: str = ""
    ) -> TabSet:
        patterns = tuple(patterns)
        tabs = await self.current_tabs(user_id, session_id=session_id)
        return {
            tab_id: tab
            for tab_id, tab in tabs.items()
            if matches_any(patterns, tab.route)
        }

    async def touch(self, user_id: str, tab_id: str, *, session_id: str = "") -> bool:
        """Refresh ``last_activity`` of a live tab in the session store.

        Unknown or already stale ids are left alone. Returns whether a tab
        was touched.
        """
        tabs = self._live(await self._primary.load(user_id, session_id))
        tab = tabs.get(tab_id)
        if tab is None:
            log.debug("tab_touch_unknown", user_id=user_id, tab_id=tab_id)
            return False

        tabs[tab_id] = tab.touched(self._clock.now())
        await self._primary.save(user_id, tabs, session_id)
        self._audit.activity("tab_touched", user_id=user_id, tab_id=tab_id, route=tab.route)
        return True

    async def close(self, user_id: str, tab_id: str, *, session_id: str = "") -> bool:
        """Remove *tab_id* from every session slot of the user and the user store.

        A copy left in another session's slot would be merged back into the
        user store on that session's next register. Returns whether the id
        existed anywhere.
        """
        removed = False

        session_ids = {session_id}
        session_ids.update(slot.session_id for slot in await self._primary.slots(user_id))
        for sid in sorted(session_ids):
            tabs = await self._primary.load(user_id, sid)
            if tabs.pop(tab_id, None) is not None:
                await self._primary.save(user_id, tabs, sid)
                removed = True

        if self._secondary is not None:
            shared = await self._secondary.load(user_id)
            if shared.pop(tab_id, None) is not None:
                await self._secondary.save(user_id, shared)
                removed = True

        if removed:
            self._audit.activity("tab_closed", user_id=user_id, tab_id=tab_id)
        return removed

    async def _slots_by_user(
        self, user_id: str | None
    ) -> dict[str, list[tuple[TabStorePort, StoreSlot]]]:
        stores: list[TabStorePort] = [self._primary]
        if self._secondary is not None:
            stores.append(self._secondary)

        grouped: dict[str, list[tuple[TabStorePort, StoreSlot]]] = {}
        for store in stores:
            for slot in await store.slots(user_id):
                grouped.setdefault(slot.user_id, []).append((store, slot))
        return grouped

    async def sweep(
        self,
        user_id: str | None = None,
        *,
        timeout_seconds: int | None = None,
        dry_run: bool = False,
    ) -> SweepReport:
        """Remove stale tabs from every store slot of one user or of all users.

        Users are discovered by scanning store keys, so the cost grows with
        the number of users that currently have stored tabs. Counts are per
        distinct tab id: a tab mirrored in both stores is scanned once and
        removed once. ``dry_run`` computes the same counts without writing.
        """
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        grouped = await self._slots_by_user(user_id)

        scanned = 0
        removed = 0
        removed_by_user: dict[str, int] = {}

        for uid, slots in grouped.items():
            seen: set[str] = set()
            stale: set[str] = set()

            async with self.locks.hold(uid):
                for store, slot in slots:
                    tabs = await store.load(slot.user_id, slot.session_id)
                    kept = self._live(tabs, timeout)
                    seen.update(tabs)
                    stale.update(set(tabs) - set(kept))
                    if not dry_run and len(kept) != len(tabs):
                        await store.save(slot.user_id, kept, slot.session_id)

            scanned += len(seen)
            removed += len(stale)
            if stale:
                removed_by_user[uid] = len(stale)
            self._audit.cleanup(
                "tab_sweep_user",
                user_id=uid,
                scanned=len(seen),
                removed=len(stale),
                dry_run=dry_run,
            )

        report = SweepReport(
            dry_run=dry_run,
            users=len(grouped),
            scanned=scanned,
            removed=removed,
            removed_by_user=removed_by_user,
        )
        log.info(
            "tab_sweep_completed",
            users=report.users,
            scanned=report.scanned,
            removed=report.removed,
            dry_run=dry_run,
            timeout_seconds=timeout,
        )
        return report
