"""Domain entities for tracked tabs.

Pure value objects: no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

# tab id -> Tab, scoped to one user id.
TabSet = dict[str, "Tab"]


@dataclass(frozen=True)
class Tab:
    """One open browser tab / request context of a user.

    ``user_agent``, ``ip`` and ``session_id`` are provenance metadata only;
    admission math never looks at them.
    """

    id: str
    route: str
    created_at: datetime
    last_activity: datetime | None = None
    user_agent: str = ""
    ip: str = ""
    session_id: str = ""

    def __post_init__(self) -> None:
        if self.last_activity is None:
            object.__setattr__(self, "last_activity", self.created_at)

    @property
    def seen_at(self) -> datetime:
        """Timestamp the expiry rule is evaluated against."""
        return self.last_activity or self.created_at

    def touched(self, now: datetime) -> Tab:
        """Return a copy with ``last_activity`` refreshed to *now*."""
        return replace(self, last_activity=now)

    def is_stale(self, now: datetime, timeout_seconds: int) -> bool:
        """Stale only when strictly older than the timeout; the boundary is live."""
        return (now - self.seen_at).total_seconds() > timeout_seconds


def live_tabs(tabs: TabSet, now: datetime, timeout_seconds: int) -> TabSet:
    """Drop every stale tab from *tabs* (returns a new mapping)."""
    return {
        tab_id: tab
        for tab_id, tab in tabs.items()
        if not tab.is_stale(now, timeout_seconds)
    }


def merge_tab_sets(primary: TabSet, secondary: TabSet) -> TabSet:
    """Union keyed by tab id; *secondary* wins on collision."""
    merged = dict(primary)
    merged.update(secondary)
    return merged


@dataclass(frozen=True)
class SweepReport:
    """Outcome of one expiry sweep."""

    dry_run: bool
    users: int = 0
    scanned: int = 0
    removed: int = 0
    removed_by_user: dict[str, int] = field(default_factory=dict)
