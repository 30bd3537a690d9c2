"""Port for TabSet persistence."""

from __future__ import annotations

from typing import NamedTuple, Protocol, runtime_checkable

from tabguard.domain.entities.tab import TabSet


class StoreSlot(NamedTuple):
    """One persisted TabSet: the user it belongs to and its session scope.

    ``session_id`` is empty for stores that are not session-scoped.
    """

    user_id: str
    session_id: str = ""


@runtime_checkable
class TabStorePort(Protocol):
    """Async interface for loading and saving one user's TabSet.

    ``session_id`` selects the scope for session-bound stores and is ignored
    by cross-session stores.
    """

    name: str

    async def load(self, user_id: str, session_id: str = "") -> TabSet: ...

    async def save(self, user_id: str, tabs: TabSet, session_id: str = "") -> None: ...

    async def slots(self, user_id: str | None = None) -> list[StoreSlot]: ...
