"""Per-user serialization port."""

from __future__ import annotations

from typing import AsyncContextManager, Protocol, runtime_checkable


@runtime_checkable
class UserLockPort(Protocol):
    """Serializes read-modify-write cycles on one user's TabSet.

    ``hold(user_id)`` returns an async context manager; while it is held no
    other holder for the same user id proceeds. Different users never block
    each other.
    """

    def hold(self, user_id: str) -> AsyncContextManager[None]: ...
