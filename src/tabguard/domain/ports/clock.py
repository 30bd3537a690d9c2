from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockPort(Protocol):
    """Wall-clock source; returns timezone-aware UTC datetimes."""

    def now(self) -> datetime: ...
