from __future__ import annotations

from datetime import datetime, timezone


class SystemClock:
    """ClockPort backed by the host wall clock (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
