from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

Tier = Literal["global", "role", "route", "store"]


@dataclass(frozen=True)
class Verdict:
    """Result of one admission evaluation.

    Denying verdicts carry the tier that denied, the observed and allowed
    counts, the tier context (role/module or route pattern) and the rendered
    message. Allowing verdicts carry nothing else.
    """

    allowed: bool
    tier: Tier | None = None
    current: int | None = None
    max: int | None = None
    message: str | None = None
    role: str | None = None
    module: str | None = None
    route_pattern: str | None = None
    tab_id: str | None = None

    @classmethod
    def allow(cls, *, tab_id: str | None = None) -> Verdict:
        return cls(allowed=True, tab_id=tab_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with ``type`` as the tier key (the wire name)."""
        if self.allowed:
            return {"allowed": True}

        data: dict[str, Any] = {
            "allowed": False,
            "type": self.tier,
            "current": self.current,
            "max": self.max,
            "message": self.message,
        }
        if self.role is not None:
            data["role"] = self.role
        if self.module is not None:
            data["module"] = self.module
        if self.route_pattern is not None:
            data["route_pattern"] = self.route_pattern
        return data
