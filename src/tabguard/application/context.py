from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Everything the core needs to know about one incoming request.

    Built by the HTTP layer and passed explicitly; the core never reads
    ambient request state.
    """

    user_id: str | None
    roles: tuple[str, ...] = ()
    route: str = ""  # symbolic route name, "" when unnamed
    session_id: str = ""
    user_agent: str = ""
    ip: str = ""
    tab_id: str | None = None  # tab id echoed back by the client, if any

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)
