"""Admission rule configuration (immutable, loaded once per process)."""

from __future__ import annotations

from dataclasses import dataclass, field

MAX_PLACEHOLDER = ":max"


@dataclass(frozen=True)
class ModuleRule:
    """Ceiling for one named module of a role."""

    name: str
    max_tabs: int
    routes: tuple[str, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class RouteRule:
    """Standalone ceiling for one route pattern, independent of roles."""

    pattern: str
    max_tabs: int
    enabled: bool = True
    message: str | None = None


@dataclass(frozen=True)
class Messages:
    global_limit_exceeded: str = (
        "You have reached the maximum number of allowed tabs (:max) "
        "for this application."
    )
    role_limit_exceeded: str = (
        "You have reached the maximum number of allowed tabs (:max) "
        "for this section."
    )
    route_limit_exceeded: str = (
        "You have reached the maximum number of allowed tabs (:max) "
        "for this page."
    )
    store_unavailable: str = (
        "Tab limits cannot be verified right now. Please try again later."
    )

    @staticmethod
    def render(template: str, max_tabs: int) -> str:
        return template.replace(MAX_PLACEHOLDER, str(max_tabs))


@dataclass(frozen=True)
class RuleConfig:
    """All rule tiers plus the guard switches.

    ``roles`` maps role name -> modules in declaration order; ``routes`` keeps
    declaration order as well. Treat both as read-only.
    """

    enabled: bool = True
    global_enabled: bool = True
    global_max_tabs: int = 5
    excluded_routes: tuple[str, ...] = ()
    roles: dict[str, tuple[ModuleRule, ...]] = field(default_factory=dict)
    routes: tuple[RouteRule, ...] = ()
    messages: Messages = field(default_factory=Messages)
