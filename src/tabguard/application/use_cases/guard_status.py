from __future__ import annotations

from dataclasses import dataclass

from tabguard.application.context import RequestContext
from tabguard.domain.entities.rules import RuleConfig


@dataclass(frozen=True)
class GuardStatus:
    enabled: bool
    global_max_tabs: int
    user_authenticated: bool
    user_id: str | None


class GuardStatusUseCase:
    """Reflect config and identity; never touches the registry."""

    def __init__(self, *, rules: RuleConfig) -> None:
        self._rules = rules

    def execute(self, ctx: RequestContext) -> GuardStatus:
        return GuardStatus(
            enabled=self._rules.enabled,
            global_max_tabs=self._rules.global_max_tabs,
            user_authenticated=ctx.authenticated,
            user_id=ctx.user_id,
        )
