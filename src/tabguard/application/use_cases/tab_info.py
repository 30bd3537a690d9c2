from __future__ import annotations

from dataclasses import dataclass

from tabguard.application.context import RequestContext
from tabguard.application.registry import TabRegistry
from tabguard.domain.entities.errors import Unauthenticated
from tabguard.domain.entities.tab import TabSet


@dataclass(frozen=True)
class TabInfo:
    total_tabs: int
    global_limit: int
    tabs: TabSet


class TabInfoUseCase:
    def __init__(self, *, registry: TabRegistry, global_limit: int) -> None:
        self._registry = registry
        self._global_limit = global_limit

    async def execute(self, ctx: RequestContext) -> TabInfo:
        if not ctx.user_id:
            raise Unauthenticated("tab_info")

        tabs = await self._registry.current_tabs(ctx.user_id, session_id=ctx.session_id)
        return TabInfo(
            total_tabs=len(tabs),
            global_limit=self._global_limit,
            tabs=tabs,
        )
