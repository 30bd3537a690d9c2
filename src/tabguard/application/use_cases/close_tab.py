from __future__ import annotations

from tabguard.application.context import RequestContext
from tabguard.application.registry import TabRegistry
from tabguard.domain.entities.errors import Unauthenticated, ValidationFailure


class CloseTabUseCase:
    """Forget one of the user's tabs (browser closed it). Unknown ids succeed."""

    def __init__(self, *, registry: TabRegistry) -> None:
        self._registry = registry

    async def execute(self, ctx: RequestContext, tab_id: str | None) -> bool:
        if not ctx.user_id:
            raise Unauthenticated("close_tab")
        if not tab_id:
            raise ValidationFailure("tabId")

        async with self._registry.locks.hold(ctx.user_id):
            return await self._registry.close(
                ctx.user_id, tab_id, session_id=ctx.session_id
            )
