from __future__ import annotations

from tabguard.application.context import RequestContext
from tabguard.application.registry import TabRegistry
from tabguard.domain.entities.errors import Unauthenticated, ValidationFailure


class HeartbeatUseCase:
    """Keep a live tab from expiring. Unknown or expired ids are a no-op."""

    def __init__(self, *, registry: TabRegistry) -> None:
        self._registry = registry

    async def execute(self, ctx: RequestContext, tab_id: str | None) -> bool:
        if not ctx.user_id:
            raise Unauthenticated("heartbeat")
        if not tab_id:
            raise ValidationFailure("tabId")

        async with self._registry.locks.hold(ctx.user_id):
            return await self._registry.touch(
                ctx.user_id, tab_id, session_id=ctx.session_id
            )
