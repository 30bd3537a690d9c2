"""FastAPI dependency that admits or denies a request by its tab count."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import Request, Response

from tabguard.domain.entities.verdict import Verdict
from tabguard.interfaces.api.identity import build_context
from tabguard.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

TAB_ID_RESPONSE_HEADER = "X-Tab-Id"


class TabLimitExceeded(Exception):
    """Raised by ``guard_tabs`` for a denying verdict; rendered by app.py."""

    def __init__(self, verdict: Verdict) -> None:
        super().__init__(verdict.message or "tab limit exceeded")
        self.verdict = verdict


async def guard_tabs(request: Request, response: Response) -> Verdict:
    """Register the caller's tab for this route and enforce the limits.

    Usage::

        @router.get("/applications", name="application.index",
                    dependencies=[Depends(guard_tabs)])

    The route's ``name`` is what rule patterns match against. The tab id
    is echoed in the ``X-Tab-Id`` response header so the client can send it
    back on later requests, heartbeats and close-tab calls.
    """
    state = cast(AppState, request.app.state)
    ctx = build_context(request)

    verdict = await state.evaluator.evaluate(ctx)
    if not verdict.allowed:
        log.debug(
            "tab_guard_denied",
            user_id=ctx.user_id,
            route=ctx.route,
            tier=verdict.tier,
            path=request.url.path,
        )
        raise TabLimitExceeded(verdict)

    if verdict.tab_id:
        response.headers[TAB_ID_RESPONSE_HEADER] = verdict.tab_id
    return verdict
