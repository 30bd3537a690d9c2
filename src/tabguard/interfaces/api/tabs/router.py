"""Tab-guard endpoints called by the browser-side tab script."""

from __future__ import annotations

from typing import Any, Optional, cast

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from tabguard.domain.entities.tab import Tab
from tabguard.interfaces.api.identity import build_context
from tabguard.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/tab-guard", tags=["tab-guard"])


class TabIdBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tab_id: Optional[str] = Field(default=None, alias="tabId")


def _tab_payload(tab: Tab) -> dict[str, Any]:
    return {
        "id": tab.id,
        "route": tab.route,
        "created_at": tab.created_at.isoformat(),
        "last_activity": tab.seen_at.isoformat(),
        "user_agent": tab.user_agent,
        "ip": tab.ip,
        "session_id": tab.session_id,
    }


@router.post("/close-tab", name="tab-guard.close-tab")
async def close_tab(request: Request, body: Optional[TabIdBody] = None) -> dict[str, bool]:
    """Forget a tab the browser reported as closed. Unknown ids still succeed."""
    state = cast(AppState, request.app.state)
    ctx = build_context(request)

    await state.close_tab_uc.execute(ctx, body.tab_id if body else None)
    return {"success": True}


@router.get("/tab-info", name="tab-guard.tab-info")
async def tab_info(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    ctx = build_context(request)

    info = await state.tab_info_uc.execute(ctx)
    return {
        "total_tabs": info.total_tabs,
        "global_limit": info.global_limit,
        "tabs": {tab_id: _tab_payload(tab) for tab_id, tab in info.tabs.items()},
    }


@router.post("/heartbeat", name="tab-guard.heartbeat")
async def heartbeat(request: Request, body: Optional[TabIdBody] = None) -> dict[str, bool]:
    """Keep a tab alive. Unknown or expired ids are ignored."""
    state = cast(AppState, request.app.state)
    ctx = build_context(request)

    await state.heartbeat_uc.execute(ctx, body.tab_id if body else None)
    return {"success": True}


@router.get("/status", name="tab-guard.status")
async def status(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    ctx = build_context(request)

    guard = state.guard_status_uc.execute(ctx)
    return {
        "enabled": guard.enabled,
        "global_max_tabs": guard.global_max_tabs,
        "user_authenticated": guard.user_authenticated,
        "user_id": guard.user_id,
    }
