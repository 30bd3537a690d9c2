"""Builds the RequestContext the core works on from a FastAPI request."""

from __future__ import annotations

from typing import Any, Optional, cast

from fastapi import Request

from tabguard.application.context import RequestContext
from tabguard.interfaces.app_state import AppState

TAB_ID_HEADER = "x-tab-id"


def resolve_user_id(request: Request) -> Optional[str]:
    """
    Precedence:
    1) request.state.user.id (host auth middleware attached a user object)
    2) request.state.user_id
    """
    user = getattr(request.state, "user", None)
    user_id: Any = getattr(user, "id", None) if user is not None else None
    if not user_id:
        user_id = getattr(request.state, "user_id", None)
    return str(user_id) if user_id else None


def resolve_roles(request: Request) -> tuple[str, ...]:
    user = getattr(request.state, "user", None)
    roles = getattr(user, "roles", None) if user is not None else None
    if roles is None:
        roles = getattr(request.state, "user_roles", None)
    if not roles:
        return ()
    if isinstance(roles, str):
        return (roles,)
    return tuple(str(role) for role in roles)


def resolve_session_id(request: Request) -> str:
    session_id = getattr(request.state, "session_id", None)
    if session_id:
        return str(session_id)
    state = cast(AppState, request.app.state)
    return request.cookies.get(state.config.session.cookie_name, "")


def route_name(request: Request) -> str:
    """Symbolic name of the matched route, "" when unnamed or unmatched."""
    route = request.scope.get("route")
    return getattr(route, "name", None) or ""


def build_context(request: Request) -> RequestContext:
    client = request.client
    return RequestContext(
        user_id=resolve_user_id(request),
        roles=resolve_roles(request),
        route=route_name(request),
        session_id=resolve_session_id(request),
        user_agent=request.headers.get("user-agent", ""),
        ip=client.host if client else "",
        tab_id=request.headers.get(TAB_ID_HEADER) or None,
    )
