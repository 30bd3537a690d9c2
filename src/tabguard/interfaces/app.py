"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import cast

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.datastructures import URL
from starlette.responses import Response

from tabguard.domain.entities.errors import (
    StoreUnavailable,
    Unauthenticated,
    ValidationFailure,
)
from tabguard.infrastructure.config import AppConfig
from tabguard.interfaces.api.guard import TabLimitExceeded
from tabguard.interfaces.app_state import AppState
from tabguard.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

REDIRECT_MESSAGE_PARAM = "tab_guard_error"


def render_denial(config: AppConfig, exc: TabLimitExceeded) -> Response:
    """Map a denying verdict to the configured response type."""
    verdict = exc.verdict
    if config.response.type == "redirect":
        url = URL(config.response.redirect_url).include_query_params(
            **{REDIRECT_MESSAGE_PARAM: verdict.message or ""}
        )
        return RedirectResponse(str(url), status_code=303)

    body = config.response.json_response.model_dump()
    body["message"] = verdict.message or body["message"]
    body["validation"] = verdict.to_dict()
    return JSONResponse(body, status_code=403)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app. Configuration only; resources are created in lifespan()."""
    app = FastAPI(
        title="tabguard",
        description="Per-user browser tab limits",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from tabguard.interfaces.api.tabs import router as tabs_router

    app.include_router(tabs_router)

    @app.exception_handler(TabLimitExceeded)
    async def tab_limit_exceeded(request: Request, exc: TabLimitExceeded) -> Response:
        state = cast(AppState, request.app.state)
        return render_denial(state.config, exc)

    @app.exception_handler(Unauthenticated)
    async def unauthenticated(request: Request, exc: Unauthenticated) -> Response:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    @app.exception_handler(ValidationFailure)
    async def validation_failure(request: Request, exc: ValidationFailure) -> Response:
        return JSONResponse(
            {"error": str(exc), "field": exc.field_name},
            status_code=422,
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable) -> Response:
        log.error(
            "tab_store_unavailable",
            path=request.url.path,
            backend=exc.backend,
            error=exc.detail,
        )
        return JSONResponse({"error": "store_unavailable"}, status_code=503)

    @app.get("/healthz")
    async def healthz() -> dict[str, str | bool]:
        """Liveness probe; returns 200 as long as the process is running."""
        return {"status": "ok", "enabled": config.enabled}

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
