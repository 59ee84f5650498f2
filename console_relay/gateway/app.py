"""Console Relay Gateway - FastAPI application.

Endpoints:
- Console: /ws, /log, /command (console_relay.gateway.routers.console)
- Health: /health, /ready
- Metrics: /metrics
- Static: /map/ (when map_path is set), everything else from assets_dir

The application is built around an AppContext stored on app.state.context.
The lifespan starts the log reader and lets SourceUnavailable propagate,
which aborts server startup.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import make_asgi_app

from console_relay import __version__
from console_relay.bootstrap import create_app_context
from console_relay.context import AppContext
from console_relay.errors import SourceUnavailable
from console_relay.logging import request_scope
from console_relay.observability import record_http_request
from console_relay.protocols import RequestContext

SERVICE_NAME = "console-relay"


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the log reader on startup and stop it on shutdown."""
    context: AppContext = app.state.context
    _logger = context.logger.bind(component="gateway")
    _logger.info(
        "gateway_startup_initiated",
        control_path=context.command_bridge.control_path,
        bus_capacity=context.bus.capacity,
    )

    if context.reader is not None:
        try:
            await asyncio.to_thread(context.reader.start)
        except SourceUnavailable as e:
            _logger.error("gateway_startup_failed", source=e.source, error=e.reason)
            raise

    _logger.info("gateway_startup_complete", status="READY")
    try:
        yield
    finally:
        _logger.info("gateway_shutdown_initiated")
        if context.reader is not None:
            await asyncio.to_thread(context.reader.stop)
        _logger.info("gateway_shutdown_complete")


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the gateway application.

    Args:
        context: Pre-built AppContext (default: built from global settings)
    """
    if context is None:
        context = create_app_context()

    app = FastAPI(
        title="Console Relay",
        description="Live server log relay and remote command bridge",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Log and count every HTTP request."""
        ctx = RequestContext(
            request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )
        _logger = context.logger.bind(component="http", **ctx.to_dict())
        start_time = time.monotonic()

        with request_scope(ctx, _logger):
            response = await call_next(request)

        route = request.scope.get("route")
        record_http_request(
            method=request.method,
            path=getattr(route, "path", None) or "mount",
            status_code=response.status_code,
        )
        _logger.info(
            "http_request",
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - start_time) * 1000, 2),
        )
        return response

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness probe - always 200 while the process is up."""
        return JSONResponse({"status": "healthy", "service": SERVICE_NAME})

    @app.get("/ready")
    async def ready() -> JSONResponse:
        """Readiness probe - the live log feed is running."""
        checks = {
            "log_feed": "running" if context.feed_alive else "stopped",
            "subscribers": context.bus.subscriber_count,
        }
        if context.feed_alive:
            return JSONResponse({"status": "ready", **checks})
        return JSONResponse(status_code=503, content={"status": "not_ready", **checks})

    # -------------------------------------------------------------------------
    # Routers and mounts (order matters: static fallback goes last)
    # -------------------------------------------------------------------------

    from console_relay.gateway.routers import console

    app.include_router(console.router)
    app.mount("/metrics", make_asgi_app())

    webserver = context.settings.webserver
    if webserver.map_path:
        map_dir = Path("/") / webserver.map_path

        @app.get("/map", include_in_schema=False)
        async def map_redirect() -> RedirectResponse:
            return RedirectResponse("/map/", status_code=308)

        app.mount("/map", StaticFiles(directory=map_dir, html=True, check_dir=False), name="map")
        context.logger.info("map_mounted", directory=str(map_dir))

    assets_dir = Path(webserver.assets_dir)
    if assets_dir.is_dir():
        app.mount("/", StaticFiles(directory=assets_dir, html=True), name="assets")
        context.logger.info("assets_mounted", directory=str(assets_dir))
    else:
        context.logger.warning("assets_dir_missing", directory=str(assets_dir))

    return app


__all__ = ["create_app", "lifespan", "SERVICE_NAME"]
