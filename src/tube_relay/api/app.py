"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from tube_relay import __version__
from tube_relay.api.routes import admin_router, forms_router, google_router, reddit_router
from tube_relay.config.settings import AppConfig
from tube_relay.engine.client import RelayEngine
from tube_relay.errors.relay_errors import RelayError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the relay engine on startup and close it on shutdown."""
    config: AppConfig = app.state.config
    engine = RelayEngine(config, http_client=app.state.http_client)
    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Relay engine started")
        yield
    finally:
        await engine.close()
        app.state.engine = None
        logger.info("Relay engine shut down")


def create_app(
    *,
    config: AppConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, it is built from the
            environment (and ``TUBERELAY_CONFIG_PATH`` when set).
        http_client: Optional shared HTTP client for outbound calls.
    """
    if config is None:
        config = AppConfig()

    app = FastAPI(
        title="tube-relay",
        version=__version__,
        description="Relays new YouTube uploads to Reddit",
        lifespan=_lifespan,
    )
    app.state.config = config
    app.state.http_client = http_client
    app.state.engine = None

    # -- Error handlers --
    @app.exception_handler(RelayError)
    async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
        return JSONResponse(
            status_code=400,
            content={"code": "validation-failure", "message": f"invalid request: {fields}"},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        engine: RelayEngine | None = app.state.engine
        if engine is None:
            return {"status": "starting"}
        return {"status": "ok", **await engine.health_check()}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        engine: RelayEngine | None = app.state.engine
        metrics = engine.metrics if engine is not None else None
        body = generate_latest(metrics.registry) if metrics else b""
        return Response(
            content=body,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Routers --
    app.include_router(google_router, prefix="/" + config.hub.callback_path.strip("/"))
    app.include_router(forms_router)
    app.include_router(reddit_router)
    app.include_router(admin_router)

    return app
