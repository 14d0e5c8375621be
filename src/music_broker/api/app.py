"""
music_broker.api.app

FastAPI app factory for the music broker service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Create and dispose the shared upstream HTTP clients (Auth0, Spotify).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from music_broker.api.errors import install_error_handlers
from music_broker.api.routers.auth import router as auth_router
from music_broker.api.routers.health import router as health_router
from music_broker.api.routers.spotify import router as spotify_router
from music_broker.observability.logging import configure_logging, get_logger
from music_broker.observability.middleware import RequestContextMiddleware
from music_broker.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, connection=settings.connection_name)
        # One client per upstream; both carry an explicit bounded timeout.
        timeout = httpx.Timeout(settings.http_timeout_seconds)
        app.state.identity_http = httpx.AsyncClient(timeout=timeout)
        app.state.music_http = httpx.AsyncClient(timeout=timeout)
        try:
            yield
        finally:
            await app.state.identity_http.aclose()
            await app.state.music_http.aclose()
            log.info("shutdown")

    app = FastAPI(
        title="Music Connection Broker",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    install_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(spotify_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file stays small: app composition lives here; token and gateway logic
# lives in the services layer.
