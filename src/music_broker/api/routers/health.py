"""
music_broker.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`): upstream clients are open and the
  identity provider client is configured.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from music_broker.api.deps import settings_dep
from music_broker.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@router.get("/readyz", response_model=None)
async def readyz(
    request: Request,
    settings: Settings = Depends(settings_dep),
) -> dict[str, str] | JSONResponse:
    missing: list[str] = []
    for name in ("identity_http", "music_http"):
        client = getattr(request.app.state, name, None)
        if client is None or client.is_closed:
            missing.append(name)
    if not settings.auth0_client_id:
        missing.append("auth0_client_id")

    if missing:
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "missing": missing},
        )
    return {"status": "ready"}


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating.
