"""
music_broker.auth.deps

Session accessor and FastAPI dependencies built on it.

Responsibilities:
- Read the managed session from the request cookie (`Session | None`).
- Reject unauthenticated callers with 401 before any token work happens.
"""

from __future__ import annotations

from fastapi import Depends, Request
from starlette.status import HTTP_401_UNAUTHORIZED

from music_broker.api.deps import settings_dep
from music_broker.api.errors import ApiError
from music_broker.auth.jwt import CookieConfig, CookieValidationError, unseal_session
from music_broker.auth.models import Session
from music_broker.observability.logging import get_logger
from music_broker.settings import Settings

log = get_logger(__name__)


def cookie_config(settings: Settings) -> CookieConfig:
    return CookieConfig(secret=settings.session_secret)


def read_session(request: Request, settings: Settings) -> Session | None:
    raw = request.cookies.get(settings.session_cookie_name)
    if not raw:
        return None
    try:
        return unseal_session(cfg=cookie_config(settings), token=raw)
    except CookieValidationError as e:
        # An invalid cookie is the same as no cookie: the caller is unauthenticated.
        log.info("session_cookie_rejected", reason=str(e))
        return None


def current_session(
    request: Request,
    settings: Settings = Depends(settings_dep),
) -> Session | None:
    return read_session(request, settings)


def require_session(session: Session | None = Depends(current_session)) -> Session:
    if session is None:
        raise ApiError(status_code=HTTP_401_UNAUTHORIZED, error="Not authenticated")
    return session


# --- Module Notes -----------------------------------------------------------
# 401 (no session) and 403 (session present, connection unusable) are distinct
# failure classes; only the former is produced here.
