"""
music_broker.api.routers.auth

Primary identity provider login handshake.

Responsibilities:
- `/login`: redirect to Auth0 /authorize, forwarding connection/consent params.
- `/callback`: verify state, exchange the code, establish the session cookie.
- `/logout`: drop the session and log out of Auth0.
- `/me`: report the current principal (never any token).
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from starlette.status import (
    HTTP_302_FOUND,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from music_broker.api.deps import auth0_client_dep, settings_dep
from music_broker.api.errors import ApiError
from music_broker.auth.deps import cookie_config, current_session
from music_broker.auth.jwt import (
    CookieValidationError,
    seal_session,
    seal_transaction,
    unseal_transaction,
)
from music_broker.auth.models import Principal, Session
from music_broker.identity_clients.auth0_http import Auth0ApiError, Auth0Client
from music_broker.observability.logging import get_logger
from music_broker.services.connection import safe_return_to
from music_broker.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def callback_url(settings: Settings) -> str:
    return settings.app_base_url.rstrip("/") + settings.callback_path


def _authorize_params(
    *,
    settings: Settings,
    connection: str | None,
    access_type: str | None,
    prompt: str | None,
) -> tuple[str, dict[str, str]]:
    scope = settings.auth0_scope
    extra: dict[str, str] = {}
    if connection:
        extra["connection"] = connection
        # A connection is only usable later if a refresh credential is issued now.
        if "offline_access" not in scope.split():
            scope = f"{scope} offline_access"
    if access_type:
        extra["access_type"] = access_type
    if prompt:
        extra["prompt"] = prompt
        if connection and prompt == "consent":
            # Some upstream providers ignore `prompt` and only honour this flag.
            extra["approval_prompt"] = "force"
    return scope, extra


@router.get("/login")
async def login(
    return_to: str | None = Query(default=None, alias="returnTo"),
    connection: str | None = Query(default=None),
    access_type: str | None = Query(default=None),
    prompt: str | None = Query(default=None),
    settings: Settings = Depends(settings_dep),
    auth0: Auth0Client = Depends(auth0_client_dep),
) -> RedirectResponse:
    state = secrets.token_urlsafe(24)
    target = safe_return_to(return_to, default=settings.post_login_return_to)
    scope, extra = _authorize_params(
        settings=settings, connection=connection, access_type=access_type, prompt=prompt
    )

    try:
        url = auth0.authorize_url(
            redirect_uri=callback_url(settings),
            state=state,
            scope=scope,
            extra_params=extra,
        )
    except httpx.InvalidURL as e:
        log.error("authorize_url_invalid", reason=str(e))
        raise ApiError(status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to start login") from e

    log.info("login_started", connection=connection)
    response = RedirectResponse(url, status_code=HTTP_302_FOUND)
    response.set_cookie(
        settings.transaction_cookie_name,
        seal_transaction(
            cfg=cookie_config(settings),
            state=state,
            return_to=target,
            ttl=timedelta(seconds=settings.transaction_ttl_seconds),
        ),
        max_age=settings.transaction_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    error_description: str | None = Query(default=None),
    settings: Settings = Depends(settings_dep),
    auth0: Auth0Client = Depends(auth0_client_dep),
) -> RedirectResponse:
    if error:
        log.warning("login_denied", provider_code=error)
        raise ApiError(
            status_code=HTTP_400_BAD_REQUEST,
            error=error_description or "Authorization failed",
            error_code=error,
        )

    raw_txn = request.cookies.get(settings.transaction_cookie_name)
    if not code or not state or not raw_txn:
        raise ApiError(status_code=HTTP_400_BAD_REQUEST, error="Invalid authorization response")
    try:
        expected_state, return_to = unseal_transaction(cfg=cookie_config(settings), token=raw_txn)
    except CookieValidationError as e:
        raise ApiError(status_code=HTTP_400_BAD_REQUEST, error="Login transaction expired") from e
    if not secrets.compare_digest(state, expected_state):
        raise ApiError(status_code=HTTP_400_BAD_REQUEST, error="Invalid authorization state")

    try:
        tokens: dict[str, Any] = await auth0.exchange_code(code=code, redirect_uri=callback_url(settings))
        profile = await auth0.userinfo(access_token=str(tokens["access_token"]))
    except Auth0ApiError as e:
        log.warning("login_exchange_rejected", provider_code=e.code, status_code=e.status_code)
        status = HTTP_400_BAD_REQUEST if e.status_code < 500 else HTTP_500_INTERNAL_SERVER_ERROR
        raise ApiError(status_code=status, error="Authentication failed", error_code=e.code) from e
    except (httpx.HTTPError, KeyError) as e:
        log.warning("login_exchange_failed", error_type=type(e).__name__)
        raise ApiError(status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Authentication failed") from e

    subject = profile.get("sub")
    if not subject:
        raise ApiError(status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Authentication failed")

    session = Session(
        principal=Principal(
            subject=str(subject),
            name=profile.get("name"),
            email=profile.get("email"),
            picture=profile.get("picture"),
        ),
        expires_at=datetime.now(tz=UTC) + timedelta(seconds=settings.session_ttl_seconds),
        refresh_token=tokens.get("refresh_token"),
    )
    log.info("login_completed", subject=session.principal.subject, offline=session.has_refresh_token)

    response = RedirectResponse(return_to, status_code=HTTP_302_FOUND)
    response.set_cookie(
        settings.session_cookie_name,
        seal_session(cfg=cookie_config(settings), session=session),
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    response.delete_cookie(settings.transaction_cookie_name)
    return response


@router.get("/logout")
async def logout(
    settings: Settings = Depends(settings_dep),
    auth0: Auth0Client = Depends(auth0_client_dep),
) -> RedirectResponse:
    response = RedirectResponse(
        auth0.logout_url(return_to=settings.app_base_url), status_code=HTTP_302_FOUND
    )
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/me")
async def me(session: Session | None = Depends(current_session)) -> dict[str, Any]:
    if session is None:
        return {"authenticated": False, "error": "Not authenticated"}
    return {
        "authenticated": True,
        "user": session.principal.public_profile(),
        "expiresAt": session.expires_at.isoformat(),
    }
