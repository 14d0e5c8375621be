"""
music_broker.api.routers.spotify

Connection-and-token-broker endpoints for the secondary provider.

Responsibilities:
- Start a federated connection (`/connect`).
- Hand out an exchanged access token (`/access-token`).
- Serve normalized playlists (`/playlists`, `/playlists/{id}/tracks`).
- Report connection status (`/status`).

Status mapping (single place): no session -> 401, `TokenError` -> 403,
gateway or unexpected failure -> 500 with a generic message.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from starlette.status import (
    HTTP_302_FOUND,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from music_broker.api.deps import (
    connection_initiator_dep,
    playlist_gateway_dep,
    settings_dep,
    token_exchanger_dep,
)
from music_broker.api.errors import ApiError
from music_broker.auth.deps import current_session, require_session
from music_broker.auth.models import Session
from music_broker.observability.logging import get_logger
from music_broker.services.connection import ConnectionInitiator
from music_broker.services.errors import ConnectionSetupError, GatewayError, TokenError, TokenErrorKind
from music_broker.services.playlists import PlaylistGateway
from music_broker.services.token_exchange import AccessToken, TokenExchanger
from music_broker.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/api/spotify", tags=["spotify"])

_TOKEN_ERROR_MESSAGES: dict[TokenErrorKind, str] = {
    TokenErrorKind.connection_missing: "Spotify is not connected",
    TokenErrorKind.connection_expired: "Spotify connection expired, reconnect to continue",
    TokenErrorKind.provider_rejected: "Spotify access was rejected by the identity provider",
}


def _forbidden(e: TokenError) -> ApiError:
    return ApiError(
        status_code=HTTP_403_FORBIDDEN,
        error=_TOKEN_ERROR_MESSAGES[e.kind],
        error_code=e.provider_code,
    )


async def _exchange(exchanger: TokenExchanger, session: Session, *, failure: str) -> AccessToken:
    try:
        return await exchanger.get_access_token(session)
    except TokenError as e:
        raise _forbidden(e) from e
    except Exception as e:
        log.exception("token_exchange_failed")
        raise ApiError(status_code=HTTP_500_INTERNAL_SERVER_ERROR, error=failure) from e


@router.get("/connect")
async def connect(
    return_to: str | None = Query(default=None, alias="returnTo"),
    initiator: ConnectionInitiator = Depends(connection_initiator_dep),
) -> RedirectResponse:
    try:
        url = initiator.build_redirect_url(return_to)
    except ConnectionSetupError as e:
        log.error("connect_redirect_invalid", reason=str(e))
        raise ApiError(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            error="Failed to initiate Spotify connection",
        ) from e
    return RedirectResponse(url, status_code=HTTP_302_FOUND)


@router.get("/access-token")
async def access_token(
    session: Session = Depends(require_session),
    exchanger: TokenExchanger = Depends(token_exchanger_dep),
) -> dict[str, str]:
    # Trust boundary: the raw upstream token leaves the server here (client SDK use).
    token = await _exchange(exchanger, session, failure="Failed to get access token")
    return {"accessToken": token.token}


@router.get("/playlists")
async def playlists(
    type_: str = Query(default="search", alias="type"),
    query: str | None = Query(default=None),
    session: Session = Depends(require_session),
    exchanger: TokenExchanger = Depends(token_exchanger_dep),
    gateway: PlaylistGateway = Depends(playlist_gateway_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    token = await _exchange(exchanger, session, failure="Failed to fetch playlists")

    try:
        # Unknown `type` values fall back to search.
        if type_ == "user":
            items = await gateway.list_user_playlists(token)
        else:
            q = (query or "").strip() or settings.search_default_query
            items = await gateway.search_playlists(token, q)
    except GatewayError as e:
        log.warning("playlists_fetch_failed", type=type_, status_code=e.status_code)
        raise ApiError(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch playlists"
        ) from e
    except Exception as e:
        log.exception("playlists_fetch_crashed", type=type_)
        raise ApiError(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch playlists"
        ) from e

    return {
        "playlists": [p.model_dump(by_alias=True) for p in items],
        "count": len(items),
    }


@router.get("/playlists/{playlist_id}/tracks")
async def playlist_tracks(
    playlist_id: str,
    session: Session = Depends(require_session),
    exchanger: TokenExchanger = Depends(token_exchanger_dep),
    gateway: PlaylistGateway = Depends(playlist_gateway_dep),
) -> dict[str, Any]:
    token = await _exchange(exchanger, session, failure="Failed to fetch playlist tracks")
    try:
        tracks = await gateway.list_playlist_tracks(token, playlist_id)
    except GatewayError as e:
        log.warning("tracks_fetch_failed", status_code=e.status_code)
        raise ApiError(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch playlist tracks"
        ) from e
    except Exception as e:
        log.exception("tracks_fetch_crashed")
        raise ApiError(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch playlist tracks"
        ) from e
    return {
        "tracks": [t.model_dump(by_alias=True) for t in tracks],
        "count": len(tracks),
    }


@router.get("/status")
async def connection_status(
    session: Session | None = Depends(current_session),
    exchanger: TokenExchanger = Depends(token_exchanger_dep),
    gateway: PlaylistGateway = Depends(playlist_gateway_dep),
) -> dict[str, Any]:
    # Always 200: this is a probe the settings page polls, not a protected resource.
    if session is None:
        return {"connected": False, "error": "Not authenticated"}

    try:
        token = await exchanger.get_access_token(session)
    except TokenError as e:
        return {
            "connected": False,
            "error": _TOKEN_ERROR_MESSAGES[e.kind],
            "errorCode": e.provider_code,
            "reconnectRequired": e.kind is not TokenErrorKind.provider_rejected,
        }

    try:
        profile = await gateway.current_profile(token)
    except GatewayError:
        return {"connected": False, "error": "Failed to verify Spotify connection"}

    return {"connected": True, "profile": profile, "hasToken": True}
