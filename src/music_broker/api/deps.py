"""
music_broker.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the shared upstream HTTP clients.
- Build per-request service objects (initiator, exchanger, gateway).
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

import httpx
from fastapi import Depends, Request

from music_broker.identity_clients.auth0_http import Auth0Client, Auth0Config
from music_broker.music_clients.spotify_http import SpotifyApiClient
from music_broker.services.connection import ConnectionInitiator
from music_broker.services.playlists import PlaylistGateway
from music_broker.services.token_exchange import TokenExchanger
from music_broker.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Settings are attached in `music_broker.api.app.create_app`.
    return request.app.state.settings  # type: ignore[attr-defined]


def identity_http(request: Request) -> httpx.AsyncClient:
    # Created in the app lifespan; see `music_broker.api.app`.
    return request.app.state.identity_http  # type: ignore[attr-defined]


def music_http(request: Request) -> httpx.AsyncClient:
    return request.app.state.music_http  # type: ignore[attr-defined]


def auth0_client_dep(
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(identity_http),
) -> Auth0Client:
    return Auth0Client(config=Auth0Config.from_settings(settings), http=http)


def connection_initiator_dep(settings: Settings = Depends(settings_dep)) -> ConnectionInitiator:
    return ConnectionInitiator(settings=settings)


def token_exchanger_dep(
    settings: Settings = Depends(settings_dep),
    identity: Auth0Client = Depends(auth0_client_dep),
) -> TokenExchanger:
    return TokenExchanger(identity=identity, connection=settings.connection_name)


def playlist_gateway_dep(
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(music_http),
) -> PlaylistGateway:
    return PlaylistGateway(
        client=SpotifyApiClient(http=http, base_url=settings.spotify_api_base_url),
        search_limit=settings.search_limit,
        page_limit=settings.page_limit,
        max_pages=settings.max_pages,
    )


# --- Module Notes -----------------------------------------------------------
# Tests replace `token_exchanger_dep` / `playlist_gateway_dep` through
# `app.dependency_overrides` to observe which collaborators a route invokes.
