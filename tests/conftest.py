"""
tests.conftest

Shared fixtures for the broker test-suite.

Responsibilities:
- Build test settings and the app under test.
- Provide an in-process HTTP client (ASGITransport, lifespan managed explicitly).
- Provide counting fakes for the token exchanger and the playlist gateway.
- Mint session cookies for authenticated requests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from music_broker.api.app import create_app
from music_broker.api.deps import playlist_gateway_dep, token_exchanger_dep
from music_broker.auth.jwt import CookieConfig, seal_session
from music_broker.auth.models import Principal, Session
from music_broker.services.playlists import PlaylistSummary, TrackSummary
from music_broker.services.token_exchange import AccessToken
from music_broker.settings import Settings


class FakeExchanger:
    def __init__(self) -> None:
        self.calls: list[Session] = []
        self.error: Exception | None = None
        self.token = "spotify-access-token"

    async def get_access_token(self, session: Session) -> AccessToken:
        self.calls.append(session)
        if self.error is not None:
            raise self.error
        return AccessToken(connection="spotify", token=self.token)


class FakeGateway:
    def __init__(self) -> None:
        self.search_calls: list[str] = []
        self.user_calls = 0
        self.profile_calls = 0
        self.track_calls: list[str] = []
        self.playlists: list[PlaylistSummary] = []
        self.tracks: list[TrackSummary] = []
        self.error: Exception | None = None

    async def search_playlists(self, token: AccessToken, query: str) -> list[PlaylistSummary]:
        self.search_calls.append(query)
        if self.error is not None:
            raise self.error
        return list(self.playlists)

    async def list_user_playlists(self, token: AccessToken) -> list[PlaylistSummary]:
        self.user_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.playlists)

    async def list_playlist_tracks(self, token: AccessToken, playlist_id: str) -> list[TrackSummary]:
        self.track_calls.append(playlist_id)
        if self.error is not None:
            raise self.error
        return list(self.tracks)

    async def current_profile(self, token: AccessToken) -> dict[str, object]:
        self.profile_calls += 1
        if self.error is not None:
            raise self.error
        return {"id": "spotify-user", "display_name": "Listener"}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        app_base_url="http://broker.test",
        auth0_domain="https://tenant.auth0.test",
        auth0_client_id="client-123",
        auth0_client_secret="client-secret",
        session_secret="test-session-secret",
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings=settings)


@pytest.fixture
def exchanger(app: FastAPI) -> FakeExchanger:
    fake = FakeExchanger()
    app.dependency_overrides[token_exchanger_dep] = lambda: fake
    return fake


@pytest.fixture
def gateway(app: FastAPI) -> FakeGateway:
    fake = FakeGateway()
    app.dependency_overrides[playlist_gateway_dep] = lambda: fake
    return fake


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://broker.test") as c:
            yield c


@pytest.fixture
def session_headers(settings: Settings) -> Callable[..., dict[str, str]]:
    def _make(*, refresh_token: str | None = "auth0-refresh-token", subject: str = "auth0|user-1") -> dict[str, str]:
        session = Session(
            principal=Principal(subject=subject, name="Test User", email="user@example.com"),
            expires_at=datetime.now(tz=UTC) + timedelta(hours=1),
            refresh_token=refresh_token,
        )
        cookie = seal_session(cfg=CookieConfig(secret=settings.session_secret), session=session)
        return {"Cookie": f"{settings.session_cookie_name}={cookie}"}

    return _make
