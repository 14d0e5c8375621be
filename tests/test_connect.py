"""
tests.test_connect

Connection initiation: the redirect into the login endpoint and its forwarding
to the identity provider.
"""

from __future__ import annotations

import httpx
import pytest

from music_broker.api.app import create_app
from music_broker.services.connection import ConnectionInitiator, safe_return_to
from music_broker.services.errors import ConnectionSetupError
from music_broker.settings import Settings


def test_redirect_carries_exactly_the_consent_parameters(settings: Settings) -> None:
    url = httpx.URL(ConnectionInitiator(settings=settings).build_redirect_url("/x"))

    assert url.scheme == "http"
    assert url.host == "broker.test"
    assert url.path == "/api/auth/login"
    assert sorted(url.params.multi_items()) == sorted(
        [
            ("connection", "spotify"),
            ("returnTo", "/x"),
            ("access_type", "offline"),
            ("prompt", "consent"),
        ]
    )


def test_redirect_defaults_return_to_settings_page(settings: Settings) -> None:
    url = httpx.URL(ConnectionInitiator(settings=settings).build_redirect_url(None))

    assert url.params["returnTo"] == "/dashboard/settings"


def test_connection_name_comes_from_settings(settings: Settings) -> None:
    custom = settings.model_copy(update={"connection_name": "spotify-study"})

    url = httpx.URL(ConnectionInitiator(settings=custom).build_redirect_url("/x"))

    assert url.params["connection"] == "spotify-study"


@pytest.mark.parametrize(
    "candidate",
    ["https://evil.example/", "//evil.example/path", "javascript:alert(1)", "/\\evil", "", "relative/path"],
)
def test_non_local_return_to_falls_back(candidate: str) -> None:
    assert safe_return_to(candidate, default="/dashboard/settings") == "/dashboard/settings"


def test_local_return_to_is_kept() -> None:
    assert safe_return_to("/dashboard/study?tab=music", default="/d") == "/dashboard/study?tab=music"


@pytest.mark.parametrize("base", ["not a url", "ftp://files.example", "http://"])
def test_malformed_base_url_raises(settings: Settings, base: str) -> None:
    broken = settings.model_copy(update={"app_base_url": base})

    with pytest.raises(ConnectionSetupError):
        ConnectionInitiator(settings=broken).build_redirect_url("/x")


@pytest.mark.asyncio
async def test_connect_route_redirects(client: httpx.AsyncClient) -> None:
    r = await client.get("/api/spotify/connect", params={"returnTo": "/x"})

    assert r.status_code == 302
    location = httpx.URL(r.headers["location"])
    assert dict(location.params) == {
        "connection": "spotify",
        "returnTo": "/x",
        "access_type": "offline",
        "prompt": "consent",
    }


@pytest.mark.asyncio
async def test_connect_route_with_broken_base_url_is_500(settings: Settings) -> None:
    app = create_app(settings=settings.model_copy(update={"app_base_url": "not a url"}))

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/api/spotify/connect")

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to initiate Spotify connection"}


@pytest.mark.asyncio
async def test_login_forwards_connection_request_to_authorize(client: httpx.AsyncClient, settings: Settings) -> None:
    connect = await client.get("/api/spotify/connect", params={"returnTo": "/dashboard/study"})
    login_url = httpx.URL(connect.headers["location"])

    r = await client.get(login_url.path, params=dict(login_url.params))

    assert r.status_code == 302
    authorize = httpx.URL(r.headers["location"])
    assert authorize.host == "tenant.auth0.test"
    assert authorize.path == "/authorize"
    params = dict(authorize.params)
    assert params["connection"] == "spotify"
    assert params["access_type"] == "offline"
    assert params["prompt"] == "consent"
    assert params["approval_prompt"] == "force"
    assert "offline_access" in params["scope"].split()
    assert params["client_id"] == "client-123"
    assert params["redirect_uri"] == "http://broker.test/api/auth/callback"
    assert params["state"]
    assert settings.transaction_cookie_name in r.cookies


# --- Module Notes -----------------------------------------------------------
# `returnTo` is echoed only when it is a local path; see safe_return_to.
