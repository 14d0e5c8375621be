"""
tests.test_token_exchange

Token exchanger against a simulated Auth0 token endpoint.

Responsibilities:
- Verify the federated connection exchange request.
- Verify failure classification and that provider codes pass through unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from music_broker.auth.models import Principal, Session
from music_broker.identity_clients.auth0_http import (
    FEDERATED_CONNECTION_GRANT,
    Auth0Client,
    Auth0Config,
)
from music_broker.services.errors import TokenError, TokenErrorKind
from music_broker.services.token_exchange import MALFORMED_TOKEN_RESPONSE, TokenExchanger

CONFIG = Auth0Config(
    domain="https://tenant.auth0.test",
    client_id="client-123",
    client_secret="client-secret",
)


def _session(refresh_token: str | None = "auth0-refresh-token") -> Session:
    return Session(
        principal=Principal(subject="auth0|user-1"),
        expires_at=datetime.now(tz=UTC) + timedelta(hours=1),
        refresh_token=refresh_token,
    )


def _exchanger(handler: Callable[[httpx.Request], httpx.Response]) -> TokenExchanger:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenExchanger(identity=Auth0Client(config=CONFIG, http=http), connection="spotify")


@pytest.mark.asyncio
async def test_exchange_requests_connection_scoped_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"access_token": "BQD-spotify", "expires_in": 3600, "scope": "playlist-read-private"},
        )

    token = await _exchanger(handler).get_access_token(_session())

    assert token.token == "BQD-spotify"
    assert token.connection == "spotify"
    assert token.scope == "playlist-read-private"
    assert token.expires_at is not None
    assert "BQD-spotify" not in repr(token)

    (request,) = seen
    assert request.url == "https://tenant.auth0.test/oauth/token"
    form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
    assert form["grant_type"] == FEDERATED_CONNECTION_GRANT
    assert form["connection"] == "spotify"
    assert form["subject_token"] == "auth0-refresh-token"
    assert form["client_id"] == "client-123"


@pytest.mark.asyncio
async def test_exchange_is_not_cached() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json={"access_token": f"token-{calls}"})

    exchanger = _exchanger(handler)
    first = await exchanger.get_access_token(_session())
    second = await exchanger.get_access_token(_session())

    assert (first.token, second.token) == ("token-1", "token-2")


@pytest.mark.asyncio
async def test_session_without_refresh_credential_is_connection_missing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("identity provider must not be called")

    with pytest.raises(TokenError) as exc:
        await _exchanger(handler).get_access_token(_session(refresh_token=None))

    assert exc.value.kind is TokenErrorKind.connection_missing
    assert exc.value.provider_code == "missing_refresh_token"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "code", "kind"),
    [
        (401, "federated_connection_refresh_token_not_found", TokenErrorKind.connection_missing),
        (403, "invalid_grant", TokenErrorKind.connection_expired),
        (403, "access_denied", TokenErrorKind.provider_rejected),
        (400, "invalid_scope", TokenErrorKind.provider_rejected),
        (503, "temporarily_unavailable", TokenErrorKind.provider_rejected),
    ],
)
async def test_provider_errors_are_classified(status: int, code: str, kind: TokenErrorKind) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": code, "error_description": "nope"})

    with pytest.raises(TokenError) as exc:
        await _exchanger(handler).get_access_token(_session())

    assert exc.value.kind is kind
    assert exc.value.provider_code == code


@pytest.mark.asyncio
async def test_timeout_is_provider_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TokenError) as exc:
        await _exchanger(handler).get_access_token(_session())

    assert exc.value.kind is TokenErrorKind.provider_rejected
    assert exc.value.provider_code == "failed_to_exchange_refresh_token"


@pytest.mark.asyncio
async def test_non_json_error_body_still_classifies() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(TokenError) as exc:
        await _exchanger(handler).get_access_token(_session())

    assert exc.value.kind is TokenErrorKind.provider_rejected
    assert exc.value.provider_code == "http_error"


@pytest.mark.asyncio
async def test_success_without_token_is_provider_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"token_type": "Bearer"})

    with pytest.raises(TokenError) as exc:
        await _exchanger(handler).get_access_token(_session())

    assert exc.value.kind is TokenErrorKind.provider_rejected
    assert exc.value.provider_code == "missing_access_token"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>ok</html>"),
        httpx.Response(200, json=["x"]),
    ],
    ids=["not-json", "json-array"],
)
async def test_unreadable_success_body_is_provider_rejected(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(TokenError) as exc:
        await _exchanger(handler).get_access_token(_session())

    assert exc.value.kind is TokenErrorKind.provider_rejected
    assert exc.value.provider_code == MALFORMED_TOKEN_RESPONSE
