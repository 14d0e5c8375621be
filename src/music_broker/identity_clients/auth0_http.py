"""
music_broker.identity_clients.auth0_http

HTTP client boundary to the primary identity provider (Auth0).

Responsibilities:
- Build `/authorize` and `/v2/logout` URLs for browser redirects.
- Exchange an authorization code for the session's tokens.
- Exchange the session refresh credential for a federated connection access token.
- Fetch the user's profile from `/userinfo`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from music_broker.settings import Settings

FEDERATED_CONNECTION_GRANT = (
    "urn:auth0:params:oauth:grant-type:token-exchange:federated-connection-access-token"
)
REFRESH_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:refresh_token"
FEDERATED_CONNECTION_TOKEN_TYPE = "http://auth0.com/oauth/token-type/federated-connection-access-token"


class Auth0ApiError(Exception):
    """
    Non-2xx answer from Auth0. `code` is Auth0's own `error` field, verbatim.
    """

    def __init__(self, *, status_code: int, code: str, description: str) -> None:
        super().__init__(description or code)
        self.status_code = status_code
        self.code = code
        self.description = description


@dataclass(frozen=True, slots=True)
class Auth0Config:
    domain: str
    client_id: str
    client_secret: str
    audience: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Auth0Config:
        return cls(
            domain=settings.auth0_domain.rstrip("/"),
            client_id=settings.auth0_client_id,
            client_secret=settings.auth0_client_secret,
            audience=settings.auth0_audience,
        )


def _raise_for_auth0_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    code = "http_error"
    description = r.reason_phrase
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("error") or code)
        description = str(body.get("error_description") or body.get("message") or description)
    raise Auth0ApiError(status_code=r.status_code, code=code, description=description)


class Auth0Client:
    """
    Thin async wrapper over the Auth0 Authentication API.
    """

    def __init__(self, *, config: Auth0Config, http: httpx.AsyncClient) -> None:
        self._cfg = config
        self._http = http

    def authorize_url(
        self,
        *,
        redirect_uri: str,
        state: str,
        scope: str,
        extra_params: Mapping[str, str] | None = None,
    ) -> str:
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self._cfg.client_id,
            "redirect_uri": redirect_uri,
            "scope": scope,
            "state": state,
        }
        if self._cfg.audience:
            params["audience"] = self._cfg.audience
        params.update(extra_params or {})
        return str(httpx.URL(f"{self._cfg.domain}/authorize", params=params))

    def logout_url(self, *, return_to: str) -> str:
        return str(
            httpx.URL(
                f"{self._cfg.domain}/v2/logout",
                params={"client_id": self._cfg.client_id, "returnTo": return_to},
            )
        )

    async def exchange_code(self, *, code: str, redirect_uri: str) -> dict[str, Any]:
        r = await self._http.post(
            f"{self._cfg.domain}/oauth/token",
            data={
                "grant_type": "authorization_code",
                "client_id": self._cfg.client_id,
                "client_secret": self._cfg.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        _raise_for_auth0_error(r)
        return r.json()

    async def userinfo(self, *, access_token: str) -> dict[str, Any]:
        r = await self._http.get(
            f"{self._cfg.domain}/userinfo",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        _raise_for_auth0_error(r)
        return r.json()

    async def token_for_connection(
        self,
        *,
        refresh_token: str,
        connection: str,
        login_hint: str | None = None,
    ) -> dict[str, Any]:
        # Auth0 refreshes the upstream token with its stored credential when needed.
        data = {
            "grant_type": FEDERATED_CONNECTION_GRANT,
            "client_id": self._cfg.client_id,
            "client_secret": self._cfg.client_secret,
            "subject_token": refresh_token,
            "subject_token_type": REFRESH_TOKEN_TYPE,
            "requested_token_type": FEDERATED_CONNECTION_TOKEN_TYPE,
            "connection": connection,
        }
        if login_hint:
            data["login_hint"] = login_hint
        r = await self._http.post(f"{self._cfg.domain}/oauth/token", data=data)
        _raise_for_auth0_error(r)
        return r.json()


# --- Module Notes -----------------------------------------------------------
# The shared httpx.AsyncClient is created in the app lifespan with an explicit
# timeout; transport errors (httpx.HTTPError) propagate to the caller unchanged.
