"""
music_broker.services.connection

Connection initiator.

Responsibilities:
- Build the redirect into the login endpoint that starts a federated
  connection to the secondary provider.
- Validate the post-connect `returnTo` path (local paths only).
"""

from __future__ import annotations

import httpx

from music_broker.services.errors import ConnectionSetupError
from music_broker.settings import Settings

# Without offline access no refresh credential is issued and every token
# exchange fails once the first upstream token expires.
CONSENT_PARAMS: dict[str, str] = {
    "access_type": "offline",
    "prompt": "consent",
}


def safe_return_to(candidate: str | None, *, default: str) -> str:
    """
    Accept only same-origin absolute paths (`/x`), never `//host` or URLs.
    """

    if not candidate or not candidate.startswith("/") or candidate.startswith("//"):
        return default
    if "\\" in candidate or any(ord(ch) < 0x20 for ch in candidate):
        return default
    return candidate


def login_endpoint(settings: Settings) -> httpx.URL:
    try:
        url = httpx.URL(settings.app_base_url.rstrip("/") + settings.login_path)
    except httpx.InvalidURL as e:
        raise ConnectionSetupError(f"invalid base URL: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConnectionSetupError("base URL must be an absolute http(s) URL")
    return url


class ConnectionInitiator:
    def __init__(self, *, settings: Settings) -> None:
        self._settings = settings

    def build_redirect_url(self, return_to: str | None = None) -> str:
        target = login_endpoint(self._settings)
        params = {
            "connection": self._settings.connection_name,
            "returnTo": safe_return_to(return_to, default=self._settings.default_return_to),
            **CONSENT_PARAMS,
        }
        return str(target.copy_merge_params(params))


# --- Module Notes -----------------------------------------------------------
# The login endpoint (`api.routers.auth.login`) forwards these parameters to
# Auth0's /authorize together with the OAuth client parameters.
