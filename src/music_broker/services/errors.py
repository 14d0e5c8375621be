"""
music_broker.services.errors

Broker error taxonomy.

Responsibilities:
- `TokenError`: the connection/token layer failed (mapped to 403 by routes).
- `GatewayError`: a downstream secondary-provider call failed (mapped to 500).
- `ConnectionSetupError`: the connect redirect could not be constructed.
"""

from __future__ import annotations

from enum import StrEnum


class TokenErrorKind(StrEnum):
    connection_missing = "ConnectionMissing"
    connection_expired = "ConnectionExpired"
    provider_rejected = "ProviderRejected"


class TokenError(Exception):
    def __init__(
        self,
        *,
        kind: TokenErrorKind,
        message: str,
        provider_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.provider_code = provider_code


class GatewayError(Exception):
    """
    Transport failure, timeout or non-2xx answer from the secondary provider.
    """

    kind = TokenErrorKind.provider_rejected

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConnectionSetupError(ValueError):
    pass


# --- Module Notes -----------------------------------------------------------
# Routes depend on these types only; httpx / Auth0 / Spotify exceptions are
# converted at the service boundary.
