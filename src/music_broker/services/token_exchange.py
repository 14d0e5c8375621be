"""
music_broker.services.token_exchange

Token exchanger: primary session -> secondary-provider access token.

Responsibilities:
- Ask Auth0 for an access token scoped to the secondary connection on every call.
- Classify failures into `TokenError` kinds; keep the provider's own error code.

The broker never refreshes or caches upstream tokens itself: Auth0 refreshes
with its stored credential when the upstream token is expired.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import httpx

from music_broker.auth.models import Session
from music_broker.identity_clients.auth0_http import Auth0ApiError, Auth0Client
from music_broker.observability.logging import get_logger
from music_broker.services.errors import TokenError, TokenErrorKind

log = get_logger(__name__)

# Codes set by the broker itself when Auth0 gives none.
MISSING_REFRESH_TOKEN = "missing_refresh_token"
FAILED_TO_EXCHANGE = "failed_to_exchange_refresh_token"
MISSING_ACCESS_TOKEN = "missing_access_token"
MALFORMED_TOKEN_RESPONSE = "malformed_token_response"

CONNECTION_MISSING_CODES: frozenset[str] = frozenset(
    {"federated_connection_refresh_token_not_found", MISSING_REFRESH_TOKEN}
)
CONNECTION_EXPIRED_CODES: frozenset[str] = frozenset({"invalid_grant", "expired_token"})


@dataclass(frozen=True, slots=True)
class AccessToken:
    connection: str
    token: str = field(repr=False)
    expires_at: datetime | None = None
    scope: str | None = None


def classify_provider_code(code: str) -> TokenErrorKind:
    if code in CONNECTION_MISSING_CODES:
        return TokenErrorKind.connection_missing
    if code in CONNECTION_EXPIRED_CODES:
        return TokenErrorKind.connection_expired
    return TokenErrorKind.provider_rejected


class TokenExchanger:
    def __init__(self, *, identity: Auth0Client, connection: str) -> None:
        self._identity = identity
        self._connection = connection

    @property
    def connection(self) -> str:
        return self._connection

    def _malformed(self) -> TokenError:
        return TokenError(
            kind=TokenErrorKind.provider_rejected,
            message="Identity provider returned an unreadable token response",
            provider_code=MALFORMED_TOKEN_RESPONSE,
        )

    async def get_access_token(self, session: Session) -> AccessToken:
        if not session.refresh_token:
            # Logged in without offline access: the connection was never granted.
            raise TokenError(
                kind=TokenErrorKind.connection_missing,
                message=f"No {self._connection} connection for this session; connect it first",
                provider_code=MISSING_REFRESH_TOKEN,
            )

        try:
            data = await self._identity.token_for_connection(
                refresh_token=session.refresh_token,
                connection=self._connection,
            )
        except Auth0ApiError as e:
            kind = classify_provider_code(e.code)
            log.warning(
                "connection_token_rejected",
                connection=self._connection,
                kind=kind.value,
                provider_code=e.code,
                status_code=e.status_code,
            )
            raise TokenError(kind=kind, message=str(e), provider_code=e.code) from e
        except httpx.HTTPError as e:
            log.warning(
                "connection_token_unreachable",
                connection=self._connection,
                error_type=type(e).__name__,
            )
            raise TokenError(
                kind=TokenErrorKind.provider_rejected,
                message="Identity provider did not answer the token exchange",
                provider_code=FAILED_TO_EXCHANGE,
            ) from e
        except ValueError as e:
            # 2xx with a body that is not JSON.
            log.warning("connection_token_malformed", connection=self._connection)
            raise self._malformed() from e

        if not isinstance(data, dict):
            log.warning("connection_token_malformed", connection=self._connection)
            raise self._malformed()

        token = data.get("access_token")
        if not token:
            raise TokenError(
                kind=TokenErrorKind.provider_rejected,
                message=f"No {self._connection} access token returned by the identity provider",
                provider_code=MISSING_ACCESS_TOKEN,
            )

        expires_at = None
        expires_in = data.get("expires_in")
        if isinstance(expires_in, int | float):
            expires_at = datetime.now(tz=UTC) + timedelta(seconds=expires_in)

        return AccessToken(
            connection=self._connection,
            token=str(token),
            expires_at=expires_at,
            scope=data.get("scope"),
        )


# --- Module Notes -----------------------------------------------------------
# Every kind maps to HTTP 403 at the route layer; `provider_code` becomes the
# response `errorCode`.
