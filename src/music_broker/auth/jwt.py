"""
music_broker.auth.jwt

Session cookie sealing helpers.

Responsibilities:
- Seal a `Session` into a signed, short-lived JWT suitable for a cookie.
- Encrypt the refresh credential inside it so the browser cannot read it.
- Unseal cookies with strict claim requirements (iss/exp/iat/sub).
- Seal/unseal the short-lived login transaction (state + returnTo).
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from cryptography.fernet import Fernet, InvalidToken
from jwt import InvalidTokenError

from music_broker.auth.models import Principal, Session

SESSION_ISSUER = "music-broker/session"
TRANSACTION_ISSUER = "music-broker/login-txn"


@dataclass(frozen=True, slots=True)
class CookieConfig:
    secret: str
    alg: str = "HS256"


class CookieValidationError(Exception):
    pass


def _fernet(secret: str) -> Fernet:
    # Derive a 32-byte key from the signing secret, base64-url encoded for Fernet.
    digest = hashlib.sha256(f"refresh-token:{secret}".encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def _decode(*, cfg: CookieConfig, token: str, issuer: str, require: list[str]) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=issuer,
            options={"require": require},
        )
    except InvalidTokenError as e:
        raise CookieValidationError(str(e)) from e


def seal_session(*, cfg: CookieConfig, session: Session) -> str:
    now = datetime.now(tz=UTC)
    p = session.principal
    payload: dict[str, Any] = {
        "iss": SESSION_ISSUER,
        "sub": p.subject,
        "iat": int(now.timestamp()),
        "exp": int(session.expires_at.timestamp()),
        "name": p.name,
        "email": p.email,
        "picture": p.picture,
    }
    if session.refresh_token:
        payload["rt"] = _fernet(cfg.secret).encrypt(session.refresh_token.encode()).decode()
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def unseal_session(*, cfg: CookieConfig, token: str) -> Session:
    payload = _decode(cfg=cfg, token=token, issuer=SESSION_ISSUER, require=["exp", "iat", "iss", "sub"])

    subject = str(payload.get("sub", ""))
    if not subject:
        raise CookieValidationError("empty session subject")

    refresh_token: str | None = None
    sealed = payload.get("rt")
    if sealed:
        try:
            refresh_token = _fernet(cfg.secret).decrypt(str(sealed).encode()).decode()
        except InvalidToken as e:
            raise CookieValidationError("refresh credential could not be decrypted") from e

    return Session(
        principal=Principal(
            subject=subject,
            name=payload.get("name"),
            email=payload.get("email"),
            picture=payload.get("picture"),
        ),
        expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        refresh_token=refresh_token,
    )


def seal_transaction(
    *,
    cfg: CookieConfig,
    state: str,
    return_to: str,
    ttl: timedelta = timedelta(minutes=10),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": TRANSACTION_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
        "state": state,
        "return_to": return_to,
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def unseal_transaction(*, cfg: CookieConfig, token: str) -> tuple[str, str]:
    payload = _decode(cfg=cfg, token=token, issuer=TRANSACTION_ISSUER, require=["exp", "iat", "iss"])
    state = payload.get("state")
    return_to = payload.get("return_to")
    if not isinstance(state, str) or not isinstance(return_to, str):
        raise CookieValidationError("malformed login transaction")
    return state, return_to


# --- Module Notes -----------------------------------------------------------
# Used by:
# - `auth/deps.py` (session accessor)
# - `api/routers/auth.py` (login transaction and session issuance)
