"""
music_broker.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`).
- Define the managed session (`Session`) read by the session accessor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated user identity from the primary identity provider.
    """

    subject: str
    name: str | None = None
    email: str | None = None
    picture: str | None = None

    def public_profile(self) -> dict[str, str | None]:
        return {
            "sub": self.subject,
            "name": self.name,
            "email": self.email,
            "picture": self.picture,
        }


@dataclass(frozen=True, slots=True)
class Session:
    principal: Principal
    expires_at: datetime
    # Primary-provider refresh credential; only ever sent back to Auth0.
    refresh_token: str | None = field(default=None, repr=False)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)


# --- Module Notes -----------------------------------------------------------
# Keep these models minimal; they flow through API, services and client layers.
