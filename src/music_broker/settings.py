"""
music_broker.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (Auth0 client secret, session secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration; defaults are safe for local dev only.
    """

    model_config = SettingsConfigDict(env_prefix="MUSIC_BROKER_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "music-broker"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Public origin of this service; login/callback URLs are built from it.
    app_base_url: str = "http://localhost:8080"
    login_path: str = "/api/auth/login"
    callback_path: str = "/api/auth/callback"

    # Primary identity provider (Auth0)
    auth0_domain: str = "https://example.us.auth0.com"
    auth0_client_id: str = ""
    auth0_client_secret: str = Field(default="", repr=False)
    auth0_audience: str | None = None
    auth0_scope: str = "openid profile email offline_access"

    # Managed session cookie
    session_secret: str = Field(default="dev-session-secret-change-me", repr=False)
    session_cookie_name: str = "appSession"
    session_ttl_seconds: int = 60 * 60 * 24 * 7
    transaction_cookie_name: str = "auth_txn"
    transaction_ttl_seconds: int = 60 * 10
    cookie_secure: bool = False

    # Secondary provider connection
    connection_name: str = "spotify"
    search_default_query: str = "lofi study chill"
    default_return_to: str = "/dashboard/settings"
    post_login_return_to: str = "/dashboard"

    # Secondary provider API
    spotify_api_base_url: str = "https://api.spotify.com/v1"
    search_limit: int = Field(default=20, ge=1, le=50)
    page_limit: int = Field(default=50, ge=1, le=50)
    max_pages: int = Field(default=20, ge=1)

    # Applied to both upstreams (Auth0 and Spotify).
    http_timeout_seconds: float = 10.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars on every call.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `create_app` stores the Settings instance on app.state; request handlers read
# it from there so tests can build apps with their own settings.
