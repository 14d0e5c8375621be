"""
music_broker.music_clients.spotify_http

HTTP client boundary to the Spotify Web API.

Responsibilities:
- Attach the exchanged access token as a bearer credential.
- Expose the read-only endpoints the broker uses (search, my playlists,
  playlist tracks, current user) as raw JSON.
- Follow `next` pagination links, only within the API origin.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx


class SpotifyApiError(Exception):
    def __init__(self, *, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class SpotifyApiClient:
    """
    Read-only Spotify Web API client. Never writes on the user's behalf.
    """

    def __init__(self, *, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def _get(
        self,
        url: str,
        *,
        token: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        # `url` is either a path under the API base or an absolute `next` link.
        if not url.startswith(("http://", "https://")):
            url = f"{self._base_url}{url}"
        elif not self._same_origin(url):
            # The bearer token only goes to the API origin.
            raise SpotifyApiError(status_code=502, message="Pagination link points outside the API origin")
        r = await self._http.get(url, params=params, headers={"Authorization": f"Bearer {token}"})
        try:
            body = r.json()
        except ValueError:
            body = None
        if not r.is_success:
            message = r.reason_phrase
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                message = str(body["error"].get("message") or message)
            raise SpotifyApiError(status_code=r.status_code, message=message)
        if not isinstance(body, dict):
            raise SpotifyApiError(status_code=502, message="Malformed response body")
        return body

    def _same_origin(self, url: str) -> bool:
        base = httpx.URL(self._base_url)
        target = httpx.URL(url)
        return (target.scheme, target.host, target.port) == (base.scheme, base.host, base.port)

    async def _pages(
        self,
        path: str,
        *,
        token: str,
        params: dict[str, Any],
        max_pages: int,
    ) -> AsyncIterator[list[Any]]:
        url: str | None = path
        page_params: dict[str, Any] | None = params
        for _ in range(max_pages):
            if not url:
                return
            page = await self._get(url, token=token, params=page_params)
            yield page.get("items") or []
            # `next` already carries offset/limit.
            url = page.get("next")
            page_params = None

    async def search_playlists(self, *, token: str, query: str, limit: int) -> list[Any]:
        data = await self._get(
            "/search",
            token=token,
            params={"q": query, "type": "playlist", "limit": limit},
        )
        return (data.get("playlists") or {}).get("items") or []

    async def my_playlists(self, *, token: str, page_limit: int, max_pages: int) -> list[Any]:
        items: list[Any] = []
        async for page in self._pages(
            "/me/playlists", token=token, params={"limit": page_limit}, max_pages=max_pages
        ):
            items.extend(page)
        return items

    async def playlist_tracks(
        self,
        *,
        token: str,
        playlist_id: str,
        page_limit: int,
        max_pages: int,
    ) -> list[Any]:
        items: list[Any] = []
        async for page in self._pages(
            f"/playlists/{quote(playlist_id, safe='')}/tracks",
            token=token,
            params={"limit": page_limit},
            max_pages=max_pages,
        ):
            items.extend(page)
        return items

    async def current_user(self, *, token: str) -> dict[str, Any]:
        return await self._get("/me", token=token)


# --- Module Notes -----------------------------------------------------------
# Responses are returned in Spotify's wire schema; translation into the broker's
# shapes happens in `services.playlists`.
# Non-JSON or non-object 2xx bodies surface as `SpotifyApiError` (status 502).
