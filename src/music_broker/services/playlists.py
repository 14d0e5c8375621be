"""
music_broker.services.playlists

Secondary API gateway.

Responsibilities:
- Call the secondary provider with an exchanged `AccessToken`.
- Normalize raw playlists into one `PlaylistSummary` shape, whatever the source
  endpoint (search results or the user's own playlists).
- Convert transport/HTTP failures into `GatewayError`.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from music_broker.music_clients.spotify_http import SpotifyApiClient, SpotifyApiError
from music_broker.observability.logging import get_logger
from music_broker.services.errors import GatewayError
from music_broker.services.token_exchange import AccessToken

log = get_logger(__name__)

T = TypeVar("T")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class PlaylistSummary(_CamelModel):
    id: str
    name: str
    owner_or_curator: str
    track_count: int
    image_url: str | None = None
    external_url: str | None = None


class TrackSummary(_CamelModel):
    id: str | None
    name: str
    artists: list[str]
    album: str | None = None
    image_url: str | None = None
    duration_ms: int = 0
    uri: str | None = None


def _first_image(images: Any) -> str | None:
    if isinstance(images, list):
        for image in images:
            if isinstance(image, dict) and image.get("url"):
                return str(image["url"])
    return None


def normalize_playlist(raw: dict[str, Any]) -> PlaylistSummary:
    owner = raw.get("owner") or {}
    # Newer API payloads expose the count under "items" instead of "tracks".
    tracks = raw.get("tracks") or raw.get("items") or {}
    return PlaylistSummary(
        id=str(raw["id"]),
        name=str(raw.get("name") or ""),
        owner_or_curator=str(owner.get("display_name") or owner.get("id") or ""),
        track_count=int(tracks.get("total") or 0) if isinstance(tracks, dict) else 0,
        image_url=_first_image(raw.get("images")),
        external_url=(raw.get("external_urls") or {}).get("spotify"),
    )


def normalize_track(raw: dict[str, Any]) -> TrackSummary:
    album = raw.get("album") or {}
    return TrackSummary(
        id=raw.get("id"),
        name=str(raw.get("name") or ""),
        artists=[str(a["name"]) for a in raw.get("artists") or [] if isinstance(a, dict) and a.get("name")],
        album=album.get("name"),
        image_url=_first_image(album.get("images")),
        duration_ms=int(raw.get("duration_ms") or 0),
        uri=raw.get("uri"),
    )


def normalize_playlists(items: list[Any]) -> list[PlaylistSummary]:
    # Search results can contain nulls for playlists that were removed.
    return [normalize_playlist(p) for p in items if isinstance(p, dict) and p.get("id")]


class PlaylistGateway:
    def __init__(
        self,
        *,
        client: SpotifyApiClient,
        search_limit: int = 20,
        page_limit: int = 50,
        max_pages: int = 20,
    ) -> None:
        self._client = client
        self._search_limit = search_limit
        self._page_limit = page_limit
        self._max_pages = max_pages

    async def _call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except SpotifyApiError as e:
            log.warning("spotify_call_failed", operation=operation, status_code=e.status_code)
            raise GatewayError(f"Spotify API error: {e.message}", status_code=e.status_code) from e
        except httpx.HTTPError as e:
            log.warning("spotify_unreachable", operation=operation, error_type=type(e).__name__)
            raise GatewayError(f"Spotify API unreachable: {type(e).__name__}") from e

    async def search_playlists(self, token: AccessToken, query: str) -> list[PlaylistSummary]:
        items = await self._call(
            "search_playlists",
            self._client.search_playlists(token=token.token, query=query, limit=self._search_limit),
        )
        return normalize_playlists(items)

    async def list_user_playlists(self, token: AccessToken) -> list[PlaylistSummary]:
        items = await self._call(
            "list_user_playlists",
            self._client.my_playlists(
                token=token.token, page_limit=self._page_limit, max_pages=self._max_pages
            ),
        )
        return normalize_playlists(items)

    async def list_playlist_tracks(self, token: AccessToken, playlist_id: str) -> list[TrackSummary]:
        items = await self._call(
            "list_playlist_tracks",
            self._client.playlist_tracks(
                token=token.token,
                playlist_id=playlist_id,
                page_limit=self._page_limit,
                max_pages=self._max_pages,
            ),
        )
        # Local files and removed tracks arrive with a null "track".
        return [
            normalize_track(item["track"])
            for item in items
            if isinstance(item, dict) and isinstance(item.get("track"), dict)
        ]

    async def current_profile(self, token: AccessToken) -> dict[str, Any]:
        profile = await self._call("current_profile", self._client.current_user(token=token.token))
        return {
            "id": profile.get("id"),
            "display_name": profile.get("display_name"),
            "email": profile.get("email"),
            "images": profile.get("images") or [],
            "product": profile.get("product"),
        }


# --- Module Notes -----------------------------------------------------------
# Serialize summaries with `model_dump(by_alias=True)` to get the camelCase wire
# shape (`ownerOrCurator`, `trackCount`, `imageUrl`, `externalUrl`).
