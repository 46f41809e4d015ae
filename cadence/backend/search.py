"""
Search.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import ytmusicapi

from cadence.backend.api import MusicApiClient
from cadence.misc.enumerations.Search import SearchFilters
from cadence.models.track import Track


@runtime_checkable
class SearchProvider(Protocol):
    NAME: str

    def search(self, query: str, limit: int = 20) -> list[Track]:
        """Tracks matching query, [] when nothing matches or the provider fails."""


class BackendSearchProvider:
    """Searches through the backend's /api/youtube/search proxy."""

    NAME = "backend"

    def __init__(self, client: MusicApiClient):
        self.client = client

    def search(self, query: str, limit: int = 20) -> list[Track]:
        return self.client.search(query)[:limit]


class YTMusicSearchProvider:
    """Searches YouTube Music directly, no backend needed."""

    NAME = "ytmusic"

    def __init__(self, api: Optional[ytmusicapi.YTMusic] = None, filter: SearchFilters = SearchFilters.SONGS):
        self.logger = logging.getLogger("SearchLogger")
        self._api = api
        self.filter = filter

    @property
    def api(self) -> ytmusicapi.YTMusic:
        if self._api is None:
            self._api = ytmusicapi.YTMusic()
        return self._api

    @staticmethod
    def parseSong(item: dict[str, Any]) -> Optional[Track]:
        videoId = item.get("videoId")
        if not videoId:
            return None
        artists = item.get("artists") or []
        thumbnails = item.get("thumbnails") or []
        return Track(
            externalId=videoId,
            title=item.get("title") or "",
            author=", ".join(a.get("name", "") for a in artists if a.get("name")),
            thumbnailURL=thumbnails[-1].get("url", "") if thumbnails else "",
        )

    def search(self, query: str, limit: int = 20) -> list[Track]:
        query = (query or "").strip()
        if not query:
            return []
        try:
            results = self.api.search(query, filter=str(self.filter), limit=limit)
        except Exception:
            self.logger.exception(f"Search for {query!r} failed")
            return []
        if not results:
            self.logger.info(f"No results found for {query}")
            return []
        tracks = []
        for result in results:
            if (result.get("resultType") or "").lower() not in ("song", "video"):
                continue
            track = self.parseSong(result)
            if track is not None:
                tracks.append(track)
        return tracks[:limit]


def searchProviderFor(name: str, client: Optional[MusicApiClient] = None) -> SearchProvider:
    if name == BackendSearchProvider.NAME:
        if client is None:
            raise ValueError("The backend search provider needs an api client")
        return BackendSearchProvider(client)
    if name == YTMusicSearchProvider.NAME:
        return YTMusicSearchProvider()
    raise ValueError(f"Unknown search provider: {name}")
