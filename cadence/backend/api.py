"""
Client for the playlist / history REST backend.

Every method returns plain data ([] / None / False on failure) and logs what
went wrong; nothing raises into callers. Methods block on I/O, UI code calls
them through the background worker.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests
from PySide6.QtCore import QObject, Signal

from cadence.models.track import Track
from cadence.network import NetworkManager
from cadence.workers import bgworker

TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout)


@dataclasses.dataclass
class Playlist:
    id: str
    name: str
    isDefault: bool = False
    songs: list[Track] = dataclasses.field(default_factory=list)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Playlist":
        songs = [t for t in (Track.try_from_dict(s) for s in data.get("songs") or []) if t is not None]
        return Playlist(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            isDefault=bool(data.get("isDefault", False)),
            songs=songs,
        )

    def __contains__(self, track: object) -> bool:
        return any(song == track for song in self.songs)


def _tracks(rows: Any) -> list[Track]:
    if not isinstance(rows, list):
        return []
    return [t for t in (Track.try_from_dict(r) for r in rows) if t is not None]


class MusicApiClient(QObject):
    playlistsChanged = Signal(list)  # list[Playlist]

    def __init__(self, baseUrl: str, network: Optional[NetworkManager] = None, timeout: Optional[float] = None):
        super().__init__()
        self.logger = logging.getLogger("MusicApi")
        self.baseUrl = baseUrl.rstrip("/")
        self.network = network or NetworkManager.get_instance()
        self.timeout = timeout
        self.playlists: list[Playlist] = []

    def url(self, path: str) -> str:
        return f"{self.baseUrl}{path}"

    def _json(self, method: str, path: str, **kwargs) -> Any:
        """Decoded body, None on any failure. `{"error": ...}` bodies count as failures."""
        try:
            response = self.network.request(method, self.url(path), timeout=self.timeout, **kwargs)
            body = response.json()
        except Exception as e:
            self.logger.error(f"{method} {path} failed - {e}")
            return None
        if isinstance(body, dict) and body.get("error"):
            self.logger.error(f"{method} {path} rejected: {body['error']}")
            return None
        return body

    # -------------------- Search --------------------
    def search(self, query: str) -> list[Track]:
        query = (query or "").strip()
        if not query:
            return []
        path = "/api/youtube/search"
        params = {"query": query}
        for attempt in (1, 2):
            try:
                response = self.network.request("GET", self.url(path), params=params, timeout=self.timeout)
                body = response.json()
                break
            except TRANSIENT_ERRORS as e:
                if attempt == 1:
                    self.logger.warning(f"Search for {query!r} failed ({e}), retrying once")
                    continue
                self.logger.error(f"Search for {query!r} failed again - {e}")
                return []
            except Exception as e:
                self.logger.error(f"Search for {query!r} failed - {e}")
                return []
        results = body.get("results") if isinstance(body, dict) else None
        tracks = _tracks(results)
        if not tracks:
            self.logger.info(f"No results found for {query}")
        return tracks

    # -------------------- Recently played --------------------
    def fetchRecent(self) -> list[Track]:
        return _tracks(self._json("GET", "/api/recent"))

    def postRecent(self, track: Track) -> bool:
        return self._json("POST", "/api/recent", json=track.toPayload()) is not None

    def appendRecent(self, track: Track, worker=None) -> None:
        """Fire-and-forget history append."""
        if worker is None:
            worker = bgworker()
        worker.add_job(self.postRecent, track)

    # -------------------- Playlists --------------------
    def fetchPlaylists(self) -> list[Playlist]:
        body = self._json("GET", "/api/playlists")
        if not isinstance(body, dict):
            return self.playlists
        playlists = []
        for raw in body.get("playlists") or []:
            try:
                playlists.append(Playlist.from_dict(raw))
            except (KeyError, TypeError) as e:
                self.logger.warning(f"Skipping malformed playlist {raw!r}: {e}")
        self.playlists = playlists
        self.playlistsChanged.emit(playlists)
        return playlists

    def defaultPlaylist(self) -> Optional[Playlist]:
        return next((p for p in self.playlists if p.isDefault), None)

    def createPlaylist(self, name: str) -> Optional[Playlist]:
        name = (name or "").strip()
        if not name:
            return None
        body = self._json("POST", "/api/playlists", json={"name": name})
        self.fetchPlaylists()
        return Playlist.from_dict(body) if isinstance(body, dict) and "id" in body else None

    def renamePlaylist(self, playlistId: str, name: str) -> bool:
        name = (name or "").strip()
        if not name:
            return False
        ok = self._json("PUT", f"/api/playlists/{quote(str(playlistId))}", json={"name": name}) is not None
        self.fetchPlaylists()
        return ok

    def deletePlaylist(self, playlistId: str) -> bool:
        ok = self._json("DELETE", f"/api/playlists/{quote(str(playlistId))}") is not None
        self.fetchPlaylists()
        return ok

    def addToPlaylist(self, playlistId: str, track: Track) -> bool:
        ok = self._json("POST", f"/api/playlists/{quote(str(playlistId))}/songs", json=track.toPayload()) is not None
        self.fetchPlaylists()
        return ok

    def removeFromPlaylist(self, playlistId: str, externalId: str) -> bool:
        path = f"/api/playlists/{quote(str(playlistId))}/songs/{quote(externalId)}"
        ok = self._json("DELETE", path) is not None
        self.fetchPlaylists()
        return ok

    # -------------------- Likes --------------------
    def toggleLike(self, track: Track) -> bool:
        """Like/unlike in the default playlist. Returns the new liked state."""
        body = self._json("POST", "/api/liked/toggle", json=track.toPayload())
        self.fetchPlaylists()
        if isinstance(body, dict) and "liked" in body:
            return bool(body["liked"])
        return self.isLiked(track)

    def isLiked(self, track: Track) -> bool:
        liked = self.defaultPlaylist()
        return liked is not None and track in liked
