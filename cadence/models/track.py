"""
Track references as handed around by search results, playlists and history.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

import dacite

WATCH_URL = "https://www.youtube.com/watch?v={}"

# backend wire keys -> dataclass fields
_WIRE_KEYS = {
    "videoId": "externalId",
    "channel": "author",
    "thumbnail": "thumbnailURL",
}


@dataclasses.dataclass(frozen=True, eq=False)
class Track:
    """
    Immutable reference to a catalog item. Identity is the external id only,
    two references with different titles for the same id are the same track.
    """

    externalId: str
    title: str = ""
    author: str = ""
    thumbnailURL: str = ""

    def __post_init__(self):
        if not self.externalId:
            raise ValueError("Track requires a non-empty externalId")

    def __eq__(self, other):
        if isinstance(other, Track):
            return self.externalId == other.externalId
        if isinstance(other, str):
            return self.externalId == other
        return False

    def __hash__(self):
        return hash(self.externalId)

    def __repr__(self):
        return f"Track({self.externalId!r}, {self.title!r})"

    @property
    def watchUrl(self) -> str:
        return WATCH_URL.format(self.externalId)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Track":
        """
        Build a Track from either the canonical keys or the backend wire keys
        (videoId, title, channel, thumbnail). Unknown keys are ignored.
        """
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            key = _WIRE_KEYS.get(key, key)
            if value is None:
                continue
            normalized[key] = str(value)
        return dacite.from_dict(data_class=Track, data=normalized)

    @staticmethod
    def try_from_dict(data: Any) -> Optional["Track"]:
        if not isinstance(data, dict):
            return None
        try:
            return Track.from_dict(data)
        except (ValueError, dacite.DaciteError):
            return None

    def toPayload(self) -> dict[str, str]:
        """Wire shape expected by the backend."""
        return {
            "videoId": self.externalId,
            "title": self.title,
            "channel": self.author,
            "thumbnail": self.thumbnailURL,
        }
