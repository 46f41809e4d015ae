from __future__ import annotations

import logging
from typing import Any, Optional, Union

import yt_dlp as yt_dlp_module  # type: ignore[import-untyped]

from cadence.models.track import WATCH_URL

logger = logging.getLogger("Provider.youtube")

ydlOpts: dict[str, Union[list, bool, str]] = {
    "external_downloader_args": ["-loglevel", "panic"],
    "quiet": True,
    "no_warnings": True,
    "noplaylist": True,
    "format": "bestaudio/best",
}

# itag -> preference, audio only formats rank above muxed video
AUDIO_FMT_RANK = {
    "251": 5,  # opus ~135kbps, WebM
    "140": 4,  # aac ~129kbps
    "250": 3,  # opus ~68kbps, WebM
    "249": 2,  # opus ~52kbps, WebM
    "139": 1,  # aac ~49kbps
    "18": 0,  # 360p video with audio
}

ytdl: Optional[yt_dlp_module.YoutubeDL] = None


def _ytdl() -> yt_dlp_module.YoutubeDL:
    global ytdl
    if ytdl is None:
        ytdl = yt_dlp_module.YoutubeDL(ydlOpts)
    return ytdl


def pickAudioFormat(formats: list[dict[str, Any]]) -> Optional[str]:
    """Best stream url among extracted formats, None if nothing playable."""
    ranked = [
        (AUDIO_FMT_RANK[str(f.get("format_id"))], f["url"])
        for f in formats
        if str(f.get("format_id")) in AUDIO_FMT_RANK and f.get("url")
    ]
    if ranked:
        return max(ranked)[1]
    audioOnly = [f for f in formats if f.get("vcodec") == "none" and f.get("url")]
    if audioOnly:
        return max(audioOnly, key=lambda f: f.get("abr") or 0)["url"]
    return None


def resolveAudioUrl(externalId: str) -> str:
    """Resolve a direct audio stream url for a catalog id. Blocking, run it on the worker.

    Raises LookupError when the item has no playable audio stream.
    """
    logger.info("Resolving stream for %s", externalId)
    info = _ytdl().extract_info(WATCH_URL.format(externalId), download=False)
    if not info:
        raise LookupError(f"No info for {externalId}")
    url = pickAudioFormat(info.get("formats") or [])
    if url is None:
        url = info.get("url")
    if not url:
        raise LookupError(f"No playable audio stream for {externalId}")
    return url
