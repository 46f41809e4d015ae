from __future__ import annotations

import dataclasses
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from cadence.models.track import Track


@dataclasses.dataclass(frozen=True)
class HandleCapabilities:
    """Optional operations a concrete handle supports.

    swapMedia: loadMedia(track) replaces the media in place, no new handle needed
    mute: mute()/unMute() are honoured (muted autoplay relies on this)
    seek: seekTo(seconds) is honoured
    """

    swapMedia: bool = False
    mute: bool = False
    seek: bool = True


@runtime_checkable
class PlayerHandle(Protocol):
    """Contract for an external, untrusted player instance.

    Purpose:
        The playback core drives exactly one of these at a time through the
        lifecycle manager. Handles wrap a backend (libmpv, libVLC, ...) that
        plays one catalog item and reports what it is doing asynchronously.

    Thread / Qt expectations:
        - All signal emissions MUST occur on the Qt main thread. Backends whose
          callbacks arrive on their own threads marshal them through a queued
          signal before re-emitting.
        - Construction MUST NOT block on network I/O; stream resolution is
          delegated to the background worker.

    Signals (all required):
        ready() : Media for the bound track is loaded and controls are usable.
            Emitted again after every successful loadMedia().
        stateChanged(int) : A HandleState value (never the enum object).
        errorOccurred(object) : Backend failure. Payload is backend specific.

    Behavioural requirements:
        - A fresh handle MUST NOT start playback by itself (no autoplay).
        - play()/pause() are fire-and-forget; confirmation arrives through
          stateChanged. They MAY raise synchronously, callers catch.
        - getCurrentTime()/getDuration() return seconds, 0 when unknown.
        - destroy() releases the backend. Calling any other method afterwards
          is undefined; callers drop their reference.

    Optional operations:
        Guarded by capabilities(). loadMedia() is only called when
        capabilities().swapMedia is True, mute()/unMute() only when
        capabilities().mute is True, seekTo() only when capabilities().seek.
    """

    NAME: str

    ready: Any
    stateChanged: Any
    errorOccurred: Any

    def capabilities(self) -> HandleCapabilities:
        """Which optional operations are safe to call."""

    def play(self) -> None:
        """Request playback."""

    def pause(self) -> None:
        """Request pause."""

    def getPlayerState(self) -> int:
        """Last HandleState reported by the backend."""

    def getCurrentTime(self) -> float:
        """Playback position in seconds."""

    def getDuration(self) -> float:
        """Media length in seconds."""

    def destroy(self) -> None:
        """Stop and release backend resources."""

    # ---- optional, see capabilities() ----
    def loadMedia(self, track: Track) -> None:
        """Replace the bound media in place."""

    def mute(self) -> None:
        """Silence output."""

    def unMute(self) -> None:
        """Restore output."""

    def seekTo(self, seconds: float) -> None:
        """Absolute seek."""


# (track, elementId) -> handle. May raise; the lifecycle manager catches.
HandleFactory = Callable[[Track, str], PlayerHandle]


def capabilitiesOf(handle: Optional[PlayerHandle]) -> HandleCapabilities:
    if handle is None:
        return HandleCapabilities(swapMedia=False, mute=False, seek=False)
    try:
        return handle.capabilities()
    except Exception:
        return HandleCapabilities()
