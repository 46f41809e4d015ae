from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Optional, Protocol

from PySide6.QtCore import QObject, Signal, Slot

from cadence.models.track import Track
from cadence.playback.session import PlayerSession
from cadence.playback.timetracker import SessionTimeTracker
from cadence.playback.transport import TransportControls

logger = logging.getLogger("MediaSession")


class MediaSessionPublisher(Protocol):
    """OS media session, e.g. the cadence.wintube.winSMTC module."""

    def set_now_playing(self, title: str = "", artist: str = "", art_uri: Optional[str] = None) -> None: ...

    def set_playing(self, playing: bool) -> None: ...

    def update_timeline(self, duration_s: float, position_s: float) -> None: ...

    def clear_now_playing(self) -> None: ...

    def set_button_handler(self, handler: Callable[[str], None]) -> None: ...


def defaultPublisher() -> Optional[MediaSessionPublisher]:
    """The platform's publisher, None where there is none."""
    if sys.platform != "win32":
        return None
    try:
        import cadence.wintube.winSMTC as winSMTC
    except Exception:
        logger.exception("Windows media controls unavailable")
        return None
    return winSMTC  # type: ignore[return-value]


class MediaSessionBridge(QObject):
    """Mirrors the session into the OS media controls and routes media keys to the transport."""

    _buttonPressed = Signal(str)

    def __init__(
        self,
        session: PlayerSession,
        transport: TransportControls,
        tracker: SessionTimeTracker,
        publisher: MediaSessionPublisher,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.session = session
        self.transport = transport
        self.publisher = publisher

        self._buttonPressed.connect(self._onButton)
        session.trackChanged.connect(self._onTrack)
        session.playingChanged.connect(self._onPlaying)
        tracker.positionReported.connect(self._onPosition)

        # publisher calls back on its own thread, the signal hops to ours
        self._call(publisher.set_button_handler, self._buttonPressed.emit)

    def _call(self, func: Callable[..., Any], *args) -> None:
        try:
            func(*args)
        except Exception:
            logger.exception("Media session call %s failed", getattr(func, "__name__", func))

    @Slot(str)
    def _onButton(self, name: str) -> None:
        logger.debug("Media key %s", name)
        if name == "play":
            self.transport.play()
        elif name in ("pause", "stop"):
            self.transport.pause()

    @Slot(object)
    def _onTrack(self, track: Optional[Track]) -> None:
        if track is None:
            self._call(self.publisher.clear_now_playing)
            return
        self._call(self.publisher.set_now_playing, track.title, track.author, track.thumbnailURL or None)

    @Slot(bool)
    def _onPlaying(self, playing: bool) -> None:
        self._call(self.publisher.set_playing, playing)

    @Slot(float, float)
    def _onPosition(self, position: float, duration: float) -> None:
        self._call(self.publisher.update_timeline, duration, position)
