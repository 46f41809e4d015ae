from __future__ import annotations

import locale
import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Qt, Signal, Slot

import mpv as _mpv

from cadence.misc.enumerations.Playback import HandleState
from cadence.models.track import Track
from cadence.playback.PlayerHandleProtocol import HandleCapabilities

# libmpv refuses to initialise under a locale with a non "." decimal point
locale.setlocale(locale.LC_NUMERIC, "C")

# mpv end-file reasons
END_EOF = 0
END_ERROR = 4


class MpvPlayerHandle(QObject):
    """Player handle backed by libmpv.

    Notes:
    - Audio only, mpv's ytdl hook resolves catalog urls itself, so media can
      be swapped in place.
    - Created paused. Nothing plays until play() is called.
    - mpv callbacks arrive on mpv's event thread and are re-dispatched to the
      Qt main thread through a queued signal.
    """

    NAME = "mpv"

    ready = Signal()
    stateChanged = Signal(int)
    errorOccurred = Signal(object)

    _dispatch = Signal(object)

    def __init__(self, track: Track, elementId: str) -> None:
        super().__init__()
        self.logger = logging.getLogger("Handle.mpv")
        self.elementId = elementId
        self.track = track
        self._state: HandleState = HandleState.UNSTARTED
        self._loaded: bool = False
        self._destroyed: bool = False

        self._dispatch.connect(self._run, Qt.ConnectionType.QueuedConnection)

        locale.setlocale(locale.LC_NUMERIC, "C")
        self._mpv = _mpv.MPV(
            input_default_bindings=False,
            input_vo_keyboard=False,
            video=False,
            audio_display="no",
            ytdl=True,
            ytdl_format="bestaudio/best",
            pause=True,
            demuxer_max_back_bytes=50 * 1024 * 1024,
        )

        self._mpv.observe_property("pause", self._on_pause)
        self._mpv.observe_property("paused-for-cache", self._on_paused_for_cache)

        @self._mpv.event_callback("file-loaded")
        def on_file_loaded(event):  # noqa: ARG001
            self._post(self._on_file_loaded)

        @self._mpv.event_callback("playback-restart")
        def on_playback_restart(event):  # noqa: ARG001
            self._post(self._on_playback_restart)

        @self._mpv.event_callback("end-file")
        def on_end_file(event):
            self._post(lambda: self._on_end_file(event))

        self._load(track)

    # ---------- dispatch ----------
    def _post(self, fn: Callable[[], Any]) -> None:
        if not self._destroyed:
            self._dispatch.emit(fn)

    @Slot(object)
    def _run(self, fn: Callable[[], Any]) -> None:
        if self._destroyed:
            return
        try:
            fn()
        except Exception:
            self.logger.exception("mpv callback failed")

    def _setState(self, state: HandleState) -> None:
        if state != self._state:
            self._state = state
            self.stateChanged.emit(int(state))

    def _load(self, track: Track) -> None:
        self._loaded = False
        self._state = HandleState.UNSTARTED
        self._mpv.pause = True
        self._mpv.play(track.watchUrl)
        self.logger.info("Loading %s on %s", track.externalId, self.elementId)

    # ---------- handle surface ----------
    def capabilities(self) -> HandleCapabilities:
        return HandleCapabilities(swapMedia=True, mute=True, seek=True)

    def play(self) -> None:
        self._mpv.pause = False

    def pause(self) -> None:
        self._mpv.pause = True

    def getPlayerState(self) -> int:
        return int(self._state)

    def getCurrentTime(self) -> float:
        t = self._mpv.time_pos
        return float(t) if t and t > 0 else 0.0

    def getDuration(self) -> float:
        d = self._mpv.duration
        return float(d) if d and d > 0 else 0.0

    def loadMedia(self, track: Track) -> None:
        self.track = track
        self._load(track)

    def mute(self) -> None:
        self._mpv.mute = True

    def unMute(self) -> None:
        self._mpv.mute = False

    def seekTo(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self._mpv.command("seek", seconds, "absolute")

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        try:
            self._mpv.command("stop")
        finally:
            self._mpv.terminate()
            self.logger.info("mpv handle on %s destroyed", self.elementId)

    # ---------- mpv callbacks (mpv thread) ----------
    def _on_pause(self, name, paused):  # noqa: ARG002
        self._post(lambda: self._apply_pause(bool(paused)))

    def _on_paused_for_cache(self, name, value):  # noqa: ARG002
        self._post(lambda: self._apply_cache(bool(value)))

    # ---------- main thread ----------
    def _apply_pause(self, paused: bool) -> None:
        if not self._loaded:
            return
        self._setState(HandleState.PAUSED if paused else HandleState.PLAYING)

    def _apply_cache(self, stalled: bool) -> None:
        if not self._loaded:
            return
        if stalled:
            self._setState(HandleState.BUFFERING)
        elif self._state == HandleState.BUFFERING:
            # a cache resume fires no playback-restart
            self._setState(HandleState.PAUSED if self._mpv.pause else HandleState.PLAYING)

    def _on_file_loaded(self) -> None:
        self._loaded = True
        self._setState(HandleState.CUED)
        self.ready.emit()

    def _on_playback_restart(self) -> None:
        if self._loaded and not self._mpv.pause:
            self._setState(HandleState.PLAYING)

    def _on_end_file(self, event: Any) -> None:
        reason = getattr(getattr(event, "data", None), "reason", None)
        if reason == END_EOF:
            self._setState(HandleState.ENDED)
        elif reason == END_ERROR:
            self.errorOccurred.emit({"backend": self.NAME, "text": "end-file: error"})
        # stop/redirect/restart come from our own loadfile and teardown


def createHandle(track: Track, elementId: str) -> MpvPlayerHandle:
    return MpvPlayerHandle(track, elementId)
