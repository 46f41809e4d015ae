from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal, Slot

import vlc  # type: ignore[import-untyped]

from cadence.misc.enumerations.Playback import HandleState
from cadence.models.track import Track
from cadence.playback.PlayerHandleProtocol import HandleCapabilities
from cadence.providers.youtube import resolveAudioUrl
from cadence.workers import bgworker

VLC_ARGS = ["--no-video", "--network-caching=1500", "--quiet"]
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class VlcPlayerHandle(QObject):
    """Player handle backed by libVLC.

    VLC cannot open catalog urls by itself, the stream url is resolved with
    yt-dlp on the background worker before media is set. VLC events fire on
    VLC's own thread; they are forwarded through signals, which Qt queues onto
    the main thread.
    """

    NAME = "vlc"

    ready = Signal()
    stateChanged = Signal(int)
    errorOccurred = Signal(object)

    _resolved = Signal(str, str)  # externalId, url
    _resolveFailed = Signal(str, str)  # externalId, message
    _vlcState = Signal(int)
    _vlcError = Signal()

    def __init__(self, track: Track, elementId: str) -> None:
        super().__init__()
        self.logger = logging.getLogger("Handle.vlc")
        self.elementId = elementId
        self.track = track
        self._state: HandleState = HandleState.UNSTARTED
        self._destroyed: bool = False

        self.instance: vlc.Instance = vlc.Instance(VLC_ARGS)
        self.player: vlc.MediaPlayer = self.instance.media_player_new()
        self.eventManager: vlc.EventManager = self.player.event_manager()

        self._resolved.connect(self._on_resolved)
        self._resolveFailed.connect(self._on_resolve_failed)
        self._vlcState.connect(self._setState)
        self._vlcError.connect(self._on_vlc_error)

        self.eventManager.event_attach(vlc.EventType.MediaPlayerPlaying, self._on_play_event)
        self.eventManager.event_attach(vlc.EventType.MediaPlayerPaused, self._on_pause_event)
        self.eventManager.event_attach(vlc.EventType.MediaPlayerEndReached, self._on_end_event)
        self.eventManager.event_attach(vlc.EventType.MediaPlayerBuffering, self._on_buffering_event)
        self.eventManager.event_attach(vlc.EventType.MediaPlayerEncounteredError, self._on_error_event)

        self._load(track)

    def _load(self, track: Track) -> None:
        self._state = HandleState.UNSTARTED
        if self.player.get_media() is not None:
            self.player.stop()
            self.player.set_media(None)
        bgworker().add_job(self._resolve, track.externalId)

    def _resolve(self, externalId: str) -> None:
        # worker thread
        try:
            url = resolveAudioUrl(externalId)
        except Exception as e:
            self._resolveFailed.emit(externalId, str(e))
            return
        self._resolved.emit(externalId, url)

    @Slot(str, str)
    def _on_resolved(self, externalId: str, url: str) -> None:
        if self._destroyed or externalId != self.track.externalId:
            return
        media: vlc.Media = self.instance.media_new(url)
        media.add_option(f"http-user-agent={USER_AGENT}")
        media.add_option("http-referrer=https://www.youtube.com/")
        self.player.set_media(media)
        self._setState(HandleState.CUED)
        self.ready.emit()

    @Slot(str, str)
    def _on_resolve_failed(self, externalId: str, message: str) -> None:
        if self._destroyed or externalId != self.track.externalId:
            return
        self.logger.error("Could not resolve a stream for %s: %s", externalId, message)
        self.errorOccurred.emit({"backend": self.NAME, "text": message})

    @Slot(int)
    def _setState(self, state: int) -> None:
        if self._destroyed:
            return
        state = HandleState(state)
        if state != self._state:
            self._state = state
            self.stateChanged.emit(int(state))

    @Slot()
    def _on_vlc_error(self) -> None:
        if not self._destroyed:
            self.errorOccurred.emit({"backend": self.NAME, "text": "MediaPlayerEncounteredError"})

    # ---------- handle surface ----------
    def capabilities(self) -> HandleCapabilities:
        return HandleCapabilities(swapMedia=True, mute=True, seek=True)

    def play(self) -> None:
        if self.player.get_media() is None:
            raise RuntimeError("Stream not resolved yet")
        self.player.play()

    def pause(self) -> None:
        self.player.set_pause(1)

    def getPlayerState(self) -> int:
        return int(self._state)

    def getCurrentTime(self) -> float:
        if self.player.get_media() is None:
            return 0.0
        t = self.player.get_time()
        return t / 1000.0 if t and t > 0 else 0.0

    def getDuration(self) -> float:
        length = self.player.get_length()
        return length / 1000.0 if length and length > 0 else 0.0

    def loadMedia(self, track: Track) -> None:
        self.track = track
        self._load(track)

    def mute(self) -> None:
        self.player.audio_set_mute(True)

    def unMute(self) -> None:
        self.player.audio_set_mute(False)

    def seekTo(self, seconds: float) -> None:
        self.player.set_time(int(seconds * 1000))

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        try:
            self.eventManager.event_detach(vlc.EventType.MediaPlayerPlaying)
            self.eventManager.event_detach(vlc.EventType.MediaPlayerPaused)
            self.eventManager.event_detach(vlc.EventType.MediaPlayerEndReached)
            self.eventManager.event_detach(vlc.EventType.MediaPlayerBuffering)
            self.eventManager.event_detach(vlc.EventType.MediaPlayerEncounteredError)
            self.player.stop()
        finally:
            self.player.release()
            self.instance.release()
            self.logger.info("vlc handle on %s destroyed", self.elementId)

    # ---------- VLC callbacks (VLC thread) ----------
    def _on_play_event(self, event):  # noqa: ARG002
        self._vlcState.emit(int(HandleState.PLAYING))

    def _on_pause_event(self, event):  # noqa: ARG002
        self._vlcState.emit(int(HandleState.PAUSED))

    def _on_end_event(self, event):  # noqa: ARG002
        self._vlcState.emit(int(HandleState.ENDED))

    def _on_buffering_event(self, event):
        cache: Optional[float] = getattr(event.u, "new_cache", None)
        if cache is not None and cache < 100:
            self._vlcState.emit(int(HandleState.BUFFERING))
        elif self.player.is_playing():
            self._vlcState.emit(int(HandleState.PLAYING))

    def _on_error_event(self, event):  # noqa: ARG002
        self._vlcError.emit()


def createHandle(track: Track, elementId: str) -> VlcPlayerHandle:
    return VlcPlayerHandle(track, elementId)
