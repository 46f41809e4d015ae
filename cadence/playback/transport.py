from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Slot

from cadence.misc.enumerations.Playback import HandleState
from cadence.models.track import Track
from cadence.playback.lifecycle import PlayerLifecycleManager
from cadence.playback.recovery import PlaybackRecoveryEngine
from cadence.playback.session import PlayerSession


class TransportControls(QObject):
    """Play/pause/seek/switch operations for the UI and OS media keys.

    Nothing here raises; a failed call on the handle either degrades to a
    bounded recovery or is logged and ignored.
    """

    def __init__(
        self,
        session: PlayerSession,
        manager: PlayerLifecycleManager,
        engine: PlaybackRecoveryEngine,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger("Transport")
        self.session = session
        self.manager = manager
        self.engine = engine

    @Slot()
    def startUserPlayback(self) -> None:
        """First play after a gesture: unmute, then play."""
        if not self.manager.hasHandle:
            self.logger.info("Play requested before the player exists, ignoring")
            return
        self.session.setUserStarted(True)
        self.session.counters.reset()
        if not (self.manager.unMute() and self.manager.play()):
            self.logger.warning("Initial play failed, handing over to recovery")
            self.engine.recover()

    @Slot()
    def togglePlayPause(self) -> None:
        if not self.manager.hasHandle:
            return
        if self.manager.playerState() == HandleState.PLAYING:
            self.manager.pause()
        elif not self.session.userStartedPlayback:
            self.startUserPlayback()
        else:
            # explicit gesture, start a fresh recovery cycle
            self.session.counters.reset()
            if not self.manager.play():
                self.engine.recover()

    @Slot()
    def play(self) -> None:
        if self.manager.playerState() != HandleState.PLAYING:
            self.togglePlayPause()

    @Slot()
    def pause(self) -> None:
        if self.manager.playerState() == HandleState.PLAYING:
            self.manager.pause()

    def _clamp(self, target: float, duration: float) -> float:
        target = max(0.0, float(target))
        if duration > 0:
            target = min(duration, target)
        return target

    def _duration(self) -> float:
        return self.manager.duration() or self.session.duration

    @Slot(float)
    def seekRelative(self, deltaSeconds: float) -> Optional[float]:
        if not self.manager.hasHandle:
            return None
        current = self.manager.currentTime() or self.session.currentTime
        target = self._clamp(current + float(deltaSeconds), self._duration())
        if not self.manager.seekTo(target):
            return None
        self.session.setTime(target)
        return target

    @Slot(float)
    def seekAbsolute(self, fractionOfDuration: float) -> Optional[float]:
        if not self.manager.hasHandle:
            return None
        duration = self._duration()
        if duration <= 0:
            return None
        fraction = min(max(float(fractionOfDuration), 0.0), 1.0)
        target = self._clamp(fraction * duration, duration)
        if not self.manager.seekTo(target):
            return None
        self.session.setTime(target)
        return target

    def switchTrack(self, track: Track) -> None:
        if track is None:
            return
        self.engine.cancelPending()
        self.manager.bindTrack(track)
