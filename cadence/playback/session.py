from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from cadence.misc.enumerations.Playback import SessionState
from cadence.models.track import Track


@dataclasses.dataclass
class RecoveryCounters:
    recoveryAttempts: int = 0
    shortPauseCount: int = 0
    lastPlayStartTimestamp: Optional[float] = None  # ms, scheduler clock
    rebuilds: int = 0
    exhausted: bool = False

    def reset(self) -> None:
        self.recoveryAttempts = 0
        self.shortPauseCount = 0
        self.lastPlayStartTimestamp = None
        self.rebuilds = 0
        self.exhausted = False


class PlayerSession(QObject):
    """Observable state of the binding between one track and one player handle.

    Only the playback core writes to it; the UI and OS integrations read it and
    listen to the signals.
    """

    trackChanged = Signal(object)
    stateChanged = Signal(int)
    playingChanged = Signal(bool)
    bufferingChanged = Signal(bool)
    timeChanged = Signal(float)
    durationChanged = Signal(float)
    userStartedChanged = Signal(bool)
    recoveryExhausted = Signal()

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger("PlayerSession")

        self.track: Optional[Track] = None
        self.state: SessionState = SessionState.IDLE
        self.isPlaying: bool = False
        self.buffering: bool = False
        self.currentTime: float = 0.0
        self.duration: float = 0.0
        self.userStartedPlayback: bool = False
        self.counters = RecoveryCounters()

    def __repr__(self) -> str:
        return (
            f"<PlayerSession track={self.track!r} state={self.state.name} "
            f"playing={self.isPlaying} userStarted={self.userStartedPlayback} "
            f"counters={self.counters}>"
        )

    def bind(self, track: Optional[Track]) -> None:
        """Reset everything for a freshly bound track."""
        changed = track != self.track
        self.track = track
        self.counters.reset()
        self.setState(SessionState.IDLE)
        self.setPlaying(False)
        self.setBuffering(False)
        self.setTimes(0.0, 0.0)
        self.setUserStarted(False)
        if changed:
            self.trackChanged.emit(track)

    def setState(self, state: SessionState) -> None:
        if state != self.state:
            self.state = state
            self.stateChanged.emit(int(state))

    def setPlaying(self, playing: bool) -> None:
        if playing != self.isPlaying:
            self.isPlaying = playing
            self.playingChanged.emit(playing)

    def setBuffering(self, buffering: bool) -> None:
        if buffering != self.buffering:
            self.buffering = buffering
            self.bufferingChanged.emit(buffering)

    def setTime(self, seconds: float) -> None:
        seconds = float(seconds or 0.0)
        if seconds != self.currentTime:
            self.currentTime = seconds
            self.timeChanged.emit(seconds)

    def setDuration(self, seconds: float) -> None:
        seconds = float(seconds or 0.0)
        if seconds != self.duration:
            self.duration = seconds
            self.durationChanged.emit(seconds)

    def setTimes(self, position: float, duration: float) -> None:
        self.setDuration(duration)
        self.setTime(position)

    def setUserStarted(self, started: bool) -> None:
        if started != self.userStartedPlayback:
            self.userStartedPlayback = started
            self.userStartedChanged.emit(started)

    def markExhausted(self) -> bool:
        """Flag the current recovery cycle as exhausted. True the first time only."""
        if self.counters.exhausted:
            return False
        self.counters.exhausted = True
        self.recoveryExhausted.emit()
        return True
