from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Signal

from cadence.misc.enumerations.Playback import HandleState, PlayerEventType, SessionState
from cadence.playback.events import PlayerEvent
from cadence.playback.lifecycle import PlayerLifecycleManager
from cadence.playback.scheduler import Scheduler
from cadence.playback.session import PlayerSession


@dataclasses.dataclass
class RecoveryPolicy:
    """Tuning knobs for how hard the engine fights a failing handle."""

    maxAttempts: int = 4
    backoffStepMs: int = 300
    settleDelayMs: int = 450
    recreateThreshold: int = 3
    shortPauseLimit: int = 2
    prematureWindowMs: int = 4000
    prematurePositionS: float = 2.0
    recreateDelayMs: int = 200
    maxRebuilds: int = 2


class PlaybackRecoveryEngine(QObject):
    """State machine fed by the live handle's events.

    Keeps the session state in line with what the handle reports and recovers
    from playback that dies silently: a pause right after playback started is
    treated as a failure and retried with linear backoff; repeated failures
    recreate the handle. Recovery only ever resumes playback the user started.
    """

    recoveryScheduled = Signal(int)  # attempt number

    def __init__(
        self,
        session: PlayerSession,
        manager: PlayerLifecycleManager,
        scheduler: Scheduler,
        policy: Optional[RecoveryPolicy] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger("Recovery")
        self.session = session
        self.manager = manager
        self.scheduler = scheduler
        self.policy = policy or RecoveryPolicy()

        self._timers: set[Any] = set()
        self._resumeOnReady = False

        self.manager.playerEvent.connect(self.handleEvent)

    @property
    def counters(self):
        return self.session.counters

    # -------------------- Reducer --------------------
    def handleEvent(self, event: PlayerEvent) -> None:
        if event.type is PlayerEventType.READY:
            self._on_ready()
        elif event.type is PlayerEventType.STATE_CHANGED:
            self._on_state_change(event.state)
        elif event.type is PlayerEventType.ERROR:
            self._on_error(event.payload)

    def _on_ready(self) -> None:
        self.counters.recoveryAttempts = 0
        if self.session.userStartedPlayback:
            self.manager.unMute()
        else:
            # an unmuted start without a gesture gets blocked by autoplay policy
            self.manager.mute()
        self.session.setDuration(self.manager.duration())
        self.session.setState(SessionState.READY)
        self.logger.debug("Handle ready, duration %.1fs", self.session.duration)
        if self._resumeOnReady:
            self._resumeOnReady = False
            self.recover()

    def _on_state_change(self, state: Optional[HandleState]) -> None:
        if state is None or state == HandleState.UNSTARTED:
            return
        if state == HandleState.BUFFERING:
            self.session.setBuffering(True)
            return
        self.session.setBuffering(False)
        if state == HandleState.PLAYING:
            self._on_playing()
        elif state in (HandleState.PAUSED, HandleState.ENDED):
            self._on_paused_or_ended(state)
        elif state == HandleState.CUED:
            self.session.setState(SessionState.READY)

    def _on_playing(self) -> None:
        self.session.setState(SessionState.PLAYING)
        self.session.setPlaying(True)
        self.manager.tracker.start()
        self.counters.recoveryAttempts = 0
        self.counters.shortPauseCount = 0
        self.counters.lastPlayStartTimestamp = self.scheduler.now()
        self.counters.exhausted = False

    def _on_paused_or_ended(self, state: HandleState) -> None:
        self.session.setPlaying(False)
        self.session.setState(SessionState.ENDED if state == HandleState.ENDED else SessionState.PAUSED)
        self.manager.tracker.stop()

        if not self.isPrematurePause():
            return

        self.counters.shortPauseCount += 1
        self.logger.warning(
            "Premature %s at %.2fs (%s in window)",
            state.name.lower(),
            self.manager.currentTime(),
            self.counters.shortPauseCount,
        )
        if self.counters.shortPauseCount >= self.policy.shortPauseLimit:
            self._scheduleRebuild(resumeAfter=True)
        else:
            self.recover()

    def _on_error(self, payload: Any) -> None:
        self.logger.warning("Player reported an error: %s", payload)
        self.recover()

    def isPrematurePause(self) -> bool:
        """A pause/end shortly after playback started, near position zero."""
        if not self.session.userStartedPlayback:
            return False
        started = self.counters.lastPlayStartTimestamp
        if started is None:
            return False
        elapsed = self.scheduler.now() - started
        position = self.manager.currentTime()
        return elapsed < self.policy.prematureWindowMs and position < self.policy.prematurePositionS

    # -------------------- Bounded recovery --------------------
    def recover(self) -> bool:
        """Schedule the next retry. Returns True if an attempt was scheduled."""
        if not self.session.userStartedPlayback:
            self.logger.debug("Not recovering, playback was never started by the user")
            return False
        if not self.manager.hasHandle:
            self.logger.debug("Not recovering, no live handle")
            return False
        if self.counters.exhausted:
            return False
        if self.counters.recoveryAttempts >= self.policy.maxAttempts:
            if self.session.markExhausted():
                self.logger.warning(
                    "Recovery exhausted after %s attempts for %s",
                    self.counters.recoveryAttempts,
                    self._trackId(),
                )
            return False

        self.counters.recoveryAttempts += 1
        attempt = self.counters.recoveryAttempts
        token = self._token()
        self._later(attempt * self.policy.backoffStepMs, lambda: self._attemptPlay(attempt, token))
        self.recoveryScheduled.emit(attempt)
        return True

    def _attemptPlay(self, attempt: int, token: tuple) -> None:
        if not self._isLive(token):
            self.logger.debug("Dropping recovery attempt %s, session moved on", attempt)
            return
        self.logger.info("Recovery attempt %s/%s for %s", attempt, self.policy.maxAttempts, self._trackId())
        self.manager.play()
        self._later(self.policy.settleDelayMs, lambda: self._checkSettled(attempt, token))

    def _checkSettled(self, attempt: int, token: tuple) -> None:
        if not self._isLive(token):
            return
        if self.manager.playerState() == HandleState.PLAYING:
            self.logger.debug("Recovery attempt %s succeeded", attempt)
            return
        if attempt >= self.policy.recreateThreshold:
            self._scheduleRebuild(resumeAfter=False)
        else:
            self.recover()

    def _scheduleRebuild(self, resumeAfter: bool) -> None:
        if self.counters.rebuilds >= self.policy.maxRebuilds:
            if self.session.markExhausted():
                self.logger.warning(
                    "Handle for %s still failing after %s rebuilds, giving up",
                    self._trackId(),
                    self.counters.rebuilds,
                )
            return
        self.counters.rebuilds += 1
        self.counters.recoveryAttempts = 0
        self.counters.shortPauseCount = 0
        trackId = self._trackId()
        self.logger.warning("Handle considered wedged, recreating for %s", trackId)

        self.manager.destroyHandle()
        self.session.setPlaying(False)
        self.session.setState(SessionState.IDLE)
        generation = self.manager.generation

        def rebuild():
            if (
                self.manager.generation != generation
                or self._trackId() != trackId
                or not self.session.userStartedPlayback
            ):
                self.logger.debug("Dropping scheduled rebuild for %s", trackId)
                return
            self._resumeOnReady = resumeAfter
            self.manager.rebuild()

        self._later(self.policy.recreateDelayMs, rebuild)

    # -------------------- Timers / liveness --------------------
    def _trackId(self) -> Optional[str]:
        track = self.session.track
        return track.externalId if track is not None else None

    def _token(self) -> tuple:
        return (self.manager.generation, self._trackId())

    def _isLive(self, token: tuple) -> bool:
        return (
            self.session.userStartedPlayback
            and self.manager.hasHandle
            and token == self._token()
        )

    def _later(self, delayMs: int, callback: Callable[[], None]) -> None:
        timer: Any = None

        def fire():
            self._timers.discard(timer)
            callback()

        timer = self.scheduler.callLater(delayMs, fire)
        self._timers.add(timer)

    @property
    def pendingTimers(self) -> int:
        return len(self._timers)

    def cancelPending(self) -> None:
        for timer in list(self._timers):
            self.scheduler.cancel(timer)
        self._timers.clear()
        self._resumeOnReady = False
