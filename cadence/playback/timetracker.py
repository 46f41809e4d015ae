from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from PySide6.QtCore import QObject, Signal

from cadence.misc.enumerations.Playback import SessionState
from cadence.playback.scheduler import Scheduler
from cadence.playback.session import PlayerSession

DEFAULT_POLL_INTERVAL_MS = 500


class TimeSource(Protocol):
    def readTimes(self) -> tuple[float, float]:
        """(position, duration) in seconds, zeros when unknown."""


class SessionTimeTracker(QObject):
    """Polls the live handle while playing and publishes position/duration."""

    positionReported = Signal(float, float)  # position, duration

    def __init__(
        self,
        session: PlayerSession,
        scheduler: Scheduler,
        source: TimeSource,
        intervalMs: int = DEFAULT_POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger("TimeTracker")
        self.session = session
        self.scheduler = scheduler
        self.source = source
        self.intervalMs = intervalMs
        self._timer: Any = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        # restart rather than stack a second timer
        self.stop()
        self._timer = self.scheduler.callRepeating(self.intervalMs, self._poll)
        self.logger.debug("Polling every %sms", self.intervalMs)

    def stop(self) -> None:
        if self._timer is None:
            return
        self.scheduler.cancel(self._timer)
        self._timer = None
        self.logger.debug("Polling stopped")

    def _poll(self) -> None:
        if self.session.state != SessionState.PLAYING:
            self.stop()
            return
        position, duration = self.source.readTimes()
        self.session.setTimes(position, duration)
        self.positionReported.emit(float(position), float(duration))
