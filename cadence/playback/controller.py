from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject

import cadence.misc.cleanup as cleanup
from cadence.backend.api import MusicApiClient
from cadence.models.track import Track
from cadence.playback.host import PlayerHost
from cadence.playback.lifecycle import PlayerLifecycleManager
from cadence.playback.loader import BackendLoader
from cadence.playback.recovery import PlaybackRecoveryEngine, RecoveryPolicy
from cadence.playback.scheduler import QtScheduler, Scheduler
from cadence.playback.session import PlayerSession
from cadence.playback.timetracker import DEFAULT_POLL_INTERVAL_MS
from cadence.playback.transport import TransportControls


class PlaybackController(QObject):
    """Wires the playback core together for one player.

    session <- manager (owns the tracker) <- engine <- transport
    """

    def __init__(
        self,
        loader: BackendLoader,
        scheduler: Optional[Scheduler] = None,
        policy: Optional[RecoveryPolicy] = None,
        api: Optional[MusicApiClient] = None,
        host: Optional[PlayerHost] = None,
        pollIntervalMs: int = DEFAULT_POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger("PlaybackController")
        self.loader = loader
        self.api = api
        self.scheduler: Scheduler = scheduler or QtScheduler(self)
        self.session = PlayerSession(self)
        self.host = host or PlayerHost()
        self.manager = PlayerLifecycleManager(
            self.session, self.host, loader.createHandle, self.scheduler, pollIntervalMs, self
        )
        self.engine = PlaybackRecoveryEngine(self.session, self.manager, self.scheduler, policy, self)
        self.transport = TransportControls(self.session, self.manager, self.engine, self)

        self._selected: Optional[Track] = None
        self._waitingForBackend = False
        loader.failed.connect(self._onBackendFailed)

        cleanup.addCleanup(self.shutdown)

    @property
    def tracker(self):
        return self.manager.tracker

    def selectTrack(self, track: Track) -> None:
        """Make track the current one. It is bound as soon as the backend is loaded."""
        if track is None:
            return
        if self.api is not None:
            self.api.appendRecent(track)
        if not self.loader.isReady():
            self.logger.info("Backend %s not loaded yet, holding %s", self.loader.name, track.externalId)
            self._selected = track
            if not self._waitingForBackend:
                self._waitingForBackend = True
                self.loader.whenReady(self._bindSelected)
            return
        self.transport.switchTrack(track)

    def _bindSelected(self) -> None:
        self._waitingForBackend = False
        track, self._selected = self._selected, None
        if track is not None:
            self.transport.switchTrack(track)

    def _onBackendFailed(self, name: str, message: str) -> None:
        if self._selected is not None:
            self.logger.error("Dropping %s, backend %s failed to load: %s", self._selected.externalId, name, message)
        self._waitingForBackend = False
        self._selected = None

    def shutdown(self) -> None:
        self._selected = None
        self.engine.cancelPending()
        self.manager.teardown()
