from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Signal

from cadence.misc.enumerations.Playback import HandleState, SessionState
from cadence.models.track import Track
from cadence.playback.events import PlayerEvent
from cadence.playback.host import PlayerHost
from cadence.playback.PlayerHandleProtocol import HandleFactory, PlayerHandle, capabilitiesOf
from cadence.playback.scheduler import Scheduler
from cadence.playback.session import PlayerSession
from cadence.playback.timetracker import DEFAULT_POLL_INTERVAL_MS, SessionTimeTracker


class PlayerLifecycleManager(QObject):
    """Owns the single player handle of a session and the host it is bound to.

    Responsibilities:
    - Create, swap and destroy the handle; never two live handles
    - Serialize creation (latest requested track wins while one is in flight)
    - Forward events of the live handle as PlayerEvents, drop stale ones
    - Wrap every handle call so backend failures never reach callers
    """

    playerEvent = Signal(object)  # PlayerEvent
    handleCreated = Signal(object)

    def __init__(
        self,
        session: PlayerSession,
        host: PlayerHost,
        handleFactory: HandleFactory,
        scheduler: Scheduler,
        pollIntervalMs: int = DEFAULT_POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger("Lifecycle")
        self.session = session
        self.host = host
        self.handleFactory = handleFactory
        self.scheduler = scheduler
        self.tracker = SessionTimeTracker(session, scheduler, self, pollIntervalMs, self)

        self._handle: Optional[PlayerHandle] = None
        self._connections: list[tuple[Any, Callable]] = []
        self._generation: int = 0
        self._creating: bool = False
        self._pendingTrack: Optional[Track] = None
        self._instantiateTimer: Any = None

    # -------------------- State --------------------
    @property
    def handle(self) -> Optional[PlayerHandle]:
        return self._handle

    @property
    def hasHandle(self) -> bool:
        return self._handle is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def creating(self) -> bool:
        return self._creating

    @property
    def pendingTrack(self) -> Optional[Track]:
        return self._pendingTrack

    # -------------------- Lifecycle --------------------
    def bindTrack(self, track: Track) -> None:
        if track is None:
            return
        if self._creating:
            self.logger.info("Creation in flight, queuing %s", track.externalId)
            self._pendingTrack = track
            return
        self.session.bind(track)
        self._create(track, allowSwap=True)

    def rebuild(self) -> bool:
        """Destroy and recreate the handle for the bound track, keeping the user gesture."""
        track = self.session.track
        if track is None:
            return False
        if self._creating:
            self.logger.debug("Rebuild skipped, creation already in flight")
            return False
        self.logger.info("Rebuilding player handle for %s", track.externalId)
        self.session.setPlaying(False)
        self.session.setBuffering(False)
        self.session.setState(SessionState.IDLE)
        self._create(track, allowSwap=False)
        return True

    def destroyHandle(self) -> None:
        self._destroyHandle()

    def teardown(self) -> None:
        self.tracker.stop()
        self._cancelInstantiate()
        self._destroyHandle()
        self.host.clear()
        self._creating = False
        self._pendingTrack = None
        self.session.counters.reset()
        self.session.setPlaying(False)
        self.session.setBuffering(False)
        self.session.setState(SessionState.IDLE)
        self.session.setUserStarted(False)

    def _create(self, track: Track, allowSwap: bool) -> None:
        self._creating = True
        self._cancelInstantiate()
        try:
            if not self.host.attached:
                self.logger.warning("Host %s is not attached, no handle created", self.host.name)
                self._creating = False
                return

            if allowSwap and self._handle is not None and capabilitiesOf(self._handle).swapMedia:
                try:
                    self.tracker.stop()
                    self._handle.loadMedia(track)
                    self._generation += 1
                    self._creating = False
                    self.logger.info("Loaded %s into the existing handle", track.externalId)
                    return
                except Exception:
                    self.logger.exception("In-place media swap failed, recreating handle")

            self._destroyHandle()
            self.host.clear()
            elementId = self.host.createElement()
            generation = self._generation
            # the element has to exist before a backend binds to it, so wait a turn
            self._instantiateTimer = self.scheduler.callLater(
                0, lambda: self._instantiate(track, elementId, generation)
            )
        except Exception:
            self.logger.exception("Failed to prepare a player handle for %s", track.externalId)
            self._creating = False

    def _instantiate(self, track: Track, elementId: str, generation: int) -> None:
        self._instantiateTimer = None
        if generation != self._generation or not self.host.isAttached(elementId):
            self.logger.debug("Dropping stale instantiation for %s", elementId)
            self._creating = False
            return
        try:
            handle = self.handleFactory(track, elementId)
            self._generation += 1
            self._handle = handle
            self._wire(handle)
            self.logger.info("Created %s handle for %s on %s", getattr(handle, "NAME", "?"), track.externalId, elementId)
            self.handleCreated.emit(handle)
        except Exception:
            self.logger.exception("Player handle creation failed for %s", track.externalId)
            self._handle = None
        finally:
            self._creating = False
        self._drainPending()

    def _drainPending(self) -> None:
        pending = self._pendingTrack
        self._pendingTrack = None
        if pending is None:
            return
        if pending == self.session.track and self._handle is not None:
            return
        self.logger.info("Binding queued track %s", pending.externalId)
        self.bindTrack(pending)

    def _cancelInstantiate(self) -> None:
        if self._instantiateTimer is not None:
            self.scheduler.cancel(self._instantiateTimer)
            self._instantiateTimer = None

    def _destroyHandle(self) -> None:
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        self._generation += 1
        self.tracker.stop()
        for signal, slot in self._connections:
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                pass
        self._connections = []
        try:
            handle.destroy()
        except Exception as e:
            self.logger.debug("Ignoring failure while destroying handle: %s", e)

    # -------------------- Event forwarding --------------------
    def _wire(self, handle: PlayerHandle) -> None:
        def onReady():
            self._forward(handle, lambda: PlayerEvent.ready(self._generation))

        def onStateChanged(state):
            self._forward(handle, lambda: PlayerEvent.stateChanged(self._generation, state))

        def onError(payload=None):
            self._forward(handle, lambda: PlayerEvent.error(self._generation, payload))

        for signal, slot in (
            (handle.ready, onReady),
            (handle.stateChanged, onStateChanged),
            (handle.errorOccurred, onError),
        ):
            signal.connect(slot)
            self._connections.append((signal, slot))

    def _forward(self, handle: PlayerHandle, makeEvent: Callable[[], PlayerEvent]) -> None:
        if handle is not self._handle:
            self.logger.debug("Ignoring event from a stale handle")
            return
        self.playerEvent.emit(makeEvent())

    # -------------------- Guarded handle access --------------------
    def play(self) -> bool:
        if self._handle is None:
            return False
        try:
            self._handle.play()
            return True
        except Exception:
            self.logger.exception("play() failed")
            return False

    def pause(self) -> bool:
        if self._handle is None:
            return False
        try:
            self._handle.pause()
            return True
        except Exception:
            self.logger.exception("pause() failed")
            return False

    def mute(self) -> bool:
        if not capabilitiesOf(self._handle).mute:
            return False
        try:
            self._handle.mute()  # type: ignore[union-attr]
            return True
        except Exception:
            self.logger.exception("mute() failed")
            return False

    def unMute(self) -> bool:
        if self._handle is None:
            return False
        if not capabilitiesOf(self._handle).mute:
            # nothing to undo on a handle that cannot mute
            return True
        try:
            self._handle.unMute()
            return True
        except Exception:
            self.logger.exception("unMute() failed")
            return False

    def seekTo(self, seconds: float) -> bool:
        if not capabilitiesOf(self._handle).seek:
            return False
        try:
            self._handle.seekTo(float(seconds))  # type: ignore[union-attr]
            return True
        except Exception:
            self.logger.exception("seekTo(%s) failed", seconds)
            return False

    def playerState(self) -> Optional[HandleState]:
        if self._handle is None:
            return None
        try:
            return HandleState(int(self._handle.getPlayerState()))
        except Exception:
            return None

    def currentTime(self) -> float:
        if self._handle is None:
            return 0.0
        try:
            return float(self._handle.getCurrentTime() or 0.0)
        except Exception:
            return 0.0

    def duration(self) -> float:
        if self._handle is None:
            return 0.0
        try:
            return float(self._handle.getDuration() or 0.0)
        except Exception:
            return 0.0

    def readTimes(self) -> tuple[float, float]:
        return self.currentTime(), self.duration()
