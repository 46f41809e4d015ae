# stdlib imports
import logging
from typing import Optional

# library imports
from PySide6.QtCore import Property, QObject, Signal, Slot

from cadence.backend.api import MusicApiClient
from cadence.backend.search import SearchProvider
from cadence.models.track import Track
from cadence.models.tracklist import TrackListModel
from cadence.playback.controller import PlaybackController
from cadence.workers import bgworker


class Interactions(QObject):
    """What a UI is allowed to do with the player, and what it can observe.

    Blocking backend calls run on the background worker; their results come
    back through signals so models are only touched on the main thread.
    """

    trackChanged = Signal()
    playingChanged = Signal()
    bufferingChanged = Signal()
    timeChanged = Signal()
    durationChanged = Signal()
    likedChanged = Signal()
    recoveryFailed = Signal()

    _searchFinished = Signal(str, list)
    _recentFetched = Signal(list)
    _likeToggled = Signal(str, bool)

    def __init__(
        self,
        controller: PlaybackController,
        searchProvider: SearchProvider,
        api: Optional[MusicApiClient] = None,
        worker=None,
    ):
        super().__init__()
        self.logger = logging.getLogger("Interactions")
        self.controller = controller
        self.session = controller.session
        self.transport = controller.transport
        self.searchProvider = searchProvider
        self.api = api
        if worker is None:
            worker = bgworker()
        self.worker = worker

        self.searchModel = TrackListModel()
        self.recentModel = TrackListModel()
        self._lastQuery = ""
        self._liked = False

        self.session.trackChanged.connect(self._onTrackChanged)
        self.session.playingChanged.connect(lambda _: self.playingChanged.emit())
        self.session.bufferingChanged.connect(lambda _: self.bufferingChanged.emit())
        self.session.timeChanged.connect(lambda _: self.timeChanged.emit())
        self.session.durationChanged.connect(lambda _: self.durationChanged.emit())
        self.session.recoveryExhausted.connect(self.recoveryFailed.emit)

        self._searchFinished.connect(self._onSearchFinished)
        self._recentFetched.connect(self.recentModel.setTracks)
        self._likeToggled.connect(self._onLikeToggled)

    # -------------------- Observable state --------------------
    @Property(str, notify=trackChanged)
    def currentTitle(self) -> str:
        track = self.session.track
        return track.title if track else ""

    @Property(str, notify=trackChanged)
    def currentAuthor(self) -> str:
        track = self.session.track
        return track.author if track else ""

    @Property(str, notify=trackChanged)
    def currentThumbnail(self) -> str:
        track = self.session.track
        return track.thumbnailURL if track else ""

    @Property(bool, notify=playingChanged)
    def isPlaying(self) -> bool:
        return self.session.isPlaying

    @Property(bool, notify=bufferingChanged)
    def isBuffering(self) -> bool:
        return self.session.buffering

    @Property(float, notify=timeChanged)
    def currentTime(self) -> float:
        return self.session.currentTime

    @Property(float, notify=durationChanged)
    def duration(self) -> float:
        return self.session.duration

    @Property(bool, notify=likedChanged)
    def isLiked(self) -> bool:
        return self._liked

    # -------------------- Search / history --------------------
    @Slot(str)
    def search(self, query: str) -> None:
        query = (query or "").strip()
        self._lastQuery = query
        if not query:
            self.searchModel.setTracks([])
            return
        self.worker.add_job(self._runSearch, query)

    def _runSearch(self, query: str) -> None:
        self._searchFinished.emit(query, self.searchProvider.search(query))

    @Slot(str, list)
    def _onSearchFinished(self, query: str, tracks: list) -> None:
        if query != self._lastQuery:
            # a newer query superseded this one
            return
        self.searchModel.setTracks(tracks)

    @Slot()
    def refreshRecent(self) -> None:
        if self.api is not None:
            self.worker.add_job(lambda: self._recentFetched.emit(self.api.fetchRecent()))

    # -------------------- Playback --------------------
    @Slot(int)
    def playSearchResult(self, row: int) -> None:
        self.selectTrack(self.searchModel.track(row))

    @Slot(int)
    def playRecent(self, row: int) -> None:
        self.selectTrack(self.recentModel.track(row))

    def selectTrack(self, track: Optional[Track]) -> None:
        if track is not None:
            self.controller.selectTrack(track)

    @Slot()
    def togglePlayPause(self) -> None:
        self.transport.togglePlayPause()

    @Slot(float)
    def seekRelative(self, deltaSeconds: float) -> None:
        self.transport.seekRelative(deltaSeconds)

    @Slot(float)
    def seekAbsolute(self, fraction: float) -> None:
        self.transport.seekAbsolute(fraction)

    # -------------------- Likes --------------------
    @Slot()
    def toggleLike(self) -> None:
        track = self.session.track
        if track is None or self.api is None:
            return
        api = self.api
        self.worker.add_job(lambda: self._likeToggled.emit(track.externalId, api.toggleLike(track)))

    @Slot(str, bool)
    def _onLikeToggled(self, externalId: str, liked: bool) -> None:
        if self.session.track is not None and self.session.track.externalId == externalId:
            self._setLiked(liked)

    def _setLiked(self, liked: bool) -> None:
        if liked != self._liked:
            self._liked = liked
            self.likedChanged.emit()

    @Slot(object)
    def _onTrackChanged(self, track: Optional[Track]) -> None:
        self._setLiked(self.api.isLiked(track) if (self.api is not None and track is not None) else False)
        self.trackChanged.emit()
