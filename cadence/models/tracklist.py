from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QAbstractListModel, QModelIndex, QPersistentModelIndex, Qt

from cadence.models.track import Track


class TrackListModel(QAbstractListModel):
    """Flat list of tracks for search results, history and playlist views."""

    TitleRole = Qt.ItemDataRole.DisplayRole
    AuthorRole = Qt.ItemDataRole.UserRole + 1
    IdRole = Qt.ItemDataRole.UserRole + 2
    ThumbnailRole = Qt.ItemDataRole.UserRole + 3
    ObjectRole = Qt.ItemDataRole.UserRole + 4

    def __init__(self, tracks: Optional[list[Track]] = None):
        super().__init__()
        self._data: list[Track] = list(tracks or [])

    def rowCount(self, parent=QModelIndex()):
        return 0 if parent.isValid() else len(self._data)

    def roleNames(self):
        return {
            self.TitleRole: b"title",
            self.AuthorRole: b"author",
            self.IdRole: b"ytid",
            self.ThumbnailRole: b"thumbnail",
            self.ObjectRole: b"object",
        }

    def data(self, index: QModelIndex | QPersistentModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or index.row() >= len(self._data):
            return None
        track = self._data[index.row()]
        if role == self.TitleRole:
            return track.title
        if role == self.AuthorRole:
            return track.author
        if role == self.IdRole:
            return track.externalId
        if role == self.ThumbnailRole:
            return track.thumbnailURL
        if role == self.ObjectRole:
            return track
        return None

    def track(self, row: int) -> Optional[Track]:
        if 0 <= row < len(self._data):
            return self._data[row]
        return None

    def tracks(self) -> list[Track]:
        return list(self._data)

    def setTracks(self, tracks: list[Track]) -> None:
        self.beginResetModel()
        self._data = list(tracks)
        self.endResetModel()
