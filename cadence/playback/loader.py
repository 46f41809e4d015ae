from __future__ import annotations

import importlib
import logging
from concurrent.futures import Future
from types import ModuleType
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from cadence.models.track import Track
from cadence.playback.PlayerHandleProtocol import PlayerHandle

BACKEND_MODULES: dict[str, str] = {
    "mpv": "cadence.playback.MpvHandle",
    "vlc": "cadence.playback.VlcHandle",
}


class BackendLoader(QObject):
    """Loads a player backend once per process and tells everyone when it is usable.

    Importing a backend pulls in its native library (libmpv, libVLC), which can
    be slow or fail. The import happens at most once; later callers share the
    same Future.
    """

    ready = Signal(str)
    failed = Signal(str, str)

    # emitted from whichever thread ran the import, delivered on ours
    _finished = Signal(bool, str)

    _instances: dict[str, "BackendLoader"] = {}

    @classmethod
    def get_instance(cls, name: str) -> "BackendLoader":
        if name not in BACKEND_MODULES:
            raise ValueError(f"Unknown player backend: {name}, must be one of {list(BACKEND_MODULES)}")
        if name not in cls._instances:
            cls._instances[name] = cls(name, BACKEND_MODULES[name])
        return cls._instances[name]

    def __init__(
        self,
        name: str,
        moduleName: str,
        importer: Callable[[str], ModuleType] = importlib.import_module,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.logger = logging.getLogger(f"BackendLoader.{name}")
        self.name = name
        self.moduleName = moduleName
        self._importer = importer
        self._future: Optional[Future] = None
        self._callbacks: list[Callable[[], Any]] = []
        self._finished.connect(self._onFinished)

    def load(self, worker=None) -> Future:
        """Start loading if nobody has yet. Runs on `worker` when given, inline otherwise."""
        if self._future is not None:
            return self._future
        self._future = Future()
        self._future.set_running_or_notify_cancel()
        self.logger.info("Loading player backend %s", self.moduleName)
        if worker is None:
            self._import()
        else:
            worker.add_job(self._import)
        return self._future

    def _import(self) -> None:
        assert self._future is not None
        try:
            module = self._importer(self.moduleName)
        except Exception as e:
            self.logger.exception("Failed to load player backend %s", self.moduleName)
            self._future.set_exception(e)
            self._finished.emit(False, str(e))
            return
        self._future.set_result(module)
        self._finished.emit(True, "")

    @Slot(bool, str)
    def _onFinished(self, ok: bool, message: str) -> None:
        if not ok:
            self._callbacks.clear()
            self.failed.emit(self.name, message)
            return
        self.logger.info("Player backend %s ready", self.name)
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                self.logger.exception("Ready callback %s failed", callback)
        self.ready.emit(self.name)

    def isReady(self) -> bool:
        return (
            self._future is not None
            and self._future.done()
            and self._future.exception() is None
        )

    @property
    def module(self) -> Optional[ModuleType]:
        return self._future.result() if self.isReady() else None  # type: ignore[union-attr]

    def whenReady(self, callback: Callable[[], Any]) -> None:
        if self.isReady():
            callback()
        else:
            self._callbacks.append(callback)

    def createHandle(self, track: Track, elementId: str) -> PlayerHandle:
        module = self.module
        if module is None:
            raise RuntimeError(f"Player backend {self.name} is not loaded")
        return module.createHandle(track, elementId)
