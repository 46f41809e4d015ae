from __future__ import annotations

import time
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from PySide6.QtCore import QObject, QTimer


@runtime_checkable
class Scheduler(Protocol):
    """Timer and clock source for the playback core.

    Every callback MUST run on the owning event loop, one at a time, so the
    core can mutate session state without locks. Returned timer objects are
    opaque; pass them back to cancel().
    """

    def callLater(self, delayMs: int, callback: Callable[[], Any]) -> Any:
        """Run callback once after delayMs. 0 means the next event-loop turn."""

    def callRepeating(self, intervalMs: int, callback: Callable[[], Any]) -> Any:
        """Run callback every intervalMs until cancelled."""

    def cancel(self, timer: Any) -> None:
        """Cancel a timer. Safe for None, fired or already cancelled timers."""

    def now(self) -> float:
        """Monotonic wall-clock in milliseconds."""


class QtScheduler(QObject):
    """Scheduler backed by QTimer on the Qt main thread."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timers: set[QTimer] = set()

    def callLater(self, delayMs: int, callback: Callable[[], Any]) -> QTimer:
        timer = QTimer(self)
        timer.setSingleShot(True)

        def fire():
            self._timers.discard(timer)
            timer.deleteLater()
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start(max(0, int(delayMs)))
        return timer

    def callRepeating(self, intervalMs: int, callback: Callable[[], Any]) -> QTimer:
        timer = QTimer(self)
        timer.setSingleShot(False)
        timer.timeout.connect(callback)
        self._timers.add(timer)
        timer.start(max(1, int(intervalMs)))
        return timer

    def cancel(self, timer: Any) -> None:
        if timer is None or timer not in self._timers:
            return
        self._timers.discard(timer)
        timer.stop()
        timer.deleteLater()

    def now(self) -> float:
        return time.monotonic() * 1000.0
