from __future__ import annotations

import itertools
import logging
import time
from typing import Optional


class PlayerHost:
    """Container the lifecycle manager mounts player elements into.

    Each handle binds to its own element id so a late binding from a previous
    handle can never land on the element of the current one. Only the element
    created last is attached.
    """

    def __init__(self, name: str = "player-host") -> None:
        self.name = name
        self.logger = logging.getLogger("PlayerHost")
        self._attached = True
        self._element: Optional[str] = None
        self._counter = itertools.count(1)

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def currentElement(self) -> Optional[str]:
        return self._element

    def attach(self) -> None:
        self._attached = True

    def detach(self) -> None:
        self.clear()
        self._attached = False

    def clear(self) -> None:
        if self._element is not None:
            self.logger.debug("Clearing element %s", self._element)
        self._element = None

    def createElement(self) -> str:
        if not self._attached:
            raise RuntimeError(f"Host {self.name} is not attached")
        elementId = f"{self.name}-el-{int(time.time() * 1000)}-{next(self._counter)}"
        self._element = elementId
        return elementId

    def isAttached(self, elementId: str) -> bool:
        return self._attached and elementId is not None and elementId == self._element
