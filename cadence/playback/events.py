"""
Events flowing from a live player handle into the recovery engine.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from cadence.misc.enumerations.Playback import HandleState, PlayerEventType


@dataclasses.dataclass(frozen=True)
class PlayerEvent:
    type: PlayerEventType
    generation: int
    state: Optional[HandleState] = None
    payload: Any = None

    @staticmethod
    def ready(generation: int) -> "PlayerEvent":
        return PlayerEvent(PlayerEventType.READY, generation)

    @staticmethod
    def stateChanged(generation: int, state: int) -> "PlayerEvent":
        try:
            mapped = HandleState(int(state))
        except ValueError:
            mapped = None
        return PlayerEvent(PlayerEventType.STATE_CHANGED, generation, state=mapped, payload=state)

    @staticmethod
    def error(generation: int, payload: Any = None) -> "PlayerEvent":
        return PlayerEvent(PlayerEventType.ERROR, generation, payload=payload)
