from .Playback import HandleState, SessionState, PlayerEventType
from .Search import SearchFilters

__all__ = [
    "HandleState",
    "SessionState",
    "PlayerEventType",
    "SearchFilters",
]
