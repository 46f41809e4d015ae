import enum


class HandleState(enum.IntEnum):
    """State reported by an external player handle.

    The numeric ids follow the embeddable catalog player so backend adapters can
    pass vendor codes straight through.

    UNSTARTED: Media bound but nothing has been played yet \n
    ENDED: Media reached its end \n
    PLAYING: Audio is rendering \n
    PAUSED: Halted, position retained \n
    BUFFERING: Waiting for data, may co-occur with READY/PAUSED at session level \n
    CUED: Media loaded and ready to start \n

    """
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


class SessionState(enum.IntEnum):
    """Playback state of a player session.

    IDLE: No handle ready yet (fresh bind, rebuild in progress or torn down) \n
    READY: Handle reported ready; nothing played yet \n
    PLAYING: Handle confirmed playback \n
    PAUSED: Handle reported pause (genuine or premature) \n
    ENDED: Handle reported end of media \n

    Buffering is tracked separately on the session as a flag.
    """
    IDLE = 0
    READY = 1
    PLAYING = 2
    PAUSED = 3
    ENDED = 4


class PlayerEventType(enum.Enum):
    """Kinds of events a player handle can emit."""
    READY = "ready"
    STATE_CHANGED = "stateChanged"
    ERROR = "error"
