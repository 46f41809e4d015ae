"""
Publishes our own playback session to the Windows System Media Transport
Controls (the media flyout, lock screen and hardware media keys). Windows only.
"""

from datetime import timedelta
from typing import Callable, Optional

import winrt.windows.foundation as wf
import winrt.windows.media as wmedia
import winrt.windows.media.playback as wmp
import winrt.windows.storage.streams as wss

_player: Optional[wmp.MediaPlayer] = None
_button_token = None

BUTTON_NAMES = {
    wmedia.SystemMediaTransportControlsButton.PLAY: "play",
    wmedia.SystemMediaTransportControlsButton.PAUSE: "pause",
    wmedia.SystemMediaTransportControlsButton.STOP: "stop",
    wmedia.SystemMediaTransportControlsButton.NEXT: "next",
    wmedia.SystemMediaTransportControlsButton.PREVIOUS: "previous",
}


def _get_player() -> wmp.MediaPlayer:
    global _player
    if _player is None:
        _player = wmp.MediaPlayer()
        # we only borrow its SMTC, audio goes through our own backend
        _player.command_manager.is_enabled = False
        smtc = _player.system_media_transport_controls
        smtc.is_enabled = True
        smtc.is_play_enabled = True
        smtc.is_pause_enabled = True
        smtc.is_stop_enabled = True
    return _player


def set_now_playing(title: str = "", artist: str = "", art_uri: Optional[str] = None) -> None:
    """Publish metadata. art_uri can be an http(s) or file URI."""
    smtc = _get_player().system_media_transport_controls
    du = smtc.display_updater
    du.type = wmedia.MediaPlaybackType.MUSIC
    music = du.music_properties
    music.title = title or ""
    music.artist = artist or ""
    if art_uri:
        du.thumbnail = wss.RandomAccessStreamReference.create_from_uri(wf.Uri(art_uri))
    du.update()


def set_playing(playing: bool) -> None:
    _get_player().system_media_transport_controls.playback_status = (
        wmedia.MediaPlaybackStatus.PLAYING if playing else wmedia.MediaPlaybackStatus.PAUSED
    )


def playback_stop() -> None:
    _get_player().system_media_transport_controls.playback_status = wmedia.MediaPlaybackStatus.STOPPED


def clear_now_playing() -> None:
    du = _get_player().system_media_transport_controls.display_updater
    du.clear_all()
    du.update()


def update_timeline(duration_s: float, position_s: float) -> None:
    """Report duration/position so the OS can draw a seek bar."""
    smtc = _get_player().system_media_transport_controls
    tl = wmedia.SystemMediaTransportControlsTimelineProperties()
    end = timedelta(seconds=max(0.0, float(duration_s)))
    tl.start_time = timedelta(seconds=0)
    tl.min_seek_time = timedelta(seconds=0)
    tl.end_time = end
    tl.max_seek_time = end
    tl.position = timedelta(seconds=max(0.0, float(position_s)))
    smtc.update_timeline_properties(tl)


def set_button_handler(handler: Callable[[str], None]) -> None:
    """Register handler(buttonName) for SMTC button presses, replacing any previous one.

    Called on a WinRT thread.
    """
    global _button_token
    smtc = _get_player().system_media_transport_controls
    if _button_token is not None:
        smtc.remove_button_pressed(_button_token)
        _button_token = None

    def on_pressed(sender, args):  # noqa: ARG001
        name = BUTTON_NAMES.get(args.button)
        if name is not None:
            handler(name)

    _button_token = smtc.add_button_pressed(on_pressed)
