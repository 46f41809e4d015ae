"""
VlcPlayerHandle against a scripted libVLC.

Stream resolution goes through an inline worker, so `ready` is emitted
synchronously from the constructor or from loadMedia().
"""

import importlib
import sys
import types
import unittest
from unittest.mock import patch

import cadence.misc.enumerations.Playback  # noqa: F401
import cadence.models.track  # noqa: F401
import cadence.playback.PlayerHandleProtocol  # noqa: F401
import cadence.providers.youtube  # noqa: F401
import cadence.workers  # noqa: F401
from cadence.misc.enumerations.Playback import HandleState
from tests.fakes import T1, T2, ImmediateWorker

EventType = types.SimpleNamespace(
    MediaPlayerPlaying="playing",
    MediaPlayerPaused="paused",
    MediaPlayerEndReached="end",
    MediaPlayerBuffering="buffering",
    MediaPlayerEncounteredError="error",
)


class ScriptedMedia:
    def __init__(self, url):
        self.url = url
        self.options = []

    def add_option(self, option):
        self.options.append(option)


class ScriptedEventManager:
    def __init__(self):
        self.handlers = {}

    def event_attach(self, kind, handler):
        self.handlers[kind] = handler

    def event_detach(self, kind):
        self.handlers.pop(kind, None)


class ScriptedPlayer:
    def __init__(self):
        self.media = None
        self.playing = False
        self.paused = False
        self.muted = False
        self.time = -1
        self.length = -1
        self.stops = 0
        self.released = False
        self.events = ScriptedEventManager()

    def event_manager(self):
        return self.events

    def get_media(self):
        return self.media

    def set_media(self, media):
        self.media = media

    def play(self):
        self.playing = True

    def stop(self):
        self.stops += 1
        self.playing = False

    def set_pause(self, on):
        self.paused = bool(on)

    def is_playing(self):
        return self.playing

    def audio_set_mute(self, muted):
        self.muted = muted

    def set_time(self, ms):
        self.time = ms

    def get_time(self):
        return self.time

    def get_length(self):
        return self.length

    def release(self):
        self.released = True


class ScriptedInstance:
    def __init__(self, args):
        self.args = args
        self.released = False

    def media_player_new(self):
        return ScriptedPlayer()

    def media_new(self, url):
        return ScriptedMedia(url)

    def release(self):
        self.released = True


def buffering(percent):
    return types.SimpleNamespace(u=types.SimpleNamespace(new_cache=percent))


VlcHandle = None
_modules = patch.dict(
    sys.modules,
    {"vlc": types.SimpleNamespace(Instance=ScriptedInstance, EventType=EventType)},
)


def setUpModule():
    global VlcHandle
    _modules.start()
    sys.modules.pop("cadence.playback.VlcHandle", None)
    VlcHandle = importlib.import_module("cadence.playback.VlcHandle")


def tearDownModule():
    _modules.stop()


class VlcTestCase(unittest.TestCase):
    def setUp(self):
        self.worker = ImmediateWorker()
        self.resolved = {T1.externalId: "https://stream.test/1", T2.externalId: "https://stream.test/2"}
        patches = [
            patch.object(VlcHandle, "bgworker", lambda: self.worker),
            patch.object(VlcHandle, "resolveAudioUrl", self.resolve),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

        self.states = []
        self.readies = []
        self.errors = []

    def resolve(self, externalId):
        url = self.resolved[externalId]
        if isinstance(url, Exception):
            raise url
        return url

    def create(self, track=T1):
        handle = VlcHandle.createHandle(track, "player-1")
        self.addCleanup(handle.destroy)
        return handle

    def watch(self, handle):
        handle.stateChanged.connect(self.states.append)
        handle.ready.connect(lambda: self.readies.append(True))
        handle.errorOccurred.connect(self.errors.append)


class TestResolution(VlcTestCase):
    def test_resolves_on_worker_then_cues(self):
        handle = self.create()
        self.assertEqual(len(self.worker.jobs), 1)
        self.assertEqual(handle.player.media.url, "https://stream.test/1")
        self.assertIn("http-referrer=https://www.youtube.com/", handle.player.media.options)
        self.assertEqual(handle.getPlayerState(), HandleState.CUED)
        self.assertFalse(handle.player.playing)

    def test_resolve_failure_reports_error(self):
        self.resolved[T1.externalId] = RuntimeError("Video unavailable")
        with self.assertLogs("Handle.vlc", level="ERROR"):
            handle = VlcHandle.createHandle(T1, "player-1")
        self.addCleanup(handle.destroy)
        self.assertIsNone(handle.player.media)
        self.assertEqual(handle.getPlayerState(), HandleState.UNSTARTED)
        with self.assertRaises(RuntimeError):
            handle.play()

        self.watch(handle)
        handle._on_resolve_failed(T1.externalId, "Video unavailable")
        self.assertEqual(self.errors, [{"backend": "vlc", "text": "Video unavailable"}])

    def test_stale_resolution_is_ignored(self):
        handle = self.create()
        self.watch(handle)
        handle._on_resolved(T2.externalId, "https://stream.test/other")
        handle._on_resolve_failed(T2.externalId, "gone")
        self.assertEqual(handle.player.media.url, "https://stream.test/1")
        self.assertEqual(self.readies, [])
        self.assertEqual(self.errors, [])

    def test_swap_stops_and_signals_ready_again(self):
        handle = self.create()
        self.watch(handle)
        handle.play()

        handle.loadMedia(T2)

        self.assertEqual(handle.player.stops, 1)
        self.assertEqual(handle.player.media.url, "https://stream.test/2")
        self.assertEqual(self.readies, [True])
        self.assertEqual(handle.getPlayerState(), HandleState.CUED)


class TestEvents(VlcTestCase):
    def setUp(self):
        super().setUp()
        self.handle = self.create()
        self.watch(self.handle)
        self.fire = self.handle.player.events.handlers

    def test_play_pause_end(self):
        self.fire["playing"](None)
        self.fire["paused"](None)
        self.fire["end"](None)
        self.assertEqual(self.states, [HandleState.PLAYING, HandleState.PAUSED, HandleState.ENDED])

    def test_buffering_percentage(self):
        self.handle.play()
        self.fire["playing"](None)
        self.fire["buffering"](buffering(35.0))
        self.assertEqual(self.handle.getPlayerState(), HandleState.BUFFERING)
        self.fire["buffering"](buffering(100.0))
        self.assertEqual(self.handle.getPlayerState(), HandleState.PLAYING)

    def test_full_buffer_while_stopped_keeps_state(self):
        self.fire["buffering"](buffering(100.0))
        self.assertEqual(self.handle.getPlayerState(), HandleState.CUED)

    def test_player_error(self):
        self.fire["error"](None)
        self.assertEqual(self.errors, [{"backend": "vlc", "text": "MediaPlayerEncounteredError"}])

    def test_controls(self):
        self.handle.pause()
        self.assertTrue(self.handle.player.paused)
        self.handle.mute()
        self.assertTrue(self.handle.player.muted)
        self.handle.unMute()
        self.assertFalse(self.handle.player.muted)
        self.handle.seekTo(2.5)
        self.assertEqual(self.handle.player.time, 2500)
        self.assertEqual(self.handle.getCurrentTime(), 2.5)
        self.assertEqual(self.handle.getDuration(), 0.0)

    def test_destroy_detaches_and_releases(self):
        player, instance = self.handle.player, self.handle.instance
        self.handle.destroy()
        self.handle.destroy()

        self.assertEqual(player.events.handlers, {})
        self.assertTrue(player.released)
        self.assertTrue(instance.released)

        self.handle._setState(int(HandleState.PLAYING))
        self.handle._on_vlc_error()
        self.assertEqual(self.states, [])
        self.assertEqual(self.errors, [])


if __name__ == "__main__":
    unittest.main()
