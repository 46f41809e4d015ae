import sys
import unittest
from unittest import mock

from cadence.integrations.mediasession import MediaSessionBridge, defaultPublisher
from cadence.misc.enumerations.Playback import HandleState
from tests.fakes import T1, makeCore


class TestMediaSessionBridge(unittest.TestCase):
    def setUp(self):
        self.core = makeCore()
        self.publisher = mock.Mock()
        self.bridge = MediaSessionBridge(
            self.core.session, self.core.transport, self.core.manager.tracker, self.publisher
        )
        self.press = self.publisher.set_button_handler.call_args.args[0]

    def test_now_playing_follows_track(self):
        self.core.bind(T1)
        self.publisher.set_now_playing.assert_called_once_with("Track One", "Artist A", None)

        self.core.manager.teardown()
        self.core.session.bind(None)
        self.publisher.clear_now_playing.assert_called_once_with()

    def test_playing_and_timeline(self):
        handle = self.core.startPlaying(T1)
        handle.position = 12.5
        self.core.scheduler.advance(500)

        self.publisher.set_playing.assert_called_with(True)
        self.publisher.update_timeline.assert_called_with(180.0, 12.5)

    def test_media_keys_drive_transport(self):
        handle = self.core.bind(T1)

        self.press("play")
        self.assertTrue(self.core.session.userStartedPlayback)
        self.assertEqual(handle.plays, 1)

        handle.emitState(HandleState.PLAYING)
        self.press("pause")
        self.assertEqual(handle.calls[-1], "pause")

        self.press("next")
        self.assertEqual(handle.calls[-1], "pause")

    def test_publisher_failures_are_contained(self):
        self.publisher.set_playing.side_effect = OSError("smtc gone")
        handle = self.core.startPlaying(T1)
        self.assertTrue(self.core.session.isPlaying)
        self.assertEqual(handle.plays, 1)


class TestDefaultPublisher(unittest.TestCase):
    @unittest.skipIf(sys.platform == "win32", "publisher exists on Windows")
    def test_none_off_windows(self):
        self.assertIsNone(defaultPublisher())


if __name__ == "__main__":
    unittest.main()
