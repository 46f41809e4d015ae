import unittest

from cadence.misc.enumerations.Playback import HandleState, SessionState
from cadence.playback.PlayerHandleProtocol import HandleCapabilities
from cadence.playback.recovery import RecoveryPolicy
from tests.fakes import T1, T2, T3, makeCore


class TestHappyPath(unittest.TestCase):
    def test_ready_then_playing(self):
        core = makeCore()
        handle = core.bind(T1)

        self.assertTrue(handle.muted)
        self.assertEqual(core.session.state, SessionState.READY)
        self.assertEqual(core.session.duration, 180.0)
        self.assertFalse(core.session.userStartedPlayback)

        core.transport.startUserPlayback()
        handle.emitState(HandleState.PLAYING)

        self.assertTrue(core.session.isPlaying)
        self.assertEqual(core.session.state, SessionState.PLAYING)
        self.assertEqual(core.session.counters.recoveryAttempts, 0)
        self.assertEqual(core.session.duration, 180.0)
        self.assertTrue(core.manager.tracker.running)
        self.assertEqual(handle.calls, ["mute", "unMute", "play"])


class TestPrematurePause(unittest.TestCase):
    def setUp(self):
        self.core = makeCore()
        self.handle = self.core.startPlaying(T1)
        self.core.scheduler.advance(500)
        self.handle.position = 0.3

    def test_premature_pause_triggers_recovery(self):
        core, handle = self.core, self.handle
        playsBefore = handle.plays

        handle.emitState(HandleState.PAUSED)

        self.assertTrue(core.engine.isPrematurePause())
        self.assertEqual(core.session.counters.shortPauseCount, 1)
        self.assertEqual(core.session.counters.recoveryAttempts, 1)
        self.assertFalse(core.session.isPlaying)

        core.scheduler.advance(299)
        self.assertEqual(handle.plays, playsBefore)
        core.scheduler.advance(1)
        self.assertEqual(handle.plays, playsBefore + 1)

    def test_second_premature_pause_rebuilds_handle(self):
        core, first = self.core, self.handle

        first.emitState(HandleState.PAUSED)
        core.scheduler.advance(300)  # first retry plays
        first.emitState(HandleState.PAUSED)  # stream dies again inside the window

        self.assertTrue(first.released)
        self.assertFalse(core.manager.hasHandle)
        self.assertEqual(core.session.counters.shortPauseCount, 0)
        self.assertEqual(core.session.counters.recoveryAttempts, 0)

        core.scheduler.advance(200)  # recreate delay
        core.scheduler.advance(0)  # instantiation turn

        self.assertEqual(len(core.factory.handles), 2)
        second = core.handle
        self.assertIsNot(second, first)
        self.assertEqual(second.track, T1)
        self.assertEqual(core.session.track, T1)
        self.assertTrue(core.session.userStartedPlayback)
        self.assertEqual(core.factory.maxLive, 1)

        # bounded recovery runs once more on the rebuilt handle
        second.emitReady()
        self.assertIn("unMute", second.calls)
        self.assertNotIn("mute", second.calls)
        self.assertEqual(core.session.counters.recoveryAttempts, 1)
        core.scheduler.advance(300)
        self.assertEqual(second.plays, 1)
        self.assertEqual(first.plays, 2)


class TestRecoveryCeiling(unittest.TestCase):
    def test_four_failed_attempts_then_stop(self):
        core = makeCore(RecoveryPolicy(recreateThreshold=99))
        handle = core.startPlaying(T1)
        exhausted = []
        core.session.recoveryExhausted.connect(lambda: exhausted.append(True))

        core.scheduler.advance(500)
        handle.position = 0.2
        handle.emitState(HandleState.PAUSED)

        core.scheduler.advance(20_000)

        self.assertEqual(handle.plays, 1 + 4)
        self.assertEqual(core.session.counters.recoveryAttempts, 4)
        self.assertTrue(core.session.counters.exhausted)
        self.assertEqual(core.session.state, SessionState.PAUSED)
        self.assertEqual(exhausted, [True])
        self.assertEqual(len(core.factory.handles), 1)

        core.scheduler.advance(60_000)
        self.assertEqual(handle.plays, 5)


class TestSeekClamp(unittest.TestCase):
    def test_seek_back_past_start_clamps_to_zero(self):
        core = makeCore()
        handle = core.startPlaying(T1)
        handle.position = 5.0

        target = core.transport.seekRelative(-10)

        self.assertEqual(target, 0.0)
        self.assertIn(("seekTo", 0.0), handle.calls)
        self.assertEqual(core.session.currentTime, 0.0)


class TestSwitchDuringCreation(unittest.TestCase):
    def test_latest_track_wins_with_recreate(self):
        core = makeCore()
        core.transport.switchTrack(T1)
        self.assertTrue(core.manager.creating)
        core.transport.switchTrack(T2)
        self.assertEqual(core.manager.pendingTrack, T2)

        core.scheduler.advance(0)

        self.assertEqual(core.factory.maxLive, 1)
        self.assertEqual(len(core.factory.live), 1)
        self.assertEqual(core.session.track, T2)
        self.assertEqual(core.handle.track, T2)
        self.assertTrue(core.factory.handles[0].released)
        self.assertFalse(core.manager.creating)
        self.assertIsNone(core.manager.pendingTrack)

    def test_latest_track_wins_with_media_swap(self):
        core = makeCore(caps=HandleCapabilities(swapMedia=True, mute=True, seek=True))
        core.transport.switchTrack(T1)
        core.transport.switchTrack(T2)
        core.scheduler.advance(0)

        self.assertEqual(len(core.factory.handles), 1)
        handle = core.handle
        self.assertIn(("loadMedia", T2.externalId), handle.calls)
        self.assertEqual(core.session.track, T2)

    def test_intermediate_requests_are_dropped(self):
        core = makeCore()
        core.transport.switchTrack(T1)
        core.transport.switchTrack(T2)
        core.transport.switchTrack(T3)
        core.scheduler.advance(0)

        built = [h.track.externalId for h in core.factory.handles]
        self.assertEqual(built, [T1.externalId, T3.externalId])
        self.assertEqual(core.session.track, T3)
        self.assertEqual(core.factory.maxLive, 1)


if __name__ == "__main__":
    unittest.main()
