import unittest

from cadence.misc.enumerations.Playback import HandleState, SessionState
from cadence.playback.recovery import RecoveryPolicy
from tests.fakes import T1, T2, makeCore


class TestNoAutoplay(unittest.TestCase):
    def test_recovery_never_starts_without_gesture(self):
        core = makeCore()
        started = []
        core.session.userStartedChanged.connect(started.append)
        handle = core.bind(T1)

        # backend starts on its own and dies immediately
        handle.emitState(HandleState.PLAYING)
        handle.position = 0.1
        handle.emitState(HandleState.PAUSED)
        handle.errorOccurred.emit("decoder")
        core.scheduler.advance(10_000)

        self.assertEqual(handle.plays, 0)
        self.assertNotIn(True, started)
        self.assertFalse(core.session.userStartedPlayback)
        self.assertFalse(core.engine.recover())
        self.assertEqual(core.engine.pendingTimers, 0)
        self.assertEqual(len(core.factory.handles), 1)

    def test_handle_stays_muted_until_gesture(self):
        core = makeCore()
        handle = core.bind(T1)
        self.assertTrue(handle.muted)
        core.transport.startUserPlayback()
        self.assertFalse(handle.muted)


class TestRecoveryTriggers(unittest.TestCase):
    def test_genuine_pause_is_left_alone(self):
        core = makeCore()
        handle = core.startPlaying(T1)
        core.scheduler.advance(5000)
        handle.position = 30.0
        handle.emitState(HandleState.PAUSED)

        self.assertFalse(core.engine.isPrematurePause())
        self.assertEqual(core.session.state, SessionState.PAUSED)
        self.assertEqual(core.session.counters.recoveryAttempts, 0)
        self.assertEqual(core.engine.pendingTimers, 0)

    def test_early_pause_far_into_track_is_genuine(self):
        core = makeCore()
        handle = core.startPlaying(T1)
        handle.seekTo(60.0)
        core.scheduler.advance(300)
        handle.emitState(HandleState.PAUSED)

        self.assertEqual(core.session.counters.shortPauseCount, 0)
        self.assertEqual(core.engine.pendingTimers, 0)

    def test_error_event_schedules_retry(self):
        core = makeCore()
        handle = core.startPlaying(T1)
        scheduled = []
        core.engine.recoveryScheduled.connect(scheduled.append)

        handle.errorOccurred.emit("network")

        self.assertEqual(scheduled, [1])
        core.scheduler.advance(300)
        self.assertEqual(handle.plays, 2)

    def test_failed_initial_play_hands_over_to_recovery(self):
        core = makeCore()
        handle = core.bind(T1)
        handle.failPlay = True

        core.transport.startUserPlayback()

        self.assertTrue(core.session.userStartedPlayback)
        self.assertEqual(core.session.counters.recoveryAttempts, 1)
        self.assertEqual(core.engine.pendingTimers, 1)

        handle.failPlay = False
        core.scheduler.advance(300)
        self.assertEqual(handle.plays, 2)

    def test_buffering_is_a_flag(self):
        core = makeCore()
        handle = core.startPlaying(T1)
        handle.emitState(HandleState.BUFFERING)

        self.assertTrue(core.session.buffering)
        self.assertEqual(core.session.state, SessionState.PLAYING)

        handle.emitState(HandleState.PLAYING)
        self.assertFalse(core.session.buffering)


class TestEscalation(unittest.TestCase):
    def test_threshold_rebuild_waits_for_user(self):
        core = makeCore()
        first = core.startPlaying(T1)
        core.scheduler.advance(500)
        first.position = 0.2
        first.emitState(HandleState.PAUSED)

        # retries at 800, 1850 and 3200 all fail, third settle check rebuilds
        core.scheduler.advance(4000)

        self.assertEqual(first.plays, 4)
        self.assertTrue(first.released)
        self.assertEqual(len(core.factory.handles), 2)
        self.assertEqual(core.session.counters.rebuilds, 1)

        second = core.handle
        second.emitReady()
        core.scheduler.advance(10_000)

        self.assertEqual(second.plays, 0)
        self.assertFalse(second.muted)
        self.assertEqual(core.session.state, SessionState.READY)
        self.assertTrue(core.session.userStartedPlayback)

    def test_rebuild_budget_is_bounded(self):
        core = makeCore()
        core.manager.handleCreated.connect(lambda h: h.emitReady())
        exhausted = []
        core.session.recoveryExhausted.connect(lambda: exhausted.append(True))
        core.startPlaying(T1)

        for _ in range(3):
            handle = core.handle
            handle.emitState(HandleState.PLAYING)
            core.scheduler.advance(100)
            handle.position = 0.1
            handle.emitState(HandleState.PAUSED)
            handle.emitState(HandleState.PAUSED)
            core.scheduler.advance(200)

        self.assertEqual(len(core.factory.handles), 3)
        self.assertEqual(core.session.counters.rebuilds, 2)
        self.assertTrue(core.session.counters.exhausted)
        self.assertEqual(exhausted, [True])

        core.scheduler.advance(60_000)
        self.assertEqual(len(core.factory.handles), 3)
        self.assertEqual(core.factory.maxLive, 1)
        self.assertTrue(core.manager.hasHandle)

    def test_gesture_after_exhaustion_starts_a_new_cycle(self):
        core = makeCore(RecoveryPolicy(recreateThreshold=99))
        handle = core.startPlaying(T1)
        core.scheduler.advance(500)
        handle.position = 0.2
        handle.emitState(HandleState.PAUSED)
        core.scheduler.advance(20_000)
        self.assertTrue(core.session.counters.exhausted)
        self.assertFalse(core.engine.recover())

        core.transport.togglePlayPause()

        self.assertFalse(core.session.counters.exhausted)
        self.assertEqual(handle.plays, 6)
        handle.emitState(HandleState.PLAYING)
        self.assertTrue(core.session.isPlaying)


class TestStaleTimers(unittest.TestCase):
    def test_switch_track_cancels_pending_recovery(self):
        core = makeCore()
        first = core.startPlaying(T1)
        core.scheduler.advance(500)
        first.position = 0.2
        first.emitState(HandleState.PAUSED)
        self.assertEqual(core.engine.pendingTimers, 1)

        core.transport.switchTrack(T2)
        self.assertEqual(core.engine.pendingTimers, 0)

        core.scheduler.advance(10_000)
        self.assertEqual(first.plays, 1)
        self.assertEqual(core.handle.plays, 0)

    def test_retry_for_destroyed_handle_is_dropped(self):
        core = makeCore()
        first = core.startPlaying(T1)
        core.scheduler.advance(500)
        first.position = 0.2
        first.emitState(HandleState.PAUSED)

        # timers survive a teardown that bypasses the engine, the token check drops them
        core.manager.teardown()
        core.scheduler.advance(10_000)

        self.assertEqual(first.plays, 1)
        self.assertEqual(len(core.factory.handles), 1)


if __name__ == "__main__":
    unittest.main()
