"""
Unit tests for the question countdown timer lifecycle.
"""
import asyncio
import unittest
from unittest.mock import Mock

from quizzybee.quiz_engine import QuizTimer, TimerStatus


class TestQuizTimerStateMachine(unittest.TestCase):
    """Test cases for timer state transitions driven by manual ticks."""

    def setUp(self):
        self.on_tick = Mock()
        self.on_expire = Mock()
        self.timer = QuizTimer(on_tick=self.on_tick, on_expire=self.on_expire, auto_tick=False)

    def test_initial_state_is_idle(self):
        self.assertEqual(self.timer.status, TimerStatus.IDLE)
        self.assertEqual(self.timer.remaining, 0)

    def test_start_sets_remaining_and_runs(self):
        self.timer.start(30)
        self.assertEqual(self.timer.status, TimerStatus.RUNNING)
        self.assertEqual(self.timer.remaining, 30)
        self.assertEqual(self.timer.per_question_limit, 30)

    def test_tick_decrements_and_notifies(self):
        self.timer.start(30)
        self.timer.tick()
        self.assertEqual(self.timer.remaining, 29)
        self.on_tick.assert_called_once_with(29)

    def test_expiry_at_zero(self):
        self.timer.start(3)
        for _ in range(3):
            self.timer.tick()
        self.assertEqual(self.timer.status, TimerStatus.EXPIRED)
        self.assertEqual(self.timer.remaining, 0)
        self.on_expire.assert_called_once()

    def test_ticks_after_expiry_are_ignored(self):
        self.timer.start(1)
        self.timer.tick()
        self.timer.tick()
        self.assertEqual(self.timer.remaining, 0)
        self.on_expire.assert_called_once()

    def test_pause_freezes_remaining(self):
        self.timer.start(30)
        self.timer.tick()
        self.assertTrue(self.timer.pause())
        self.timer.tick()
        self.timer.tick()
        self.assertEqual(self.timer.remaining, 29)
        self.assertEqual(self.timer.status, TimerStatus.PAUSED)

    def test_pause_twice_keeps_remaining(self):
        self.timer.start(30)
        self.timer.tick()
        self.timer.pause()
        remaining = self.timer.remaining
        self.assertFalse(self.timer.pause())
        self.assertEqual(self.timer.remaining, remaining)

    def test_resume_continues_from_frozen_value(self):
        self.timer.start(30)
        self.timer.tick()
        self.timer.pause()
        self.assertTrue(self.timer.resume())
        self.assertEqual(self.timer.remaining, 29)
        self.timer.tick()
        self.assertEqual(self.timer.remaining, 28)

    def test_resume_when_running_is_noop(self):
        self.timer.start(30)
        self.timer.tick()
        self.assertFalse(self.timer.resume())
        self.assertEqual(self.timer.remaining, 29)

    def test_stop_returns_to_idle(self):
        self.timer.start(30)
        self.timer.stop()
        self.assertEqual(self.timer.status, TimerStatus.IDLE)
        self.timer.tick()
        self.on_tick.assert_not_called()

    def test_restart_after_expiry(self):
        self.timer.start(1)
        self.timer.tick()
        self.timer.start(10)
        self.assertEqual(self.timer.status, TimerStatus.RUNNING)
        self.assertEqual(self.timer.remaining, 10)

    def test_percentage_uses_full_limit(self):
        self.timer.start(15, per_question_limit=30)
        self.assertEqual(self.timer.percentage, 50.0)

    def test_start_without_event_loop_schedules_nothing(self):
        timer = QuizTimer()
        timer.start(5)
        self.assertFalse(timer.has_pending_task)
        self.assertTrue(timer.is_running)


class TestQuizTimerAsyncTicking(unittest.IsolatedAsyncioTestCase):
    """Test cases for the asyncio tick task."""

    async def test_countdown_expires_on_its_own(self):
        expired = asyncio.Event()
        timer = QuizTimer(on_expire=expired.set, interval=0.01)
        timer.start(3)
        await asyncio.wait_for(expired.wait(), timeout=2)
        self.assertEqual(timer.status, TimerStatus.EXPIRED)
        self.assertEqual(timer.remaining, 0)

    async def test_restart_cancels_previous_task(self):
        timer = QuizTimer(interval=0.05)
        timer.start(30)
        first_task = timer._task
        timer.start(30)
        await asyncio.sleep(0)
        self.assertTrue(first_task.cancelled() or first_task.done())
        self.assertIsNot(timer._task, first_task)
        timer.stop()

    async def test_pause_cancels_ticking(self):
        timer = QuizTimer(interval=0.01)
        timer.start(100)
        await asyncio.sleep(0.05)
        timer.pause()
        frozen = timer.remaining
        await asyncio.sleep(0.05)
        self.assertEqual(timer.remaining, frozen)
        self.assertFalse(timer.has_pending_task)

    async def test_expiry_callback_can_start_next_countdown(self):
        timer = QuizTimer(interval=0.01)
        starts = []

        def on_expire():
            starts.append(timer.remaining)
            if len(starts) == 1:
                timer.start(2)

        timer.on_expire = on_expire
        timer.start(2)
        await asyncio.sleep(0.2)
        self.assertEqual(len(starts), 2)
        self.assertEqual(timer.status, TimerStatus.EXPIRED)


if __name__ == '__main__':
    unittest.main()
