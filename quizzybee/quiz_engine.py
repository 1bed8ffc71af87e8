"""
Quiz engine core logic for QuizzyBee.
Handles question selection, ordering, and the per-question countdown timer.
"""
import random
import asyncio
import logging
import time
from enum import Enum
from typing import List, Optional, Callable, Any, TypeVar

from .models import Question, QuizSettings

# Set up logger for timer operations
logger = logging.getLogger(__name__)

T = TypeVar("T")


def fisher_yates_shuffle(items: List[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a shuffled copy of ``items`` using an unbiased Fisher-Yates pass.

    Args:
        items: Items to shuffle (left untouched)
        rng: Random source, the module-level generator when omitted
    """
    randint = (rng or random).randint
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(timer_name: str, duration: int) -> None:
        """Log timer countdown start."""
        logger.info(
            f"Timer lifecycle: COUNTDOWN_START - {timer_name}, Duration {duration}s",
            extra={
                'event_type': 'timer_countdown_start',
                'timer_name': timer_name,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(timer_name: str, from_state: str, to_state: str, reason: str = None) -> None:
        """Log timer state transitions."""
        logger.debug(
            f"Timer lifecycle: STATE_TRANSITION - {timer_name}: {from_state} -> {to_state}"
            + (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'timer_name': timer_name,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_expired(timer_name: str, duration: int) -> None:
        """Log natural expiry of a countdown."""
        logger.info(
            f"Timer lifecycle: EXPIRED - {timer_name} after {duration}s",
            extra={
                'event_type': 'timer_expired',
                'timer_name': timer_name,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(timer_name: str, error_type: str, error_message: str, context: str = None) -> None:
        """Log timer errors with detailed context."""
        logger.error(
            f"Timer lifecycle: ERROR - {timer_name}, Type: {error_type}, Message: {error_message}",
            extra={
                'event_type': 'timer_error',
                'timer_name': timer_name,
                'error_type': error_type,
                'error_message': error_message,
                'context': context,
                'timestamp': time.time()
            }
        )


class TimerStatus(Enum):
    """States of the question countdown."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


class QuizTimer:
    """
    Manages the countdown for the current question.

    A single asyncio task ticks once per second while the timer is running.
    The task is always cancelled before a new countdown starts and whenever the
    timer is paused or stopped, so at most one tick source exists. When no event
    loop is running, or ``auto_tick`` is False, no task is scheduled and the
    owner drives the countdown by calling ``tick()``.
    """

    def __init__(
        self,
        on_tick: Optional[Callable[[int], Any]] = None,
        on_expire: Optional[Callable[[], Any]] = None,
        auto_tick: bool = True,
        interval: float = 1.0,
        name: str = "question-timer"
    ):
        """Initialize the timer."""
        self.on_tick = on_tick
        self.on_expire = on_expire
        self._auto_tick = auto_tick
        self._interval = interval
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._status = TimerStatus.IDLE
        self._remaining = 0
        self._per_question_limit = 0

    def start(self, seconds: int, per_question_limit: Optional[int] = None) -> None:
        """
        Start a countdown of ``seconds``.

        Args:
            seconds: Initial remaining time
            per_question_limit: Full limit of the question, used for percentages
                (defaults to ``seconds``)
        """
        if self._status in (TimerStatus.RUNNING, TimerStatus.PAUSED):
            self.stop()

        self._remaining = max(0, int(seconds))
        self._per_question_limit = int(per_question_limit if per_question_limit is not None else seconds)
        self._set_status(TimerStatus.RUNNING, "start requested")
        TimerLifecycleLogger.log_timer_start(self._name, self._remaining)

        if self._remaining <= 0:
            self._expire()
            return
        self._schedule()

    def pause(self) -> bool:
        """Freeze the countdown. Returns False when the timer was not running."""
        if self._status is not TimerStatus.RUNNING:
            return False
        self._cancel_task()
        self._set_status(TimerStatus.PAUSED, "pause requested")
        return True

    def resume(self) -> bool:
        """Continue a paused countdown from the frozen remaining time."""
        if self._status is not TimerStatus.PAUSED:
            return False
        self._set_status(TimerStatus.RUNNING, "resume requested")
        self._schedule()
        return True

    def stop(self) -> None:
        """Cancel ticking and return to idle."""
        self._cancel_task()
        if self._status in (TimerStatus.RUNNING, TimerStatus.PAUSED):
            self._set_status(TimerStatus.IDLE, "stop requested")

    def tick(self) -> None:
        """Advance the countdown by one second."""
        if self._status is not TimerStatus.RUNNING:
            return
        self._remaining -= 1
        if self._remaining <= 0:
            self._remaining = 0
            self._notify_tick()
            self._expire()
        else:
            self._notify_tick()

    @property
    def status(self) -> TimerStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is TimerStatus.RUNNING

    @property
    def is_paused(self) -> bool:
        return self._status is TimerStatus.PAUSED

    @property
    def remaining(self) -> int:
        """Get remaining time in seconds."""
        return self._remaining

    @property
    def per_question_limit(self) -> int:
        return self._per_question_limit

    @property
    def percentage(self) -> float:
        if self._per_question_limit <= 0:
            return 0.0
        return self._remaining / self._per_question_limit * 100

    @property
    def has_pending_task(self) -> bool:
        return self._task is not None and not self._task.done()

    def _expire(self) -> None:
        self._cancel_task()
        self._set_status(TimerStatus.EXPIRED, "remaining reached zero")
        TimerLifecycleLogger.log_timer_expired(self._name, self._per_question_limit)
        if self.on_expire:
            self.on_expire()

    def _notify_tick(self) -> None:
        if self.on_tick:
            self.on_tick(self._remaining)

    def _schedule(self) -> None:
        self._cancel_task()
        if not self._auto_tick:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop for {self._name}; ticks must be driven manually")
            return
        self._task = loop.create_task(self._run())

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # Expiry fires from inside the task; it finishes on its own.
        if task is not current:
            task.cancel()

    async def _run(self) -> None:
        try:
            while self._status is TimerStatus.RUNNING and self._task is asyncio.current_task():
                await asyncio.sleep(self._interval)
                self.tick()
        except asyncio.CancelledError:
            TimerLifecycleLogger.log_timer_state_transition(self._name, "ticking", "cancelled", "task cancelled")
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(self._name, "countdown_execution_error", str(e), "_run")
            raise

    def _set_status(self, status: TimerStatus, reason: str) -> None:
        TimerLifecycleLogger.log_timer_state_transition(self._name, self._status.value, status.value, reason)
        self._status = status


class QuizEngine:
    """Question selection and choice ordering."""

    def __init__(self, rng: Optional[random.Random] = None):
        """Initialize the quiz engine with an optional seeded random source."""
        self.rng = rng or random.Random()

    def select_questions(self, questions: List[Question], settings: QuizSettings) -> List[Question]:
        """
        Select and order questions based on quiz settings.

        Args:
            questions: List of available questions
            settings: Quiz configuration settings

        Returns:
            List of selected and ordered questions

        Raises:
            ValueError: If questions list is empty
        """
        if not questions:
            raise ValueError("Cannot select questions from empty list")

        selected_questions = list(questions)

        if settings.shuffle_questions:
            selected_questions = self.shuffle_questions(selected_questions)

        return self.limit_question_count(selected_questions, settings.question_count)

    def shuffle_questions(self, questions: List[Question]) -> List[Question]:
        """Return a new list with questions in random order."""
        return fisher_yates_shuffle(questions, self.rng)

    def limit_question_count(self, questions: List[Question], count: Optional[int]) -> List[Question]:
        """
        Limit the number of questions to the specified count.

        Note:
            If count is None or greater than available questions, returns all questions.
            If count is less than 1, returns empty list.
        """
        if count is None:
            return list(questions)
        if count < 1:
            return []
        return questions[:count]

    def order_choices(self, question: Question, shuffle: bool) -> List[str]:
        """Display order for a question's choices."""
        if shuffle:
            return fisher_yates_shuffle(question.choices, self.rng)
        return list(question.choices)
