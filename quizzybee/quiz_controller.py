"""
Quiz session controller for QuizzyBee.
Orchestrates the question loop: sequencing, answer capture, the question timer,
pause/resume, review flags, persistence and results.
"""
import logging
import math
import random
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .models import Answer, Question, QuizMode, QuizSession, QuizSettings, TimerState
from .presenter import QuizPresenter
from .question_provider import QuestionProvider, QuestionProviderError
from .quiz_engine import QuizEngine, QuizTimer
from .session_store import SessionStore

APP_NAME = "QuizzyBee"
EXPORT_VERSION = "2.0"
CELEBRATION_ACCURACY = 80


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    FINISHED = "finished"


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when attempting to operate on a non-existent session."""
    pass


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class QuizController:
    """
    Drives the single active quiz session.

    Presentation layers call the operations below and read state through the
    accessors; the controller pushes rendering requests to its presenter and
    saves the session to the store after every state-affecting operation.
    """

    def __init__(
        self,
        provider: QuestionProvider,
        store: SessionStore,
        presenter: Optional[QuizPresenter] = None,
        timer: Optional[QuizTimer] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            provider: Source of question lists
            store: Durable slot for the session
            presenter: Rendering collaborator, a logging-only presenter when omitted
            timer: Question countdown, an asyncio-driven timer when omitted
            rng: Random source for question and choice shuffling
            clock: Returns the current time in epoch milliseconds
        """
        self.logger = logging.getLogger(__name__)
        self.provider = provider
        self.store = store
        self.presenter = presenter or QuizPresenter()
        self.quiz_engine = QuizEngine(rng)
        self.timer = timer or QuizTimer()
        self.timer.on_tick = self._on_timer_tick
        self.timer.on_expire = self.on_timer_expired
        self._clock = clock or _epoch_millis
        self._session: Optional[QuizSession] = None

    # ------------------------------------------------------------------ lifecycle

    async def start_session(self, settings: QuizSettings) -> QuizSession:
        """
        Build a fresh session from the configured question source and present question 1.

        Provider failures fall back to the local question list with a warning.
        """
        self.timer.stop()

        questions = await self._load_questions(settings)
        selected = self.quiz_engine.select_questions(questions, settings)

        self._session = QuizSession(
            mode=settings.mode,
            questions=selected,
            timer=TimerState(per_question_limit=settings.time_per_question),
            started_at=self._clock(),
            time_per_question=settings.time_per_question,
            shuffle_questions=settings.shuffle_questions,
            shuffle_choices=settings.shuffle_choices,
            sound_enabled=settings.sound_enabled,
            source=settings.source,
        )

        self.logger.info(
            f"Started {settings.mode.value} session with {len(selected)} questions from '{settings.source}'",
            extra={
                'event_type': 'session_started',
                'mode': settings.mode.value,
                'question_count': len(selected),
                'source': settings.source,
                'timestamp': time.time()
            }
        )

        self._render_current()
        self._persist()
        self.presenter.announce(
            f"Quiz started with {len(selected)} questions in {settings.mode.value} mode"
        )
        return self._session

    async def _load_questions(self, settings: QuizSettings) -> List[Question]:
        if settings.source == "opentdb":
            try:
                questions = await self.provider.fetch_remote(
                    settings.question_count,
                    settings.category,
                    settings.difficulty
                )
                if questions:
                    return questions
                raise QuestionProviderError("Trivia API returned no questions")
            except QuestionProviderError as e:
                self.logger.warning(
                    f"Remote question fetch failed, using local questions: {e}",
                    extra={'event_type': 'provider_fallback', 'timestamp': time.time()}
                )
                self.presenter.announce("Error loading questions. Using fallback questions.")
        return self.provider.fetch_local()

    async def resume_session(self) -> bool:
        """
        Restore the persisted session and continue where it left off.

        Returns:
            False when there is no saved session
        """
        saved = self.store.load()
        if saved is None:
            self.logger.info("No saved session to resume")
            self.presenter.announce("No saved session found")
            return False

        self.timer.stop()
        self._session = saved

        if saved.is_finished:
            self.presenter.render_summary(self.compute_summary())
        else:
            saved.resume_pending = True
            self._render_current()

        self._persist()
        self.logger.info(
            f"Resumed session at question {saved.current_index + 1}/{saved.total}",
            extra={
                'event_type': 'session_resumed',
                'current_index': saved.current_index,
                'remaining': saved.timer.remaining,
                'timestamp': time.time()
            }
        )
        self.presenter.announce("Session resumed successfully")
        return True

    def submit(self) -> Optional[Dict[str, Any]]:
        """Submit a test-mode quiz. Practice sessions are ended with ``end()``."""
        session = self._require_session()
        if session.mode is not QuizMode.TEST:
            self.logger.warning("submit() is only available in test mode")
            return None
        return self.end()

    def end(self) -> Dict[str, Any]:
        """
        Finish the session and compute its summary.

        The finished session stays stored for export until ``new_quiz()``.
        """
        session = self._require_session()
        if session.is_finished:
            return self.compute_summary()

        self.timer.stop()
        self._sync_timer()
        session.finished_at = self._clock()

        summary = self.compute_summary()
        self.presenter.render_summary(summary)
        if summary['accuracy'] >= CELEBRATION_ACCURACY:
            self.presenter.celebrate()
            if session.sound_enabled:
                self.presenter.play_sound("complete")

        self._persist()
        self.logger.info(
            f"Session finished: {summary['correct']}/{summary['total']} correct ({summary['accuracy']}%)",
            extra={
                'event_type': 'session_finished',
                'correct': summary['correct'],
                'total': summary['total'],
                'accuracy': summary['accuracy'],
                'timestamp': time.time()
            }
        )
        return summary

    def new_quiz(self) -> None:
        """Discard the current session, finished or not, and clear the store."""
        self.timer.stop()
        self.store.clear()
        self._session = None
        self.logger.info("Session cleared", extra={'event_type': 'session_cleared', 'timestamp': time.time()})

    restart = new_quiz

    # ------------------------------------------------------------------ question loop

    def select_choice(self, value: str) -> Optional[Answer]:
        """
        Record ``value`` as the answer to the current question.

        Re-selection is allowed until the question is left; in test mode the
        answer is locked once the user navigates away.
        """
        session = self._active_session()
        if session is None or session.paused:
            return None
        question = session.current_question
        if value not in question.choices:
            self.logger.warning(f"Ignoring unknown choice '{value}' for question {question.id}")
            return None
        if session.is_locked(question.id):
            self.logger.info(f"Answer for question {question.id} is locked")
            return None

        self._sync_timer()
        answer = session.set_answer(question.id, value)

        if session.mode is QuizMode.PRACTICE:
            self.presenter.show_feedback(question.id, answer.correct)
            if session.sound_enabled:
                self.presenter.play_sound("correct" if answer.correct else "incorrect")

        self._persist()
        return answer

    def next(self) -> bool:
        return self._move_by(1)

    def prev(self) -> bool:
        return self._move_by(-1)

    def skip(self) -> bool:
        """Same as ``next()``; an unanswered question stays unanswered."""
        return self._move_by(1)

    def jump_to(self, index: int) -> bool:
        """Navigate directly to a question (0-based), e.g. from the question palette."""
        session = self._active_session()
        if session is None:
            return False
        return self._move_by(index - session.current_index)

    def toggle_review(self) -> Optional[bool]:
        session = self._active_session()
        if session is None:
            return None
        flagged = session.toggle_review(session.current_question.id)
        self._persist()
        return flagged

    def pause(self) -> bool:
        """Pause the session; the countdown freezes without resetting."""
        session = self._active_session()
        if session is None:
            self.logger.warning("Cannot pause: no active session")
            return False
        if session.paused:
            self.logger.info("Session is already paused")
            return True

        session.paused = True
        timer_paused = self.timer.pause()
        self._sync_timer()
        self._persist()
        self.logger.info(
            f"Paused session, timer paused: {timer_paused}",
            extra={
                'event_type': 'session_paused',
                'timer_paused': timer_paused,
                'remaining': session.timer.remaining,
                'timestamp': time.time()
            }
        )
        return True

    def resume(self) -> bool:
        """Resume a paused session from the frozen remaining time."""
        session = self._active_session()
        if session is None or not session.paused:
            return False

        session.paused = False
        if not self.timer.resume() and session.timer.remaining > 0 and not self.timer.is_running:
            self.timer.start(session.timer.remaining, session.timer.per_question_limit)
        self._sync_timer()
        self._persist()
        self.logger.info(
            "Resumed session",
            extra={
                'event_type': 'session_unpaused',
                'remaining': session.timer.remaining,
                'timestamp': time.time()
            }
        )
        return True

    def toggle_pause(self) -> bool:
        session = self._active_session()
        if session is None:
            return False
        return self.resume() if session.paused else self.pause()

    def on_timer_expired(self) -> None:
        """Record a timeout answer and move on; the last question waits for submission."""
        session = self._active_session()
        if session is None:
            return
        self._sync_timer()
        question = session.current_question
        session.record_timeout_answer(question.id)
        self.logger.info(
            f"Time expired on question {session.current_index + 1}/{session.total}",
            extra={
                'event_type': 'question_timeout',
                'question_id': question.id,
                'timestamp': time.time()
            }
        )

        if session.current_index < session.total - 1:
            self.presenter.announce("Time is up. Moving to next question.")
            self._move_by(1)
        else:
            self.presenter.announce("Time is up. Submit the quiz when you are ready.")
            self._persist()

    def _move_by(self, delta: int) -> bool:
        session = self._active_session()
        if session is None or session.paused:
            return False
        leaving = session.current_question
        if not session.advance(delta):
            return False
        if session.mode is QuizMode.TEST:
            session.lock_answer(leaving.id)
        self._render_current()
        self._persist()
        return True

    def _render_current(self) -> None:
        """Present the current question and (re)start its countdown."""
        session = self._session
        question = session.current_question
        if question is None:
            return

        if question.id not in session.display_choices_map:
            session.display_choices_map[question.id] = self.quiz_engine.order_choices(
                question, session.shuffle_choices
            )
        self.presenter.render_question(self.question_view())

        limit = self.time_limit_for(question)
        if session.resume_pending and session.timer.remaining > 0:
            self.timer.start(session.timer.remaining, limit)
            session.resume_pending = False
        else:
            session.resume_pending = False
            self.timer.start(limit)
        if session.paused:
            self.timer.pause()
        self._sync_timer()

    def _on_timer_tick(self, remaining: int) -> None:
        if self._session is None:
            return
        self._sync_timer()
        self._persist()
        self.presenter.render_timer(remaining, self.timer.percentage)

    def _sync_timer(self) -> None:
        session = self._session
        if session is None:
            return
        if self.timer.per_question_limit:
            session.timer.remaining = self.timer.remaining
            session.timer.per_question_limit = self.timer.per_question_limit
        session.timer.running = self.timer.is_running

    def _persist(self) -> None:
        if self._session is not None:
            self.store.save(self._session)

    def _active_session(self) -> Optional[QuizSession]:
        session = self._session
        if session is None or session.is_finished or not session.questions:
            return None
        return session

    def _require_session(self) -> QuizSession:
        if self._session is None:
            raise SessionNotFoundError("No quiz session")
        return self._session

    # ------------------------------------------------------------------ results

    def compute_summary(self) -> Dict[str, Any]:
        """
        Classify every question and compute accuracy and total time.

        Raises:
            SessionNotFoundError: If there is no session
        """
        session = self._require_session()
        correct = incorrect = unanswered = 0
        breakdown = []

        for index, question in enumerate(session.questions):
            answer = session.answers.get(question.id)
            if answer is not None and answer.correct:
                status = "correct"
                correct += 1
            elif answer is not None and answer.selected is not None:
                status = "incorrect"
                incorrect += 1
            else:
                status = "unanswered"
                unanswered += 1
            breakdown.append({
                'number': index + 1,
                'id': question.id,
                'question': question.question,
                'status': status,
                'selected': answer.selected if answer else None,
                'correct_answer': question.correct,
                'time_taken': answer.time_taken if answer else None,
                'flagged': session.review.get(question.id, False)
            })

        total = session.total
        return {
            'correct': correct,
            'incorrect': incorrect,
            'unanswered': unanswered,
            'total': total,
            'accuracy': round_half_up(correct / total * 100) if total else 0,
            'total_time': sum(a.time_taken for a in session.answers.values()),
            'breakdown': breakdown
        }

    def export_results(self) -> Dict[str, Any]:
        """Self-contained results payload for downloading or downstream tooling."""
        session = self._require_session()
        summary = self.compute_summary()
        payload = {
            'meta': {
                'app': APP_NAME,
                'version': EXPORT_VERSION,
                'startedAt': session.started_at,
                'finishedAt': session.finished_at or self._clock(),
                'mode': session.mode.value,
                'timePerQuestion': session.time_per_question,
                'totalQuestions': session.total
            },
            'questions': [
                {
                    'id': q.id,
                    'question': q.question,
                    'correct': q.correct,
                    'category': q.category,
                    'difficulty': q.difficulty.value
                }
                for q in session.questions
            ],
            'answers': {qid: answer.to_dict() for qid, answer in session.answers.items()},
            'summary': {
                'correct': summary['correct'],
                'total': summary['total'],
                'accuracy': summary['accuracy'],
                'totalTime': summary['total_time']
            }
        }
        self.presenter.announce("Results exported successfully")
        return payload

    def export_filename(self) -> str:
        stamp = datetime.fromtimestamp(self._clock() / 1000, tz=timezone.utc)
        return f"quizzybee-results-{stamp.strftime('%Y-%m-%dT%H:%M:%S')}.json"

    # ------------------------------------------------------------------ read accessors

    @property
    def session(self) -> Optional[QuizSession]:
        return self._session

    @property
    def state(self) -> SessionState:
        session = self._session
        if session is None:
            return SessionState.NOT_STARTED
        if session.is_finished:
            return SessionState.FINISHED
        if session.paused:
            return SessionState.PAUSED
        return SessionState.IN_PROGRESS

    @property
    def current_question(self) -> Optional[Question]:
        return self._session.current_question if self._session else None

    @property
    def current_index(self) -> int:
        return self._session.current_index if self._session else 0

    @property
    def progress(self) -> float:
        return self._session.progress if self._session else 0.0

    @property
    def timer_remaining(self) -> int:
        return self._session.timer.remaining if self._session else 0

    @property
    def timer_percentage(self) -> float:
        return self._session.timer_percentage if self._session else 0.0

    @property
    def review_flags(self) -> Dict[str, bool]:
        return dict(self._session.review) if self._session else {}

    @property
    def summary(self) -> Optional[Dict[str, Any]]:
        """Summary payload of a finished session."""
        if self._session is None or not self._session.is_finished:
            return None
        return self.compute_summary()

    def get_answer(self, question_id: str) -> Optional[Answer]:
        return self._session.answers.get(question_id) if self._session else None

    def time_limit_for(self, question: Question) -> int:
        if question.time_limit:
            return question.time_limit
        return self._session.time_per_question if self._session else 30

    def display_choices(self) -> List[str]:
        question = self.current_question
        if question is None:
            return []
        return list(self._session.display_choices_map.get(question.id, question.choices))

    def question_view(self) -> Dict[str, Any]:
        """Read-only snapshot of the current question for rendering."""
        session = self._session
        question = self.current_question
        if question is None:
            return {}
        answer = session.answers.get(question.id)
        selected = answer.selected if answer else None
        return {
            'number': session.current_index + 1,
            'total': session.total,
            'id': question.id,
            'question': question.question,
            'category': question.category or "General Knowledge",
            'difficulty': question.difficulty.value,
            'choices': self.display_choices(),
            'selected': selected,
            'correct_answer': question.correct if session.mode is QuizMode.PRACTICE and selected else None,
            'mode': session.mode.value,
            'flagged': session.review.get(question.id, False),
            'locked': session.is_locked(question.id),
            'progress': session.progress
        }

    def palette(self) -> List[Dict[str, Any]]:
        """Per-question status markers: attempted, flagged for review, current."""
        session = self._session
        if session is None:
            return []
        return [
            {
                'number': index + 1,
                'id': question.id,
                'attempted': question.id in session.answers,
                'review': session.review.get(question.id, False),
                'current': index == session.current_index
            }
            for index, question in enumerate(session.questions)
        ]
