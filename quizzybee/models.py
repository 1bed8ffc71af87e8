"""
Core data models for the QuizzyBee quiz application.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


def _require_object(value: Any, label: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{label} must be an object, got {type(value).__name__}")
    return value


class QuizMode(str, Enum):
    """Feedback mode of a quiz session."""
    PRACTICE = "practice"
    TEST = "test"


class Difficulty(str, Enum):
    """Question difficulty levels."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Difficulty":
        """Map a raw difficulty string to a Difficulty, defaulting to UNKNOWN."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Question:
    """Represents a single multiple-choice question."""
    id: str
    question: str
    choices: List[str]
    correct: str
    category: str = ""
    difficulty: Difficulty = Difficulty.UNKNOWN
    time_limit: Optional[int] = None

    def __post_init__(self):
        if len(self.choices) < 2:
            raise ValueError(f"Question {self.id} needs at least two choices")
        if self.correct not in self.choices:
            raise ValueError(f"Question {self.id}: correct answer is not one of the choices")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"Question {self.id}: time limit must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """
        Build a Question from a raw record.

        Accepts both ``timeLimit`` and ``time_limit``. Missing ids are generated,
        duplicate choices are dropped keeping the first occurrence.

        Raises:
            ValueError: If the record is not a valid question
        """
        if not isinstance(data, dict):
            raise ValueError("Question record must be an object")

        text = data.get("question")
        correct = data.get("correct")
        raw_choices = data.get("choices")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Question record missing 'question' text")
        if not isinstance(correct, str):
            raise ValueError("Question record missing 'correct' answer")
        if not isinstance(raw_choices, list):
            raise ValueError("Question record 'choices' must be an array")

        choices: List[str] = []
        for choice in raw_choices:
            choice = str(choice)
            if choice not in choices:
                choices.append(choice)

        time_limit = data.get("timeLimit", data.get("time_limit"))
        if time_limit is not None:
            time_limit = int(time_limit)

        return cls(
            id=uuid4().hex if data.get("id") is None else str(data["id"]),
            question=text,
            choices=choices,
            correct=correct,
            category=str(data.get("category") or ""),
            difficulty=Difficulty.parse(data.get("difficulty")),
            time_limit=time_limit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "choices": list(self.choices),
            "correct": self.correct,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "timeLimit": self.time_limit,
        }


@dataclass
class Answer:
    """A recorded answer. ``selected`` is None for a timeout answer."""
    selected: Optional[str]
    correct: bool
    time_taken: int

    def to_dict(self) -> Dict[str, Any]:
        return {"selected": self.selected, "correct": self.correct, "timeTaken": self.time_taken}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        data = _require_object(data, "Answer")
        return cls(
            selected=data.get("selected"),
            correct=bool(data.get("correct", False)),
            time_taken=int(data.get("timeTaken", 0)),
        )


@dataclass
class TimerState:
    """Persisted view of the per-question countdown."""
    remaining: int = 0
    running: bool = False
    per_question_limit: int = 30

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remaining": self.remaining,
            "running": self.running,
            "perQuestionLimit": self.per_question_limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimerState":
        data = _require_object(data, "Timer state")
        return cls(
            remaining=int(data.get("remaining", 0)),
            running=bool(data.get("running", False)),
            per_question_limit=int(data.get("perQuestionLimit", 30)),
        )


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    mode: QuizMode = QuizMode.PRACTICE
    time_per_question: int = 30
    question_count: int = 10
    shuffle_questions: bool = True
    shuffle_choices: bool = True
    source: str = "local"
    category: Optional[int] = None
    difficulty: Optional[str] = None
    sound_enabled: bool = False


@dataclass
class QuizSession:
    """
    Authoritative record of an in-progress or finished quiz.

    All mutators keep ``current_index`` inside the question list and treat
    unknown question ids as no-ops.
    """
    mode: QuizMode
    questions: List[Question]
    current_index: int = 0
    answers: Dict[str, Answer] = field(default_factory=dict)
    review: Dict[str, bool] = field(default_factory=dict)
    display_choices_map: Dict[str, List[str]] = field(default_factory=dict)
    timer: TimerState = field(default_factory=TimerState)
    paused: bool = False
    started_at: int = 0
    finished_at: int = 0
    resume_pending: bool = False
    time_per_question: int = 30
    shuffle_questions: bool = True
    shuffle_choices: bool = True
    sound_enabled: bool = False
    source: str = "local"
    locked: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_finished(self) -> bool:
        return bool(self.finished_at)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def progress(self) -> float:
        """Fraction of the quiz reached, counting the current question."""
        if not self.questions:
            return 0.0
        return (self.current_index + 1) / len(self.questions)

    @property
    def timer_percentage(self) -> float:
        if self.timer.per_question_limit <= 0:
            return 0.0
        return self.timer.remaining / self.timer.per_question_limit * 100

    def question_by_id(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def set_answer(self, question_id: str, selected: str) -> Optional[Answer]:
        """Record (or overwrite) the answer for a question."""
        question = self.question_by_id(question_id)
        if question is None:
            return None
        answer = Answer(
            selected=selected,
            correct=selected == question.correct,
            time_taken=max(0, self.timer.per_question_limit - self.timer.remaining),
        )
        self.answers[question_id] = answer
        return answer

    def toggle_review(self, question_id: str) -> Optional[bool]:
        if self.question_by_id(question_id) is None:
            return None
        flagged = not self.review.get(question_id, False)
        self.review[question_id] = flagged
        return flagged

    def advance(self, delta: int) -> bool:
        """
        Move ``current_index`` by ``delta``.

        Returns:
            False when the move would leave the question list (no-op), True otherwise
        """
        target = self.current_index + delta
        if delta == 0 or target < 0 or target > len(self.questions) - 1:
            return False
        self.current_index = target
        return True

    def record_timeout_answer(self, question_id: str) -> Optional[Answer]:
        if self.question_by_id(question_id) is None:
            return None
        if question_id not in self.answers:
            self.answers[question_id] = Answer(
                selected=None,
                correct=False,
                time_taken=self.timer.per_question_limit,
            )
        return self.answers[question_id]

    def lock_answer(self, question_id: str) -> None:
        if question_id in self.answers and question_id not in self.locked:
            self.locked.append(question_id)

    def is_locked(self, question_id: str) -> bool:
        return question_id in self.locked

    def to_dict(self) -> Dict[str, Any]:
        """Serialize every field into the persisted session layout."""
        return {
            "mode": self.mode.value,
            "questions": [q.to_dict() for q in self.questions],
            "currentIndex": self.current_index,
            "answers": {qid: a.to_dict() for qid, a in self.answers.items()},
            "review": dict(self.review),
            "displayChoicesMap": {qid: list(c) for qid, c in self.display_choices_map.items()},
            "timer": self.timer.to_dict(),
            "paused": self.paused,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "resumePending": self.resume_pending,
            "timePerQuestion": self.time_per_question,
            "shuffleQuestions": self.shuffle_questions,
            "shuffleChoices": self.shuffle_choices,
            "soundEnabled": self.sound_enabled,
            "source": self.source,
            "locked": list(self.locked),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizSession":
        """
        Rebuild a session from the persisted layout.

        Raises:
            ValueError: If the payload is malformed
            KeyError: If a required field is missing
        """
        data = _require_object(data, "Session state")
        raw_questions = data["questions"]
        if not isinstance(raw_questions, list):
            raise ValueError("Session 'questions' must be an array")
        questions = [Question.from_dict(q) for q in raw_questions]
        answers = _require_object(data.get("answers", {}), "Session 'answers'")
        review = _require_object(data.get("review", {}), "Session 'review'")
        display_choices = _require_object(data.get("displayChoicesMap", {}), "Session 'displayChoicesMap'")
        session = cls(
            mode=QuizMode(data["mode"]),
            questions=questions,
            current_index=int(data.get("currentIndex", 0)),
            answers={qid: Answer.from_dict(a) for qid, a in answers.items()},
            review={qid: bool(flag) for qid, flag in review.items()},
            display_choices_map={
                qid: list(choices) for qid, choices in display_choices.items()
            },
            timer=TimerState.from_dict(data.get("timer", {})),
            paused=bool(data.get("paused", False)),
            started_at=int(data.get("startedAt", 0)),
            finished_at=int(data.get("finishedAt", 0) or 0),
            resume_pending=bool(data.get("resumePending", False)),
            time_per_question=int(data.get("timePerQuestion", 30)),
            shuffle_questions=bool(data.get("shuffleQuestions", True)),
            shuffle_choices=bool(data.get("shuffleChoices", True)),
            sound_enabled=bool(data.get("soundEnabled", False)),
            source=str(data.get("source", "local")),
            locked=list(data.get("locked", [])),
        )
        if questions and not 0 <= session.current_index < len(questions):
            raise ValueError(f"Saved index {session.current_index} out of range")
        return session
