"""
QuizzyBee quiz session core.
"""
from .models import Answer, Difficulty, Question, QuizMode, QuizSession, QuizSettings, TimerState
from .question_provider import QuestionProvider, QuestionProviderError
from .quiz_controller import QuizController, SessionNotFoundError, SessionState
from .quiz_engine import QuizEngine, QuizTimer, TimerStatus, fisher_yates_shuffle
from .session_store import InMemorySessionStore, JsonFileSessionStore, SessionStore

__version__ = "2.0.0"
