"""
Presentation port driven by the quiz controller.
"""
import logging
from typing import Any, Dict


class QuizPresenter:
    """
    Receives rendering requests from the controller.

    The base implementation only logs; front ends override the hooks they need.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def announce(self, message: str) -> None:
        """Accessibility-style notification (start, timeout, resume, export)."""
        self.logger.info(f"Announcement: {message}")

    def render_question(self, view: Dict[str, Any]) -> None:
        pass

    def render_timer(self, remaining: int, percentage: float) -> None:
        pass

    def show_feedback(self, question_id: str, correct: bool) -> None:
        pass

    def play_sound(self, kind: str) -> None:
        pass

    def render_summary(self, summary: Dict[str, Any]) -> None:
        pass

    def celebrate(self) -> None:
        pass
