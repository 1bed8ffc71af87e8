"""
Configuration manager for QuizzyBee quiz settings.
"""
import logging
from dataclasses import replace
from typing import Optional, Dict, Any, List

from .models import QuizMode, QuizSettings


class ConfigManager:
    """Manages quiz configuration settings and their validation."""

    # Default configuration values
    DEFAULT_MODE = QuizMode.PRACTICE
    DEFAULT_TIME_PER_QUESTION = 30
    DEFAULT_QUESTION_COUNT = 10
    DEFAULT_SOURCE = "local"

    # Validation limits
    MIN_TIME_PER_QUESTION = 5
    MAX_TIME_PER_QUESTION = 300  # 5 minutes
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50  # Open Trivia DB limit per request

    VALID_SOURCES = ("local", "opentdb")
    VALID_DIFFICULTIES = ("easy", "medium", "hard")

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()

    def get_quiz_settings(self) -> QuizSettings:
        """Get a copy of the current quiz settings."""
        return replace(self._settings)

    def _ok(self, message: str, user_message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {'success': True, 'message': message, 'user_message': user_message}

    def _fail(self, error: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error)
        return {'success': False, 'error': error, 'user_message': user_message}

    def set_mode(self, mode: Any) -> Dict[str, Any]:
        """
        Set the quiz mode.

        Args:
            mode: 'practice' or 'test' (or a QuizMode)

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            parsed = QuizMode(mode)
        except ValueError:
            return self._fail(
                f"Invalid quiz mode: {mode}",
                "❌ Mode must be 'practice' or 'test'"
            )
        self._settings.mode = parsed
        return self._ok(f"Quiz mode set to {parsed.value}", f"✅ Quiz mode set to {parsed.value}")

    def set_time_per_question(self, seconds: int) -> Dict[str, Any]:
        """Set the countdown length for each question."""
        if not isinstance(seconds, int) or isinstance(seconds, bool):
            return self._fail(
                f"Time per question must be an integer, got {type(seconds).__name__}",
                f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            )
        if seconds < self.MIN_TIME_PER_QUESTION:
            return self._fail(
                f"Time per question must be at least {self.MIN_TIME_PER_QUESTION} seconds",
                f"❌ Timer too short: Minimum is {self.MIN_TIME_PER_QUESTION} seconds"
            )
        if seconds > self.MAX_TIME_PER_QUESTION:
            return self._fail(
                f"Time per question cannot exceed {self.MAX_TIME_PER_QUESTION} seconds",
                f"❌ Timer too long: Maximum is {self.MAX_TIME_PER_QUESTION} seconds"
            )
        self._settings.time_per_question = seconds
        return self._ok(f"Time per question set to {seconds} seconds", f"✅ Timer set to {seconds} seconds")

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """Set the number of questions for the next quiz."""
        if not isinstance(count, int) or isinstance(count, bool):
            return self._fail(
                f"Question count must be an integer, got {type(count).__name__}",
                f"❌ Invalid input: Expected a number, got {type(count).__name__}"
            )
        if count < self.MIN_QUESTION_COUNT:
            return self._fail(
                f"Question count must be at least {self.MIN_QUESTION_COUNT}",
                f"❌ Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            )
        if count > self.MAX_QUESTION_COUNT:
            return self._fail(
                f"Question count cannot exceed {self.MAX_QUESTION_COUNT}",
                f"❌ Too many questions: Maximum is {self.MAX_QUESTION_COUNT}"
            )
        self._settings.question_count = count
        return self._ok(f"Question count set to {count}", f"✅ Question count set to {count}")

    def _set_flag(self, attribute: str, label: str, value: Any) -> Dict[str, Any]:
        if not isinstance(value, bool):
            return self._fail(
                f"{label} must be a boolean, got {type(value).__name__}",
                f"❌ Invalid input: Expected true/false, got {type(value).__name__}"
            )
        setattr(self._settings, attribute, value)
        state = "enabled" if value else "disabled"
        return self._ok(f"{label} {state}", f"✅ {label} {state}")

    def set_shuffle_questions(self, enabled: bool) -> Dict[str, Any]:
        return self._set_flag("shuffle_questions", "Question shuffling", enabled)

    def set_shuffle_choices(self, enabled: bool) -> Dict[str, Any]:
        return self._set_flag("shuffle_choices", "Choice shuffling", enabled)

    def set_sound_enabled(self, enabled: bool) -> Dict[str, Any]:
        return self._set_flag("sound_enabled", "Sound", enabled)

    def set_source(self, source: str) -> Dict[str, Any]:
        """Choose the question source: 'local' file or the 'opentdb' trivia API."""
        if source not in self.VALID_SOURCES:
            return self._fail(
                f"Invalid question source: {source}",
                f"❌ Source must be one of: {', '.join(self.VALID_SOURCES)}"
            )
        self._settings.source = source
        return self._ok(f"Question source set to {source}", f"✅ Questions will come from {source}")

    def set_category(self, category: Optional[int]) -> Dict[str, Any]:
        """Set the trivia category filter (Open Trivia DB category id), or None for any."""
        if category is not None and (not isinstance(category, int) or isinstance(category, bool) or category < 1):
            return self._fail(
                f"Invalid category id: {category}",
                "❌ Category must be a positive number"
            )
        self._settings.category = category
        return self._ok(f"Category filter set to {category}", f"✅ Category filter set to {category or 'any'}")

    def set_difficulty(self, difficulty: Optional[str]) -> Dict[str, Any]:
        """Set the trivia difficulty filter, or None for any."""
        if difficulty is not None and difficulty not in self.VALID_DIFFICULTIES:
            return self._fail(
                f"Invalid difficulty: {difficulty}",
                f"❌ Difficulty must be one of: {', '.join(self.VALID_DIFFICULTIES)}"
            )
        self._settings.difficulty = difficulty
        return self._ok(f"Difficulty filter set to {difficulty}", f"✅ Difficulty filter set to {difficulty or 'any'}")

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'quiz' section of a configuration dictionary.

        Invalid values are skipped and keep their defaults.

        Returns:
            User-facing messages for every rejected value
        """
        quiz_config = config.get('quiz', {}) if config else {}
        setters = {
            'mode': self.set_mode,
            'time_per_question': self.set_time_per_question,
            'question_count': self.set_question_count,
            'shuffle_questions': self.set_shuffle_questions,
            'shuffle_choices': self.set_shuffle_choices,
            'sound_enabled': self.set_sound_enabled,
            'source': self.set_source,
            'category': self.set_category,
            'difficulty': self.set_difficulty,
        }
        rejected = []
        for key, setter in setters.items():
            if key in quiz_config:
                result = setter(quiz_config[key])
                if not result['success']:
                    rejected.append(result['user_message'])
        return rejected

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            mode=self.DEFAULT_MODE,
            time_per_question=self.DEFAULT_TIME_PER_QUESTION,
            question_count=self.DEFAULT_QUESTION_COUNT,
            source=self.DEFAULT_SOURCE
        )
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }
        settings = self._settings

        if not self.MIN_QUESTION_COUNT <= settings.question_count <= self.MAX_QUESTION_COUNT:
            validation_result["issues"].append(f"Invalid question count: {settings.question_count}")

        if not self.MIN_TIME_PER_QUESTION <= settings.time_per_question <= self.MAX_TIME_PER_QUESTION:
            validation_result["issues"].append(f"Invalid time per question: {settings.time_per_question}")

        if settings.source not in self.VALID_SOURCES:
            validation_result["issues"].append(f"Invalid question source: {settings.source}")

        if settings.difficulty is not None and settings.difficulty not in self.VALID_DIFFICULTIES:
            validation_result["issues"].append(f"Invalid difficulty: {settings.difficulty}")

        validation_result["valid"] = not validation_result["issues"]
        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        return (
            f"Quiz Settings:\n"
            f"• Mode: {settings.mode.value}\n"
            f"• Questions: {settings.question_count}\n"
            f"• Timer: {settings.time_per_question} seconds\n"
            f"• Shuffle questions: {'on' if settings.shuffle_questions else 'off'}\n"
            f"• Shuffle choices: {'on' if settings.shuffle_choices else 'off'}\n"
            f"• Source: {settings.source}\n"
            f"• Category: {settings.category or 'any'}\n"
            f"• Difficulty: {settings.difficulty or 'any'}\n"
            f"• Sound: {'on' if settings.sound_enabled else 'off'}"
        )
