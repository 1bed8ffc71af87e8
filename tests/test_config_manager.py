"""
Unit tests for ConfigManager class.
"""
import unittest
import logging

from quizzybee.config_manager import ConfigManager
from quizzybee.models import QuizMode


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager functionality."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.config_manager = ConfigManager()

        # Suppress logging during tests
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        """Clean up after each test method."""
        logging.disable(logging.NOTSET)

    def test_initialization_with_defaults(self):
        """Test that ConfigManager initializes with correct default values."""
        settings = self.config_manager.get_quiz_settings()

        self.assertEqual(settings.mode, QuizMode.PRACTICE)
        self.assertEqual(settings.time_per_question, 30)
        self.assertEqual(settings.question_count, 10)
        self.assertEqual(settings.source, "local")
        self.assertIsNone(settings.category)
        self.assertFalse(settings.sound_enabled)

    def test_get_quiz_settings_returns_copy(self):
        """Mutating the returned settings must not change the manager."""
        settings = self.config_manager.get_quiz_settings()
        settings.question_count = 3
        self.assertEqual(self.config_manager.get_quiz_settings().question_count, 10)

    def test_set_mode(self):
        result = self.config_manager.set_mode("test")
        self.assertTrue(result['success'])
        self.assertEqual(self.config_manager.get_quiz_settings().mode, QuizMode.TEST)

        result = self.config_manager.set_mode("exam")
        self.assertFalse(result['success'])
        self.assertIn("practice", result['user_message'])
        self.assertEqual(self.config_manager.get_quiz_settings().mode, QuizMode.TEST)

    def test_set_time_per_question_valid_values(self):
        """Test setting valid timer values including both limits."""
        for seconds in (5, 30, 300):
            result = self.config_manager.set_time_per_question(seconds)
            self.assertTrue(result['success'])
            self.assertEqual(self.config_manager.get_quiz_settings().time_per_question, seconds)

    def test_set_time_per_question_invalid_values(self):
        """Test setting invalid timer values."""
        for value in (4, 0, -10, 301, "30", 12.5, True):
            result = self.config_manager.set_time_per_question(value)
            self.assertFalse(result['success'], value)
            self.assertIn('error', result)
            self.assertTrue(result['user_message'].startswith("❌"))

        self.assertEqual(self.config_manager.get_quiz_settings().time_per_question, 30)

    def test_set_question_count_valid_values(self):
        for count in (1, 25, 50):
            result = self.config_manager.set_question_count(count)
            self.assertTrue(result['success'])
            self.assertEqual(self.config_manager.get_quiz_settings().question_count, count)

    def test_set_question_count_invalid_values(self):
        for value in (0, -1, 51, "5", None):
            result = self.config_manager.set_question_count(value)
            self.assertFalse(result['success'], value)

        self.assertEqual(self.config_manager.get_quiz_settings().question_count, 10)

    def test_boolean_flags(self):
        self.assertTrue(self.config_manager.set_shuffle_questions(False)['success'])
        self.assertTrue(self.config_manager.set_shuffle_choices(False)['success'])
        self.assertTrue(self.config_manager.set_sound_enabled(True)['success'])

        settings = self.config_manager.get_quiz_settings()
        self.assertFalse(settings.shuffle_questions)
        self.assertFalse(settings.shuffle_choices)
        self.assertTrue(settings.sound_enabled)

        self.assertFalse(self.config_manager.set_sound_enabled("yes")['success'])

    def test_set_source(self):
        self.assertTrue(self.config_manager.set_source("opentdb")['success'])
        self.assertEqual(self.config_manager.get_quiz_settings().source, "opentdb")
        self.assertFalse(self.config_manager.set_source("web")['success'])

    def test_set_category_and_difficulty(self):
        self.assertTrue(self.config_manager.set_category(9)['success'])
        self.assertTrue(self.config_manager.set_difficulty("hard")['success'])
        self.assertFalse(self.config_manager.set_category(0)['success'])
        self.assertFalse(self.config_manager.set_difficulty("insane")['success'])

        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.category, 9)
        self.assertEqual(settings.difficulty, "hard")

        self.assertTrue(self.config_manager.set_category(None)['success'])
        self.assertIsNone(self.config_manager.get_quiz_settings().category)

    def test_apply_config(self):
        """Valid values are applied, invalid ones are reported and skipped."""
        rejected = self.config_manager.apply_config({
            'quiz': {
                'mode': 'test',
                'time_per_question': 45,
                'question_count': 500,
                'source': 'opentdb'
            }
        })

        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.mode, QuizMode.TEST)
        self.assertEqual(settings.time_per_question, 45)
        self.assertEqual(settings.question_count, 10)
        self.assertEqual(settings.source, "opentdb")
        self.assertEqual(len(rejected), 1)

    def test_apply_empty_config(self):
        self.assertEqual(self.config_manager.apply_config({}), [])
        self.assertEqual(self.config_manager.apply_config(None), [])

    def test_reset_to_defaults(self):
        self.config_manager.set_mode("test")
        self.config_manager.set_question_count(5)
        self.config_manager.reset_to_defaults()

        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.mode, QuizMode.PRACTICE)
        self.assertEqual(settings.question_count, 10)

    def test_validate_settings(self):
        self.assertTrue(self.config_manager.validate_settings()['valid'])

        self.config_manager._settings.question_count = 0
        self.config_manager._settings.source = "ftp"
        result = self.config_manager.validate_settings()
        self.assertFalse(result['valid'])
        self.assertEqual(len(result['issues']), 2)

    def test_settings_summary(self):
        summary = self.config_manager.get_settings_summary()
        self.assertIn("Mode: practice", summary)
        self.assertIn("Timer: 30 seconds", summary)
        self.assertIn("Category: any", summary)


if __name__ == '__main__':
    unittest.main()
