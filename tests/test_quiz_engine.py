"""
Unit tests for the QuizEngine class and the Fisher-Yates shuffle.
"""
import random
import unittest
from collections import Counter

from quizzybee.quiz_engine import QuizEngine, fisher_yates_shuffle
from tests.test_fixtures import TestFixtures


class TestFisherYatesShuffle(unittest.TestCase):
    """Test cases for the unbiased shuffle."""

    def test_shuffle_is_a_permutation(self):
        rng = random.Random(42)
        for _ in range(200):
            items = [1, 2, 3, 4]
            result = fisher_yates_shuffle(items, rng)
            self.assertEqual(Counter(result), Counter(items))

    def test_shuffle_preserves_duplicates(self):
        items = [1, 1, 2, 3, 3, 3]
        result = fisher_yates_shuffle(items, random.Random(3))
        self.assertEqual(sorted(result), items)

    def test_shuffle_does_not_modify_input(self):
        items = [1, 2, 3, 4]
        fisher_yates_shuffle(items, random.Random(1))
        self.assertEqual(items, [1, 2, 3, 4])

    def test_seeded_shuffle_is_deterministic(self):
        first = fisher_yates_shuffle(list(range(10)), random.Random(99))
        second = fisher_yates_shuffle(list(range(10)), random.Random(99))
        self.assertEqual(first, second)

    def test_every_ordering_is_reachable(self):
        rng = random.Random(5)
        seen = {tuple(fisher_yates_shuffle([1, 2, 3], rng)) for _ in range(300)}
        self.assertEqual(len(seen), 6)

    def test_empty_and_single_item(self):
        self.assertEqual(fisher_yates_shuffle([]), [])
        self.assertEqual(fisher_yates_shuffle(["a"]), ["a"])


class TestQuizEngine(unittest.TestCase):
    """Test cases for QuizEngine question selection and ordering."""

    def setUp(self):
        self.engine = QuizEngine(random.Random(11))
        self.sample_questions = TestFixtures.create_sample_questions()

    def test_select_questions_keeps_order_without_shuffle(self):
        settings = TestFixtures.create_settings(question_count=3)
        result = self.engine.select_questions(self.sample_questions, settings)
        self.assertEqual(result, self.sample_questions)

    def test_select_questions_truncates(self):
        settings = TestFixtures.create_settings(question_count=2)
        result = self.engine.select_questions(self.sample_questions, settings)
        self.assertEqual(result, self.sample_questions[:2])

    def test_select_questions_count_exceeds_available(self):
        settings = TestFixtures.create_settings(question_count=10)
        result = self.engine.select_questions(self.sample_questions, settings)
        self.assertEqual(len(result), 3)

    def test_select_questions_shuffled_subset(self):
        settings = TestFixtures.create_settings(question_count=2, shuffle_questions=True)
        result = self.engine.select_questions(self.sample_questions, settings)
        self.assertEqual(len(result), 2)
        for question in result:
            self.assertIn(question, self.sample_questions)

    def test_select_questions_empty_list(self):
        with self.assertRaises(ValueError) as context:
            self.engine.select_questions([], TestFixtures.create_settings())
        self.assertEqual(str(context.exception), "Cannot select questions from empty list")

    def test_limit_question_count_zero(self):
        self.assertEqual(self.engine.limit_question_count(self.sample_questions, 0), [])

    def test_limit_question_count_none_returns_all(self):
        self.assertEqual(self.engine.limit_question_count(self.sample_questions, None), self.sample_questions)

    def test_order_choices_without_shuffle(self):
        question = self.sample_questions[0]
        self.assertEqual(self.engine.order_choices(question, shuffle=False), question.choices)

    def test_order_choices_with_shuffle_keeps_members(self):
        question = self.sample_questions[0]
        ordered = self.engine.order_choices(question, shuffle=True)
        self.assertEqual(sorted(ordered), sorted(question.choices))


if __name__ == '__main__':
    unittest.main()
