"""
Unit tests for question selection, shuffling, answer normalization and Deadline.
"""
import asyncio
import io
import random
import time
import unittest
from collections import Counter
from unittest.mock import patch

from quizrunner.models import Question, QuizSettings
from quizrunner.quiz_engine import Deadline, QuizEngine, StdinReader, is_correct, normalize_answer
from tests.test_fixtures import ManualClock, TestFixtures


class TestQuizEngine(unittest.TestCase):
    """Test cases for QuizEngine question selection and ordering."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = QuizEngine()
        self.sample_questions = TestFixtures.create_sample_questions()

    def test_default_rng_uses_os_entropy(self):
        """Shuffles are not reproducible across runs by default."""
        self.assertIsInstance(self.engine._rng, random.SystemRandom)

    def test_select_questions_default_settings(self):
        """Test question selection with default settings."""
        result = self.engine.select_questions(self.sample_questions, QuizSettings())

        # Should return all questions in original order
        self.assertEqual(result, self.sample_questions)
        self.assertIsNot(result, self.sample_questions)

    def test_select_questions_with_count_limit(self):
        """Test question selection with count limitation."""
        settings = QuizSettings(question_count=3)
        result = self.engine.select_questions(self.sample_questions, settings)

        self.assertEqual(result, self.sample_questions[:3])

    def test_select_questions_count_exceeds_available(self):
        """Test question selection when requested count exceeds available questions."""
        settings = QuizSettings(question_count=10)
        result = self.engine.select_questions(self.sample_questions, settings)

        self.assertEqual(result, self.sample_questions)

    def test_select_questions_random_with_count(self):
        """Test question selection with both random order and count limit."""
        engine = QuizEngine(rng=random.Random(42))
        settings = QuizSettings(random_order=True, question_count=2)
        result = engine.select_questions(self.sample_questions, settings)

        self.assertEqual(len(result), 2)
        for question in result:
            self.assertIn(question, self.sample_questions)

    def test_select_questions_empty_list(self):
        """An empty question set stays empty."""
        self.assertEqual(self.engine.select_questions([], QuizSettings(random_order=True)), [])

    def test_shuffle_is_a_bijection(self):
        """Shuffling keeps exactly the same questions."""
        for _ in range(20):
            shuffled = self.engine.shuffle_questions(self.sample_questions)
            self.assertEqual(Counter(shuffled), Counter(self.sample_questions))

    def test_shuffle_questions_preserves_original(self):
        """Test that shuffling doesn't modify the original list."""
        original_copy = self.sample_questions.copy()
        self.engine.shuffle_questions(self.sample_questions)

        self.assertEqual(self.sample_questions, original_copy)

    def test_shuffle_produces_different_orderings(self):
        """Test that randomization produces varied orderings."""
        orderings = {
            tuple(q.text for q in self.engine.shuffle_questions(self.sample_questions))
            for _ in range(30)
        }
        self.assertGreater(len(orderings), 1)

    def test_shuffle_single_question(self):
        single = [Question("Single?", "Answer")]
        self.assertEqual(self.engine.shuffle_questions(single), single)

    def test_shuffle_position_distribution_is_uniform(self):
        """Each question lands in each position with roughly equal frequency."""
        engine = QuizEngine(rng=random.Random(20240601))
        runs = 1000
        positions = {q: Counter() for q in self.sample_questions}

        for _ in range(runs):
            for position, question in enumerate(engine.shuffle_questions(self.sample_questions)):
                positions[question][position] += 1

        expected = runs / len(self.sample_questions)
        for question, counts in positions.items():
            for position in range(len(self.sample_questions)):
                # 200 expected, standard deviation about 12.6
                self.assertAlmostEqual(
                    counts[position], expected, delta=70,
                    msg=f"{question.text!r} at position {position}: {counts[position]}"
                )

    def test_limit_question_count_zero(self):
        self.assertEqual(self.engine.limit_question_count(self.sample_questions, 0), [])

    def test_question_selection_performance(self):
        """Test performance of question selection with large datasets."""
        large_questions = [Question(f"Question {i}?", f"Answer {i}") for i in range(10000)]
        settings = QuizSettings(question_count=100, random_order=True)

        start_time = time.time()
        result = self.engine.select_questions(large_questions, settings)

        self.assertLess(time.time() - start_time, 1.0)
        self.assertEqual(len(result), 100)


class TestAnswerNormalization(unittest.TestCase):
    """Test cases for answer normalization and comparison."""

    def test_normalize_trims_and_folds_case(self):
        self.assertEqual(normalize_answer("Paris\n"), "paris")
        self.assertEqual(normalize_answer("  paris "), "paris")
        self.assertEqual(normalize_answer("PARIS"), "paris")

    def test_normalize_windows_line_ending(self):
        self.assertEqual(normalize_answer("42\r\n"), "42")

    def test_normalize_keeps_inner_whitespace(self):
        self.assertEqual(normalize_answer("  New  York\t"), "new  york")

    def test_normalize_case_folds_non_ascii(self):
        self.assertEqual(normalize_answer("STRASSE"), normalize_answer("straße"))

    def test_is_correct_exact_match_only(self):
        self.assertTrue(is_correct("  PARIS\n", "Paris"))
        self.assertFalse(is_correct("Pari", "Paris"))
        self.assertFalse(is_correct("Paris France", "Paris"))
        self.assertTrue(is_correct("\n", ""))


class TestDeadline(unittest.TestCase):
    """Test cases for the session Deadline."""

    def test_unarmed_deadline(self):
        deadline = Deadline(30)

        self.assertFalse(deadline.armed)
        self.assertFalse(deadline.expired())
        self.assertEqual(deadline.remaining(), 30.0)
        self.assertIsNone(deadline.expires_at)

    def test_arm_computes_expiry_once(self):
        clock = ManualClock()
        deadline = Deadline(10, clock=clock)
        deadline.arm()

        self.assertEqual(deadline.expires_at, clock.now + 10)
        clock.advance(4)
        self.assertEqual(deadline.remaining(), 6.0)
        self.assertFalse(deadline.expired())

        clock.advance(6)
        self.assertTrue(deadline.expired())
        self.assertEqual(deadline.remaining(), 0.0)

    def test_deadline_cannot_be_rearmed(self):
        deadline = Deadline(10)
        deadline.arm()

        with self.assertRaises(RuntimeError):
            deadline.arm()

    def test_zero_duration_expires_immediately(self):
        deadline = Deadline(0)
        deadline.arm()

        self.assertTrue(deadline.expired())

    def test_negative_duration_rejected(self):
        with self.assertRaises(ValueError):
            Deadline(-1)

    def test_wait_requires_armed_deadline(self):
        with self.assertRaises(RuntimeError):
            asyncio.run(Deadline(1).wait())

    def test_wait_returns_after_expiry(self):
        deadline = Deadline(0.05)
        deadline.arm()

        start_time = time.monotonic()
        asyncio.run(deadline.wait())

        self.assertTrue(deadline.expired())
        self.assertLess(time.monotonic() - start_time, 1.0)


class TestStdinReader(unittest.TestCase):
    """Test cases for reading answers from standard input."""

    def test_reads_one_line(self):
        with patch('sys.stdin', io.StringIO("4\nparis\n")):
            self.assertEqual(StdinReader().read_line(), "4\n")

    def test_end_of_input_raises_eof(self):
        with patch('sys.stdin', io.StringIO("")):
            with self.assertRaises(EOFError):
                StdinReader().read_line()

    def test_missing_stdin_raises_eof(self):
        with patch('sys.stdin', None):
            with self.assertRaises(EOFError):
                StdinReader().read_line()

    def test_closed_stdin_raises_eof(self):
        stream = io.StringIO("4\n")
        stream.close()

        with patch('sys.stdin', stream):
            with self.assertRaises(EOFError):
                StdinReader().read_line()


if __name__ == '__main__':
    unittest.main()
