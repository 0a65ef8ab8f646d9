"""
Timed quiz runner: asks CSV question/answer pairs under one overall deadline.
"""
from .models import ClockStart, Question, QuizResult, QuizSettings, ScoreTally, StopReason
from .quiz_engine import Deadline, QuizEngine, TimedQuizEngine, normalize_answer

__all__ = (
    "ClockStart",
    "Deadline",
    "Question",
    "QuizEngine",
    "QuizResult",
    "QuizSettings",
    "ScoreTally",
    "StopReason",
    "TimedQuizEngine",
    "normalize_answer",
)

__version__ = "1.0.0"
