"""
Core data models for the timed quiz runner.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ClockStart(Enum):
    """When the quiz countdown is armed."""
    ACKNOWLEDGE = "acknowledge"  # after the user presses Enter
    LOAD = "load"  # right after the question file is loaded


class SessionState(Enum):
    """Enumeration of quiz session states."""
    AWAITING_START = "awaiting_start"
    RUNNING = "running"
    STOPPED = "stopped"


class StopReason(Enum):
    """Why a running quiz stopped."""
    TIME_EXPIRED = "time_expired"
    EXHAUSTED = "exhausted"
    INPUT_ERROR = "input_error"


@dataclass(frozen=True)
class Question:
    """Represents a single quiz question."""
    text: str
    answer: str


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    source_file: str = "problems.csv"
    time_limit: int = 30
    random_order: bool = False
    question_count: Optional[int] = None
    clock_start: ClockStart = ClockStart.ACKNOWLEDGE


@dataclass
class ScoreTally:
    """Running score of a quiz session."""
    asked: int = 0
    correct: int = 0

    def record(self, is_correct: bool) -> None:
        """Count one answered question."""
        self.asked += 1
        if is_correct:
            self.correct += 1


@dataclass
class QuizResult:
    """Outcome of a finished quiz session."""
    tally: ScoreTally
    total: int
    reason: StopReason
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def exit_code(self) -> int:
        return 1 if self.reason is StopReason.INPUT_ERROR else 0
