"""
Test fixtures and sample data for quiz runner tests.
"""
import io
import threading
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

from rich.console import Console

from quizrunner.models import Question, QuizSettings

ScriptItem = Union[str, BaseException]


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_sample_questions() -> List[Question]:
        """Create sample questions for testing."""
        return [
            Question("What is 2+2?", "4"),
            Question("What is the capital of France?", "Paris"),
            Question("What color is the sky?", "Blue"),
            Question("What is 5*5?", "25"),
            Question("What is the largest planet?", "Jupiter")
        ]

    @staticmethod
    def create_scenario_questions() -> List[Question]:
        """The two-question arithmetic and geography scenario."""
        return [
            Question("2+2", "4"),
            Question("capital of france", "Paris")
        ]

    @staticmethod
    def create_sample_quiz_settings(source_file: str = "problems.csv") -> QuizSettings:
        """Create sample quiz settings for testing."""
        return QuizSettings(
            source_file=source_file,
            time_limit=60,
            random_order=False,
            question_count=None
        )

    @staticmethod
    def write_csv(directory: str, name: str, content: str, encoding: str = 'utf-8') -> Path:
        """Write a CSV file into a temp directory and return its path."""
        path = Path(directory) / name
        with open(path, 'w', encoding=encoding, newline='') as f:
            f.write(content)
        return path

    @staticmethod
    def create_valid_csv() -> str:
        """Create valid question file content."""
        return (
            "5+5,10\n"
            "7+3,10\n"
            "\"what 2+2, sir?\",4\n"
            "capital of france,  Paris  \n"
        )

    @staticmethod
    def create_console() -> Console:
        """Console writing into memory, without colors or wrapping."""
        return Console(file=io.StringIO(), highlight=False, color_system=None, width=200)

    @staticmethod
    def console_output(console: Console) -> str:
        return console.file.getvalue()


class ScriptedReader:
    """
    LineReader that replays scripted lines.

    Each item is either a line to return or an exception to raise. Once the
    script runs out the reader blocks, like a user who never types, until
    release() is called.
    """

    def __init__(self, script: Sequence[ScriptItem] = (), delay: float = 0.0, on_read=None):
        self._script = list(script)
        self._delay = delay
        self._on_read = on_read
        self._lock = threading.Lock()
        self._released = threading.Event()
        self.reads = 0

    def read_line(self) -> str:
        with self._lock:
            self.reads += 1
            item: Optional[ScriptItem] = self._script.pop(0) if self._script else None

        if item is None:
            self._released.wait()
            raise EOFError("reader released")

        if self._delay:
            time.sleep(self._delay)
        if self._on_read is not None:
            self._on_read()
        if isinstance(item, BaseException):
            raise item
        return item

    def release(self) -> None:
        """Unblock every pending read."""
        self._released.set()


class AsyncTestHelpers:
    """Helper functions for async testing."""

    @staticmethod
    async def run_with_timeout(coro, timeout: float = 5.0):
        """Run coroutine with timeout."""
        import asyncio
        return await asyncio.wait_for(coro, timeout=timeout)


class ManualClock:
    """Clock whose time only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
