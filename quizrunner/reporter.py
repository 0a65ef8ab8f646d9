"""
Final score reporting for quiz sessions.
"""
import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .models import QuizResult, ScoreTally, StopReason


def format_tally(tally: ScoreTally) -> str:
    """Machine-readable tally line."""
    return f"asked={tally.asked} correct={tally.correct}"


class SessionReporter:
    """Prints the final tally of a quiz session."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console if console is not None else Console(highlight=False)
        self.logger = logging.getLogger(__name__)

    def report(self, result: QuizResult) -> None:
        """
        Print the session summary.

        Args:
            result: Outcome returned by the quiz engine
        """
        if result.reason is StopReason.INPUT_ERROR:
            self.console.print()
            self.console.print(f"[red]Input error:[/red] {escape(str(result.error))}")

        self.console.print()
        self.console.print(f"You scored {result.tally.correct} out of {result.total}.")
        self.console.print(format_tally(result.tally), markup=False)

        self.logger.info(
            f"Session finished: {format_tally(result.tally)} total={result.total} reason={result.reason.value}",
            extra={
                'event_type': 'session_reported',
                'asked': result.tally.asked,
                'correct': result.tally.correct,
                'total': result.total,
                'reason': result.reason.value,
            }
        )
