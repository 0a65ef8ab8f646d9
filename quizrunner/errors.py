"""
Exception taxonomy for the timed quiz runner.
"""
from typing import Optional


class QuizRunnerError(Exception):
    """Base exception for quiz runner errors."""
    pass


class ConfigurationError(QuizRunnerError):
    """Raised when command line options or the config file are invalid."""
    pass


class SourceUnavailableError(QuizRunnerError):
    """Raised when the question file cannot be opened or read."""
    pass


class MalformedInputError(QuizRunnerError):
    """Raised when a question file row cannot be turned into a question."""

    def __init__(self, message: str, row_number: Optional[int] = None):
        super().__init__(message)
        self.row_number = row_number


class InputError(QuizRunnerError):
    """Raised when standard input is closed or broken mid-run."""
    pass
