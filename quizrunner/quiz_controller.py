"""
Quiz session controller for the timed quiz runner.
Loads questions, prepares the deadline, runs the engine and reports the score.
"""
import asyncio
import logging
import time
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from .config_manager import ConfigManager
from .data_manager import DataManager
from .errors import (
    ConfigurationError, MalformedInputError, QuizRunnerError, SourceUnavailableError
)
from .models import ClockStart, Question, QuizResult, QuizSettings
from .quiz_engine import Deadline, LineReader, QuizEngine, TimedQuizEngine
from .reporter import SessionReporter

EXIT_OK = 0
EXIT_FAILURE = 1


class QuizController:
    """
    Orchestrates a single quiz session from question file to final score.

    Pre-run failures (bad settings, missing or malformed question file) abort
    before any question is shown. Once the engine is running, only the engine
    decides when the session stops.
    """

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        reader: Optional[LineReader] = None,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
        quiz_engine: Optional[QuizEngine] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            data_manager: Instance for loading question files
            config_manager: Instance for managing configuration
            reader: Source of typed answers, standard input by default
            console: Console for prompts and the final score
            error_console: Console for diagnostics, standard error by default
            quiz_engine: Question selection engine
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.quiz_engine = quiz_engine if quiz_engine is not None else QuizEngine()
        self._reader = reader
        self.console = console if console is not None else Console(highlight=False)
        self.error_console = error_console if error_console is not None else Console(stderr=True, highlight=False)
        self.last_result: Optional[QuizResult] = None

    def prepare_session(self, settings: QuizSettings) -> Tuple[List[Question], Deadline]:
        """
        Load and order questions and create the session deadline.

        With ClockStart.LOAD the deadline is armed here, right after loading.

        Args:
            settings: Validated quiz settings

        Returns:
            Tuple of the ordered questions and the session deadline

        Raises:
            SourceUnavailableError: If the question file cannot be read
            MalformedInputError: If the question file has a malformed row
        """
        questions = self.data_manager.load_questions(settings.source_file)
        deadline = Deadline(settings.time_limit)

        if settings.clock_start is ClockStart.LOAD:
            deadline.arm()

        selected_questions = self.quiz_engine.select_questions(questions, settings)
        loading_summary = self.data_manager.get_loading_summary()

        self.logger.info(
            f"Prepared session: {len(selected_questions)} of {len(questions)} questions, "
            f"limit {settings.time_limit}s, shuffle {settings.random_order}, "
            f"skipped {loading_summary['skipped_blank_rows']} empty lines",
            extra={
                'event_type': 'session_prepared',
                'question_count': len(selected_questions),
                'available_questions': len(questions),
                'time_limit': settings.time_limit,
                'random_order': settings.random_order,
                'clock_start': settings.clock_start.value,
                'loading_summary': loading_summary,
                'timestamp': time.time()
            }
        )
        return selected_questions, deadline

    async def run_session(self, settings: QuizSettings) -> QuizResult:
        """
        Run one quiz session and report its score.

        Args:
            settings: Validated quiz settings

        Returns:
            QuizResult of the finished session

        Raises:
            SourceUnavailableError: If the question file cannot be read
            MalformedInputError: If the question file has a malformed row
        """
        questions, deadline = self.prepare_session(settings)

        engine = TimedQuizEngine(
            questions,
            deadline,
            reader=self._reader,
            console=self.console,
            acknowledge=settings.clock_start is ClockStart.ACKNOWLEDGE
        )
        result = await engine.run()

        SessionReporter(self.console).report(result)
        self.last_result = result
        return result

    def run(self, settings: Optional[QuizSettings] = None) -> int:
        """
        Run a quiz session to completion and return the process exit code.

        Args:
            settings: Quiz settings, built from the config manager if None

        Returns:
            0 when the quiz ran out of questions or time, 1 on any error
        """
        try:
            if settings is None:
                settings = self.config_manager.build_settings()
            result = asyncio.run(self.run_session(settings))
        except QuizRunnerError as e:
            self._handle_pre_run_error(e)
            return EXIT_FAILURE

        return result.exit_code

    def _handle_pre_run_error(self, error: QuizRunnerError) -> None:
        self.logger.error(
            f"Quiz aborted before start: {error}",
            extra={
                'event_type': 'session_aborted',
                'error_type': type(error).__name__,
                'timestamp': time.time()
            }
        )
        self.error_console.print(self._get_user_friendly_error_message(error))

    def _get_user_friendly_error_message(self, error: Exception) -> str:
        """
        Convert a pre-run error into a message for the terminal.

        Args:
            error: The exception that aborted the run

        Returns:
            Console markup describing the problem
        """
        message = escape(str(error))

        if isinstance(error, ConfigurationError):
            return f"[bold red]Invalid configuration[/bold red]\n{message}"
        if isinstance(error, SourceUnavailableError):
            return f"[bold red]Question file unavailable[/bold red]\n{message}"
        if isinstance(error, MalformedInputError):
            return f"[bold red]Malformed question file[/bold red]\n{message}"
        return f"[bold red]Quiz failed[/bold red]\n{message}"
