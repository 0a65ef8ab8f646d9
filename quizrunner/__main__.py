"""
Timed Quiz Runner - Main Entry Point

Asks the questions from a `question,answer` CSV file on the terminal and
scores the typed answers, all under one overall time limit.

Usage:
    quizrunner --file problems.csv --limit 30 --shuffle
    python -m quizrunner --help

Configuration (highest precedence first):
    1. Command line options
    2. Environment variables (QUIZ_FILE, QUIZ_TIME_LIMIT, QUIZ_SHUFFLE,
       QUIZ_QUESTION_COUNT, QUIZ_CLOCK_START, QUIZ_CONFIG, QUIZ_LOG_LEVEL),
       also read from a .env file in the working directory
    3. JSON config file given with --config
    4. Built-in defaults
"""
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from .config_manager import ConfigManager
from .data_manager import DataManager
from .errors import ConfigurationError
from .quiz_controller import EXIT_FAILURE, QuizController
from .quiz_engine import pending_answer_attempts

EXIT_INTERRUPTED = 130

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

app = typer.Typer(
    name="quizrunner",
    help="Timed quiz runner for question/answer CSV files",
    add_completion=False,
)


def setup_logging(level: str, log_directory: Optional[str] = None) -> None:
    """Set up logging to stderr and, when a directory is given, to a log file."""
    log_level = getattr(logging, level.upper(), logging.WARNING)
    handlers = [logging.StreamHandler(sys.stderr)]

    if log_directory:
        log_path = Path(log_directory)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path / "quizrunner.log", encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


@app.command()
def run(
    file: Optional[str] = typer.Option(
        None, "--file", "-f", envvar="QUIZ_FILE",
        help="CSV file in the format 'question,answer' [default: problems.csv]"
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", envvar="QUIZ_TIME_LIMIT",
        help="Time limit for the whole quiz in seconds [default: 30]"
    ),
    shuffle: Optional[bool] = typer.Option(
        None, "--shuffle/--no-shuffle", envvar="QUIZ_SHUFFLE",
        help="Shuffle the order of the questions [default: no-shuffle]"
    ),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", envvar="QUIZ_QUESTION_COUNT",
        help="Ask at most this many questions [default: all]"
    ),
    clock_start: Optional[str] = typer.Option(
        None, "--clock-start", envvar="QUIZ_CLOCK_START",
        help="Start the countdown on 'acknowledge' (after Enter) or on 'load' [default: acknowledge]"
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", envvar="QUIZ_CONFIG",
        help="JSON config file with 'quiz' and 'logging' sections"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", envvar="QUIZ_LOG_LEVEL",
        help="Logging level for diagnostics on stderr [default: WARNING]"
    ),
) -> None:
    """Run a timed quiz.

    The countdown covers the whole quiz, not each question. When it runs out
    the current question is abandoned and the score so far is printed.
    """
    setup_logging(log_level or ConfigManager.DEFAULT_LOG_LEVEL)
    error_console = Console(stderr=True, highlight=False)
    config_manager = ConfigManager()

    try:
        if config:
            config_manager.load_config_file(config)
    except ConfigurationError as e:
        error_console.print(f"[bold red]Invalid configuration[/bold red]\n{escape(str(e))}")
        raise typer.Exit(code=EXIT_FAILURE)

    config_manager.apply_overrides(
        source_file=file,
        time_limit=limit,
        random_order=shuffle,
        question_count=count,
        clock_start=clock_start,
        log_level=log_level,
    )
    setup_logging(config_manager.get_log_level(), config_manager.get_log_directory())
    logging.getLogger(__name__).debug(config_manager.get_settings_summary())

    controller = QuizController(DataManager(), config_manager, error_console=error_console)
    try:
        exit_code = controller.run()
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Quiz interrupted[/yellow]")
        exit_code = EXIT_INTERRUPTED

    raise typer.Exit(code=exit_code)


def _exit_status(code) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return EXIT_FAILURE


def main() -> None:
    """Console script entry point."""
    load_dotenv()
    try:
        app()
    except SystemExit as exit_request:
        if pending_answer_attempts():
            # A reader thread parked in stdin.readline() holds the stdin buffer
            # lock; interpreter finalization would abort on it.
            sys.stdout.flush()
            sys.stderr.flush()
            os._exit(_exit_status(exit_request.code))
        raise


if __name__ == "__main__":
    main()
