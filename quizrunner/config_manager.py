"""
Configuration manager for quiz runner settings.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError
from .models import ClockStart, QuizSettings


class ConfigManager:
    """Manages quiz settings from defaults, a JSON config file and overrides."""

    # Default configuration values
    DEFAULT_SOURCE_FILE = "problems.csv"
    DEFAULT_TIME_LIMIT = 30
    DEFAULT_RANDOM_ORDER = False
    DEFAULT_QUESTION_COUNT = None  # Use all questions by default
    DEFAULT_CLOCK_START = ClockStart.ACKNOWLEDGE
    DEFAULT_LOG_LEVEL = "WARNING"

    # Validation limits
    MIN_TIME_LIMIT = 1
    MIN_QUESTION_COUNT = 1
    SOURCE_SUFFIX = ".csv"
    LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    # Keys accepted in the "quiz" section of the config file
    QUIZ_KEYS = ("file", "time_limit", "shuffle", "question_count", "clock_start")

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()
        self._log_level = self.DEFAULT_LOG_LEVEL
        self._log_directory: Optional[str] = None
        self._issues: Dict[str, str] = {}

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get a copy of the current quiz settings.

        Returns:
            QuizSettings object with current configuration
        """
        return QuizSettings(
            source_file=self._settings.source_file,
            time_limit=self._settings.time_limit,
            random_order=self._settings.random_order,
            question_count=self._settings.question_count,
            clock_start=self._settings.clock_start
        )

    def set_source_file(self, file_path: Any) -> Dict[str, Any]:
        """
        Set the question file path.

        Args:
            file_path: Path to a `.csv` question file

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(file_path, str) or not file_path.strip():
            return self._reject(
                'file',
                f"Question file must be a non-empty path, got {file_path!r}",
                "❌ Question file path cannot be empty"
            )

        if Path(file_path).suffix.lower() != self.SOURCE_SUFFIX:
            return self._reject(
                'file',
                f"Question file must be a {self.SOURCE_SUFFIX} file, got {file_path}",
                f"❌ Invalid file format: {file_path} is not a {self.SOURCE_SUFFIX} file"
            )

        self._settings.source_file = file_path
        return self._accept('file', f"Question file set to {file_path}")

    def set_time_limit(self, seconds: Any) -> Dict[str, Any]:
        """
        Set the overall time limit for the quiz.

        Args:
            seconds: Time limit in whole seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(seconds, bool) or not isinstance(seconds, int):
            return self._reject(
                'time_limit',
                f"Time limit must be an integer, got {type(seconds).__name__}",
                f"❌ Invalid input: Expected a number of seconds, got {seconds!r}"
            )

        if seconds < self.MIN_TIME_LIMIT:
            return self._reject(
                'time_limit',
                f"Time limit must be at least {self.MIN_TIME_LIMIT} second, got {seconds}",
                f"❌ Time limit too short: it must be a positive number of seconds, got {seconds}"
            )

        self._settings.time_limit = seconds
        return self._accept('time_limit', f"Time limit set to {seconds} seconds")

    def set_random_order(self, random_order: Any) -> Dict[str, Any]:
        """
        Set whether questions should be presented in random order.

        Args:
            random_order: True for random order, False for file order

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(random_order, bool):
            return self._reject(
                'shuffle',
                f"Random order must be a boolean, got {type(random_order).__name__}",
                f"❌ Invalid input: Expected true/false, got {random_order!r}"
            )

        self._settings.random_order = random_order
        order_type = "random" if random_order else "file"
        return self._accept('shuffle', f"Question order set to {order_type}")

    def set_question_count(self, count: Any) -> Dict[str, Any]:
        """
        Set how many questions to ask.

        Args:
            count: Number of questions, or None to ask all of them

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if count is None:
            self._settings.question_count = None
            return self._accept('question_count', "Question count set to use all available questions")

        if isinstance(count, bool) or not isinstance(count, int):
            return self._reject(
                'question_count',
                f"Question count must be an integer, got {type(count).__name__}",
                f"❌ Invalid input: Expected a number, got {count!r}"
            )

        if count < self.MIN_QUESTION_COUNT:
            return self._reject(
                'question_count',
                f"Question count must be at least {self.MIN_QUESTION_COUNT}",
                f"❌ Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            )

        self._settings.question_count = count
        return self._accept('question_count', f"Question count set to {count}")

    def set_clock_start(self, clock_start: Any) -> Dict[str, Any]:
        """
        Set when the countdown starts.

        Args:
            clock_start: ClockStart member or its value ("acknowledge" or "load")

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            value = clock_start if isinstance(clock_start, ClockStart) else ClockStart(clock_start)
        except ValueError:
            choices = ", ".join(member.value for member in ClockStart)
            return self._reject(
                'clock_start',
                f"Clock start must be one of {choices}, got {clock_start!r}",
                f"❌ Invalid clock start {clock_start!r}: choose one of {choices}"
            )

        self._settings.clock_start = value
        return self._accept('clock_start', f"Countdown starts on {value.value}")

    def set_log_level(self, level: Any) -> Dict[str, Any]:
        """
        Set the logging level.

        Args:
            level: Standard logging level name

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(level, str) or level.upper() not in self.LOG_LEVELS:
            return self._reject(
                'log_level',
                f"Log level must be one of {', '.join(self.LOG_LEVELS)}, got {level!r}",
                f"❌ Invalid log level: {level!r}"
            )

        self._log_level = level.upper()
        return self._accept('log_level', f"Log level set to {self._log_level}")

    def set_log_directory(self, directory: Any) -> Dict[str, Any]:
        """
        Set the directory for the log file, or None to log to stderr only.

        Args:
            directory: Path to the log directory

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if directory is not None and (not isinstance(directory, str) or not directory.strip()):
            return self._reject(
                'log_directory',
                f"Log directory must be a non-empty path, got {directory!r}",
                "❌ Log directory path cannot be empty"
            )

        self._log_directory = directory
        return self._accept('log_directory', f"Log directory set to {directory}")

    def get_log_level(self) -> str:
        return self._log_level

    def get_log_directory(self) -> Optional[str]:
        return self._log_directory

    def load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Apply settings from a JSON config file.

        Expected structure (every key optional):
        {
            "quiz": {"file": str, "time_limit": int, "shuffle": bool,
                     "question_count": int | null, "clock_start": str},
            "logging": {"level": str, "log_directory": str | null}
        }

        Args:
            config_path: Path to the JSON config file

        Returns:
            Parsed config dictionary

        Raises:
            ConfigurationError: If the file is missing, unreadable or not a JSON object
        """
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error loading {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")

        quiz_config = config.get('quiz', {})
        log_config = config.get('logging', {})
        if not isinstance(quiz_config, dict) or not isinstance(log_config, dict):
            raise ConfigurationError(f"'quiz' and 'logging' in {config_path} must be JSON objects")

        for key in quiz_config:
            if key not in self.QUIZ_KEYS:
                self.logger.warning(f"Ignoring unknown quiz setting '{key}' in {config_path}")

        self.apply_overrides(
            source_file=quiz_config.get('file'),
            time_limit=quiz_config.get('time_limit'),
            random_order=quiz_config.get('shuffle'),
            clock_start=quiz_config.get('clock_start'),
            log_level=log_config.get('level'),
        )
        if 'question_count' in quiz_config:
            self.set_question_count(quiz_config['question_count'])
        if 'log_directory' in log_config:
            self.set_log_directory(log_config['log_directory'])

        self.logger.info(f"Loaded configuration from {config_path}")
        return config

    def apply_overrides(
        self,
        source_file: Optional[str] = None,
        time_limit: Optional[int] = None,
        random_order: Optional[bool] = None,
        question_count: Optional[int] = None,
        clock_start: Optional[Any] = None,
        log_level: Optional[str] = None
    ) -> None:
        """
        Apply every value that is not None; later calls win over earlier ones.

        Invalid values are recorded and reported by validate_settings().
        """
        if source_file is not None:
            self.set_source_file(source_file)
        if time_limit is not None:
            self.set_time_limit(time_limit)
        if random_order is not None:
            self.set_random_order(random_order)
        if question_count is not None:
            self.set_question_count(question_count)
        if clock_start is not None:
            self.set_clock_start(clock_start)
        if log_level is not None:
            self.set_log_level(log_level)

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            source_file=self.DEFAULT_SOURCE_FILE,
            time_limit=self.DEFAULT_TIME_LIMIT,
            random_order=self.DEFAULT_RANDOM_ORDER,
            question_count=self.DEFAULT_QUESTION_COUNT,
            clock_start=self.DEFAULT_CLOCK_START
        )
        self._log_level = self.DEFAULT_LOG_LEVEL
        self._log_directory = None
        self._issues.clear()
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and any rejected values.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": list(self._issues.values())
        }

        if Path(self._settings.source_file).suffix.lower() != self.SOURCE_SUFFIX:
            validation_result["issues"].append(f"Invalid question file: {self._settings.source_file}")

        if self._settings.time_limit < self.MIN_TIME_LIMIT:
            validation_result["issues"].append(f"Invalid time limit: {self._settings.time_limit}")

        if (self._settings.question_count is not None and
                self._settings.question_count < self.MIN_QUESTION_COUNT):
            validation_result["issues"].append(f"Invalid question count: {self._settings.question_count}")

        validation_result["valid"] = not validation_result["issues"]
        return validation_result

    def get_user_friendly_validation_errors(self) -> List[str]:
        """
        Get user-friendly validation error messages for current settings.

        Returns:
            List of user-friendly error messages
        """
        user_friendly_errors = []

        for issue in self.validate_settings()["issues"]:
            lowered = issue.lower()
            if "time limit" in lowered:
                user_friendly_errors.append(
                    f"❌ Time Limit Issue: {issue}. Please use --limit with a positive number of seconds."
                )
            elif "question file" in lowered:
                user_friendly_errors.append(
                    f"❌ Question File Issue: {issue}. Please use --file with a {self.SOURCE_SUFFIX} file."
                )
            elif "question count" in lowered:
                user_friendly_errors.append(
                    f"❌ Question Count Issue: {issue}. Please use --count with at least {self.MIN_QUESTION_COUNT}."
                )
            else:
                user_friendly_errors.append(f"❌ Configuration Issue: {issue}")

        return user_friendly_errors

    def build_settings(self) -> QuizSettings:
        """
        Return validated settings for a quiz run.

        Raises:
            ConfigurationError: If any setting is invalid
        """
        errors = self.get_user_friendly_validation_errors()
        if errors:
            raise ConfigurationError("\n".join(errors))
        return self.get_quiz_settings()

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        question_count_str = (
            str(self._settings.question_count)
            if self._settings.question_count is not None
            else "all available"
        )
        order_str = "random" if self._settings.random_order else "file order"

        return (
            f"Quiz Settings:\n"
            f"• Question file: {self._settings.source_file}\n"
            f"• Time limit: {self._settings.time_limit} seconds\n"
            f"• Questions: {question_count_str}\n"
            f"• Order: {order_str}\n"
            f"• Countdown starts on: {self._settings.clock_start.value}"
        )

    def _accept(self, key: str, message: str) -> Dict[str, Any]:
        self._issues.pop(key, None)
        self.logger.info(message)
        return {
            'success': True,
            'message': message,
            'user_message': f"✅ {message}"
        }

    def _reject(self, key: str, error_msg: str, user_message: str) -> Dict[str, Any]:
        self._issues[key] = error_msg
        self.logger.info(f"Rejected {key} setting: {error_msg}")
        return {
            'success': False,
            'error': error_msg,
            'user_message': user_message
        }
