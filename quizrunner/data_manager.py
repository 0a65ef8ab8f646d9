"""
Data manager for CSV question files.
"""
import csv
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .errors import MalformedInputError, SourceUnavailableError
from .models import Question


class DataManager:
    """Loads and validates `question,answer` CSV files."""

    def __init__(self):
        """Initialize DataManager with no loaded questions."""
        self.logger = logging.getLogger(__name__)
        self.source_path: Optional[Path] = None
        self.loaded_questions: List[Question] = []
        self.skipped_blank_rows = 0

    def load_questions(self, file_path: str) -> List[Question]:
        """
        Load every question from a CSV file, in row order.

        Loading is fail-fast: the first malformed row aborts the whole load
        and no questions are kept.

        Args:
            file_path: Path to a CSV file with `question,answer` rows

        Returns:
            List of Question objects in file order

        Raises:
            SourceUnavailableError: If the file cannot be opened or read
            MalformedInputError: If a row has fewer than two fields or an empty prompt
        """
        self.loaded_questions = []
        self.skipped_blank_rows = 0
        self.source_path = Path(file_path)

        rows = self._read_rows(self.source_path)
        questions = []

        for row_number, row in enumerate(rows, start=1):
            if not row:
                self.skipped_blank_rows += 1
                continue
            questions.append(self._parse_row(row, row_number))

        if not questions:
            self.logger.warning(f"No questions found in {self.source_path}")

        self.loaded_questions = questions
        self.logger.info(
            f"Loaded {len(questions)} questions from {self.source_path}",
            extra={
                'event_type': 'questions_loaded',
                'source_file': str(self.source_path),
                'question_count': len(questions),
            }
        )
        return list(questions)

    def _read_rows(self, file_path: Path) -> List[List[str]]:
        """
        Read all CSV rows from a file.

        Args:
            file_path: Path to the CSV file

        Returns:
            List of rows, each a list of fields

        Raises:
            SourceUnavailableError: If the file is missing, unreadable or not text
        """
        if not file_path.exists():
            raise SourceUnavailableError(f"Failed to open the CSV file: {file_path} (file not found)")

        if file_path.is_dir():
            raise SourceUnavailableError(f"Failed to open the CSV file: {file_path} (is a directory)")

        if not os.access(file_path, os.R_OK):
            raise SourceUnavailableError(f"Failed to open the CSV file: {file_path} (permission denied)")

        try:
            with open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
                return list(csv.reader(f))
        except UnicodeDecodeError as e:
            raise SourceUnavailableError(f"Failed to read the CSV file: {file_path} (not UTF-8 text: {e})") from e
        except csv.Error as e:
            raise MalformedInputError(f"Failed to parse the CSV file: {file_path}: {e}") from e
        except OSError as e:
            raise SourceUnavailableError(f"Failed to read the CSV file: {file_path}: {e}") from e

    def _parse_row(self, row: Sequence[str], row_number: int) -> Question:
        """
        Turn one CSV row into a Question.

        Args:
            row: Fields of the row
            row_number: 1-based row number, for error messages

        Returns:
            Question built from the first two fields

        Raises:
            MalformedInputError: If the row has no answer field or an empty prompt
        """
        if len(row) < 2:
            raise MalformedInputError(
                f"Row {row_number} of {self.source_path} has no answer field: {','.join(row)!r}",
                row_number=row_number
            )

        text, answer = row[0], row[1]
        if not text.strip():
            raise MalformedInputError(
                f"Row {row_number} of {self.source_path} has an empty question",
                row_number=row_number
            )

        if len(row) > 2:
            self.logger.debug(f"Ignoring {len(row) - 2} extra fields on row {row_number}")

        return Question(text=text, answer=answer.strip())

    def get_question_count(self) -> int:
        """
        Get the number of questions from the last load.

        Returns:
            Number of loaded questions
        """
        return len(self.loaded_questions)

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last load operation.

        Returns:
            Dictionary with loading statistics
        """
        return {
            'source_file': str(self.source_path) if self.source_path else None,
            'question_count': self.get_question_count(),
            'skipped_blank_rows': self.skipped_blank_rows,
        }
