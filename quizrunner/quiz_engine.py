"""
Quiz engine core logic for the timed quiz runner.
Handles question selection, ordering, answer normalization and the timed
question loop.
"""
import asyncio
import logging
import random
import sys
import threading
import time
from typing import Callable, List, Optional, Protocol

from rich.console import Console

from .errors import InputError
from .models import (
    Question, QuizResult, QuizSettings, ScoreTally, SessionState, StopReason
)

# Set up logger for session lifecycle events
logger = logging.getLogger(__name__)

ANSWER_THREAD_PREFIX = "answer-attempt"

# Read failures that end a run with StopReason.INPUT_ERROR
READ_ERRORS = (EOFError, OSError, UnicodeDecodeError)


class SessionLifecycleLogger:
    """Structured logging for quiz session lifecycle events."""

    @staticmethod
    def log_state_transition(from_state: SessionState, to_state: SessionState, reason: str = None) -> None:
        """Log session state transitions."""
        logger.info(
            f"Session lifecycle: STATE_TRANSITION - {from_state.value} -> {to_state.value}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'session_state_transition',
                'from_state': from_state.value,
                'to_state': to_state.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_deadline_armed(duration: float) -> None:
        """Log the moment the quiz countdown starts."""
        logger.info(
            f"Session lifecycle: DEADLINE_ARMED - Duration {duration}s",
            extra={
                'event_type': 'deadline_armed',
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_deadline_fired(asked: int, total: int) -> None:
        """Log deadline expiry."""
        logger.info(
            f"Session lifecycle: DEADLINE_FIRED - {asked}/{total} questions answered",
            extra={
                'event_type': 'deadline_fired',
                'asked': asked,
                'total': total,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_question_presented(index: int, remaining_time: float) -> None:
        """Log a question being shown."""
        logger.debug(
            f"Session lifecycle: QUESTION - #{index}, Remaining {remaining_time:.1f}s",
            extra={
                'event_type': 'question_presented',
                'index': index,
                'remaining_time': remaining_time,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_answer_recorded(index: int, is_correct: bool) -> None:
        """Log a scored answer."""
        logger.debug(
            f"Session lifecycle: ANSWER - #{index}, Correct {is_correct}",
            extra={
                'event_type': 'answer_recorded',
                'index': index,
                'is_correct': is_correct,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_attempt_abandoned(index: int) -> None:
        """Log an answer wait that lost the race against the deadline."""
        logger.info(
            f"Session lifecycle: ATTEMPT_ABANDONED - #{index}",
            extra={
                'event_type': 'attempt_abandoned',
                'index': index,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_late_answer_discarded(thread_name: str) -> None:
        """Log an answer that arrived after its attempt was abandoned."""
        logger.debug(
            f"Session lifecycle: LATE_ANSWER_DISCARDED - {thread_name}",
            extra={
                'event_type': 'late_answer_discarded',
                'thread_name': thread_name,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_input_error(error_type: str, error_message: str, operation: str) -> None:
        """Log an input read failure with context."""
        logger.error(
            f"Session lifecycle: INPUT_ERROR - Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'input_error',
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


def normalize_answer(raw: str) -> str:
    """
    Canonicalize answer text for comparison.

    Strips surrounding whitespace (including the line terminator) and folds case.
    """
    return raw.strip().casefold()


def is_correct(typed: str, expected: str) -> bool:
    """Exact match of normalized answers."""
    return normalize_answer(typed) == normalize_answer(expected)


class LineReader(Protocol):
    """Blocking, line-oriented source of user input."""

    def read_line(self) -> str:
        """Return one line including its terminator; raise EOFError when closed."""
        ...


class StdinReader:
    """Reads answers from standard input."""

    def read_line(self) -> str:
        stream = sys.stdin
        # None when the process was started without a stdin descriptor
        if stream is None:
            raise EOFError("standard input is not available")
        try:
            line = stream.readline()
        except UnicodeDecodeError:
            raise
        except ValueError as e:
            # readline on a closed file object
            raise EOFError(f"standard input closed: {e}") from e
        if not line:
            raise EOFError("standard input closed")
        return line


class Deadline:
    """
    Single point in time after which no answer is accepted.

    Created unarmed with a duration and armed exactly once; after that it is
    read-only and shared by every answer wait of the session.
    """

    def __init__(self, duration: float, clock: Callable[[], float] = time.monotonic):
        if duration < 0:
            raise ValueError(f"Deadline duration cannot be negative: {duration}")
        self.duration = duration
        self._clock = clock
        self._expires_at: Optional[float] = None

    def arm(self) -> None:
        """
        Start the countdown.

        Raises:
            RuntimeError: If the deadline was already armed
        """
        if self._expires_at is not None:
            raise RuntimeError("Deadline is already armed")
        self._expires_at = self._clock() + self.duration
        SessionLifecycleLogger.log_deadline_armed(self.duration)

    @property
    def armed(self) -> bool:
        return self._expires_at is not None

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at

    def remaining(self) -> float:
        """Seconds left before expiry (full duration while unarmed)."""
        if self._expires_at is None:
            return float(self.duration)
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    async def wait(self) -> None:
        """Sleep until the deadline passes."""
        if self._expires_at is None:
            raise RuntimeError("Cannot wait on a deadline that is not armed")
        while not self.expired():
            await asyncio.sleep(self.remaining())


class AnswerAttempt:
    """
    One blocking line read racing the session deadline.

    The read runs on a daemon thread and hands its result to the event loop
    through a future. An abandoned attempt is never joined; whatever it reads
    later is dropped.
    """

    def __init__(self, reader: LineReader, loop: asyncio.AbstractEventLoop, index: int):
        self._reader = reader
        self._loop = loop
        self.index = index
        self.future: asyncio.Future = loop.create_future()
        self._thread = threading.Thread(
            target=self._read,
            name=f"{ANSWER_THREAD_PREFIX}-{index}",
            daemon=True
        )

    def start(self) -> "AnswerAttempt":
        self._thread.start()
        return self

    def abandon(self) -> None:
        """Stop waiting for this attempt."""
        if not self.future.done():
            self.future.cancel()

    def _read(self) -> None:
        try:
            answer = normalize_answer(self._reader.read_line())
        except Exception as e:
            self._deliver(self._fail, e)
        else:
            self._deliver(self._succeed, answer)

    def _deliver(self, callback: Callable, value) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, value)
        except RuntimeError:
            # Event loop already closed: the session ended without us
            SessionLifecycleLogger.log_late_answer_discarded(self._thread.name)

    def _succeed(self, answer: str) -> None:
        if self.future.done():
            SessionLifecycleLogger.log_late_answer_discarded(self._thread.name)
            return
        self.future.set_result(answer)

    def _fail(self, error: BaseException) -> None:
        if self.future.done():
            SessionLifecycleLogger.log_late_answer_discarded(self._thread.name)
            return
        self.future.set_exception(error)


def pending_answer_attempts() -> List[threading.Thread]:
    """Answer reader threads still blocked on input."""
    return [
        thread for thread in threading.enumerate()
        if thread.name.startswith(ANSWER_THREAD_PREFIX) and thread.is_alive()
    ]


class QuizEngine:
    """Question selection and ordering."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the quiz engine.

        Args:
            rng: Random source for shuffling; OS entropy when omitted
        """
        self._rng = rng if rng is not None else random.SystemRandom()

    def select_questions(self, questions: List[Question], settings: QuizSettings) -> List[Question]:
        """
        Select and order questions based on quiz settings.

        Args:
            questions: List of available questions
            settings: Quiz configuration settings

        Returns:
            List of selected and ordered questions
        """
        # Make a copy to avoid modifying the original list
        selected_questions = questions.copy()

        if settings.random_order:
            selected_questions = self.shuffle_questions(selected_questions)

        if settings.question_count is not None:
            selected_questions = self.limit_question_count(selected_questions, settings.question_count)

        return selected_questions

    def shuffle_questions(self, questions: List[Question]) -> List[Question]:
        """
        Shuffle questions with an unbiased Fisher-Yates pass.

        Args:
            questions: List of questions to shuffle

        Returns:
            New list with questions in random order
        """
        shuffled = questions.copy()
        for i in range(len(shuffled) - 1, 0, -1):
            j = self._rng.randint(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def limit_question_count(self, questions: List[Question], count: int) -> List[Question]:
        """
        Limit the number of questions to the specified count.

        Args:
            questions: List of questions to limit
            count: Maximum number of questions to return

        Returns:
            List limited to the specified count

        Note:
            If count is greater than available questions, returns all questions.
            If count is less than 1, returns empty list.
        """
        if count < 1:
            return []

        return questions[:count]


class TimedQuizEngine:
    """
    Runs one quiz session against a single shared deadline.

    The control coroutine presents questions in order and, for each one,
    races an AnswerAttempt against the deadline. When both are ready the
    deadline wins and the answer is not scored.
    """

    def __init__(
        self,
        questions: List[Question],
        deadline: Deadline,
        reader: Optional[LineReader] = None,
        console: Optional[Console] = None,
        acknowledge: bool = True
    ):
        """
        Initialize the engine.

        Args:
            questions: Ordered questions to ask
            deadline: Session deadline; armed here after acknowledgment unless already armed
            reader: Source of typed answers, standard input by default
            console: Output console, standard output by default
            acknowledge: Wait for Enter before arming the deadline
        """
        self._questions = list(questions)
        self._deadline = deadline
        self._reader = reader if reader is not None else StdinReader()
        self.console = console if console is not None else Console(highlight=False)
        self._acknowledge = acknowledge
        self._state = SessionState.AWAITING_START
        self._stop_reason: Optional[StopReason] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._stop_reason

    async def run(self) -> QuizResult:
        """
        Run the quiz until time expires, questions run out, or input fails.

        Returns:
            QuizResult with the final tally and stop reason
        """
        if self._state is not SessionState.AWAITING_START:
            raise RuntimeError(f"Quiz engine cannot run from state {self._state.value}")

        tally = ScoreTally()
        loop = asyncio.get_running_loop()

        if self._acknowledge:
            try:
                await self._wait_for_acknowledgment(loop)
            except InputError as e:
                return self._stop(StopReason.INPUT_ERROR, tally, e)

        if not self._deadline.armed:
            self._deadline.arm()
        self._transition(SessionState.RUNNING, "quiz started")

        expiry = asyncio.ensure_future(self._deadline.wait())
        error: Optional[BaseException] = None
        reason = StopReason.EXHAUSTED

        try:
            for index, question in enumerate(self._questions, start=1):
                if self._deadline.expired():
                    reason = StopReason.TIME_EXPIRED
                    break

                self._present(index, question)
                attempt = AnswerAttempt(self._reader, loop, index).start()

                done, _ = await asyncio.wait(
                    {attempt.future, expiry},
                    return_when=asyncio.FIRST_COMPLETED
                )

                if expiry in done or self._deadline.expired():
                    attempt.abandon()
                    SessionLifecycleLogger.log_attempt_abandoned(index)
                    reason = StopReason.TIME_EXPIRED
                    break

                try:
                    answer = attempt.future.result()
                except READ_ERRORS as e:
                    SessionLifecycleLogger.log_input_error(type(e).__name__, str(e), f"answer_{index}")
                    error = InputError(f"Failed to read answer to question #{index}: {e}")
                    reason = StopReason.INPUT_ERROR
                    break

                correct = is_correct(answer, question.answer)
                tally.record(correct)
                SessionLifecycleLogger.log_answer_recorded(index, correct)
        finally:
            expiry.cancel()
            await asyncio.gather(expiry, return_exceptions=True)

        if reason is StopReason.TIME_EXPIRED:
            SessionLifecycleLogger.log_deadline_fired(tally.asked, len(self._questions))
            self.console.print()
            self.console.print("[bold yellow]Time's up![/bold yellow]")

        return self._stop(reason, tally, error)

    async def _wait_for_acknowledgment(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Show the welcome banner and wait for Enter. Not subject to the deadline.

        Raises:
            InputError: If standard input fails before the quiz starts
        """
        self.console.print("[bold cyan]Welcome to Quiz![/bold cyan]")
        self.console.print()
        self.console.print(
            f"You have {self._deadline.duration:g} seconds for {len(self._questions)} questions."
        )
        self.console.print("Press Enter when you are ready")

        attempt = AnswerAttempt(self._reader, loop, 0).start()
        try:
            await attempt.future
        except READ_ERRORS as e:
            SessionLifecycleLogger.log_input_error(type(e).__name__, str(e), "acknowledgment")
            raise InputError(f"Failed to read input before the quiz started: {e}") from e

    def _present(self, index: int, question: Question) -> None:
        SessionLifecycleLogger.log_question_presented(index, self._deadline.remaining())
        self.console.print(
            f"Problem #{index}: {question.text} = ",
            end="",
            markup=False,
            soft_wrap=True
        )
        self.console.file.flush()

    def _transition(self, to_state: SessionState, reason: str) -> None:
        SessionLifecycleLogger.log_state_transition(self._state, to_state, reason)
        self._state = to_state

    def _stop(self, reason: StopReason, tally: ScoreTally, error: Optional[BaseException] = None) -> QuizResult:
        self._stop_reason = reason
        self._transition(SessionState.STOPPED, reason.value)
        return QuizResult(
            tally=tally,
            total=len(self._questions),
            reason=reason,
            error=error
        )
