"""
Quiz engine core logic for the QuizApp trivia bot.
Drives one quiz session: loading, answer shuffling, selection, scoring and results.
"""
import logging
import random
import time
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .models import Question, QuizResults
from .question_provider import QuestionProviderError

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error loading Quiz data: "
NO_QUESTION_MESSAGE = "No question available"
FEEDBACK_CORRECT = "Correct!"
FEEDBACK_INCORRECT = "Incorrect!"


class EngineState(Enum):
    """Enumeration of quiz engine states."""
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    UNANSWERED = "unanswered"
    ANSWERED = "answered"
    FINISHED = "finished"


class QuizControllerError(Exception):
    """Base exception for quiz session errors."""
    pass


class InvalidSessionStateError(QuizControllerError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


def shuffle_answers(answers: Sequence[str], rng: Optional[random.Random] = None) -> List[str]:
    """
    Return a uniformly shuffled copy of the answers (Fisher-Yates).

    Args:
        answers: Answer options to shuffle
        rng: Randomness source, module-level random when None

    Returns:
        New list holding the same options in random order
    """
    rng = rng or random
    shuffled = list(answers)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def get_remark(score: int, total: int) -> str:
    """Remark shown on the results card; exactly half counts as a good job."""
    if score == total:
        return "Excellent!"
    if score >= total / 2:
        return "Good job!"
    return "Try again!"


class QuizEngine:
    """
    State machine for a single quiz session.

    The engine owns the Question Set and every piece of mutable session
    state. Invalid user actions are ignored and reported by a False return.
    """

    def __init__(self, rng: Optional[random.Random] = None, session_id: str = ""):
        """
        Initialize the engine in the loading state.

        Args:
            rng: Randomness source used to shuffle answers
            session_id: Label used in log records
        """
        self._rng = rng or random.Random()
        self.session_id = session_id

        self._state = EngineState.LOADING
        self._questions: Tuple[Question, ...] = ()
        self._initialized = False
        self._closed = False
        self.error_message: Optional[str] = None

        self.current_index = 0
        self.shuffled_answers: List[str] = []
        self.selected_answer: Optional[str] = None
        self.score = 0
        self.correct_count = 0
        self.incorrect_count = 0

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def is_answered(self) -> bool:
        return self._state == EngineState.ANSWERED

    @property
    def is_finished(self) -> bool:
        return self._state == EngineState.FINISHED

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def answered_count(self) -> int:
        return self.correct_count + self.incorrect_count

    @property
    def current_question(self) -> Optional[Question]:
        if self._state not in (EngineState.UNANSWERED, EngineState.ANSWERED):
            return None
        return self._questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self._questions) - 1

    @property
    def feedback(self) -> Optional[str]:
        """Per-question feedback, only once the answer has been revealed."""
        if self._state != EngineState.ANSWERED:
            return None
        if self.current_question.is_correct(self.selected_answer):
            return FEEDBACK_CORRECT
        return FEEDBACK_INCORRECT

    async def initialize(self, provider) -> EngineState:
        """
        Request the Question Set from the provider and enter the first question.

        Args:
            provider: Object with an awaitable fetch_questions()

        Returns:
            State after loading

        Raises:
            InvalidSessionStateError: If the engine was already initialized
        """
        if self._initialized:
            raise InvalidSessionStateError("Quiz session has already been initialized")
        self._initialized = True

        start = time.time()
        try:
            questions = await provider.fetch_questions()
            error = None
        except QuestionProviderError as e:
            questions = ()
            error = str(e)

        if self._closed:
            logger.info(
                f"Discarding question fetch for closed session {self.session_id}",
                extra={'event_type': 'fetch_discarded', 'session_id': self.session_id}
            )
            return self._state

        if error is not None:
            self.error_message = ERROR_PREFIX + error
            self._state = EngineState.ERROR
            logger.error(
                f"Quiz session {self.session_id} failed to load: {error}",
                extra={'event_type': 'fetch_failed', 'session_id': self.session_id}
            )
            return self._state

        self._questions = tuple(questions)
        logger.info(
            f"Quiz session {self.session_id} loaded {len(self._questions)} questions "
            f"in {time.time() - start:.3f}s",
            extra={
                'event_type': 'fetch_completed',
                'session_id': self.session_id,
                'question_count': len(self._questions),
            }
        )

        if not self._questions:
            self._state = EngineState.EMPTY
            return self._state

        self._enter_question(0)
        return self._state

    def _enter_question(self, index: int) -> None:
        self.current_index = index
        self.shuffled_answers = shuffle_answers(self._questions[index].all_answers(), self._rng)
        self.selected_answer = None
        self._state = EngineState.UNANSWERED
        logger.debug(f"Session {self.session_id} entered question {index + 1}/{len(self._questions)}")

    def select_answer(self, answer: str) -> bool:
        """
        Record the chosen option without scoring it.

        Returns:
            True if the selection was recorded
        """
        if self._closed or self._state != EngineState.UNANSWERED:
            return False
        if answer not in self.shuffled_answers:
            logger.debug(f"Ignoring unknown option {answer!r} in session {self.session_id}")
            return False
        self.selected_answer = answer
        return True

    def can_reveal(self) -> bool:
        return (not self._closed and self._state == EngineState.UNANSWERED
                and bool(self.selected_answer))

    def reveal_answer(self) -> bool:
        """
        Commit the selected answer: score it and freeze the feedback.

        Returns:
            True if the answer was committed, False if nothing was selected
            or the question was already answered
        """
        if not self.can_reveal():
            return False

        if self.current_question.is_correct(self.selected_answer):
            self.score += 1
            self.correct_count += 1
        else:
            self.incorrect_count += 1
        self._state = EngineState.ANSWERED

        logger.debug(
            f"Session {self.session_id} committed answer for question {self.current_index + 1}: "
            f"{self.feedback}"
        )
        return True

    def advance(self) -> bool:
        """
        Move past an answered question, finishing after the last one.

        Returns:
            True if the session moved on
        """
        if self._closed or self._state != EngineState.ANSWERED:
            return False

        if self.is_last_question:
            self._state = EngineState.FINISHED
            logger.info(
                f"Quiz session {self.session_id} finished with score {self.score}/{self.total_questions}",
                extra={
                    'event_type': 'session_finished',
                    'session_id': self.session_id,
                    'score': self.score,
                    'total_questions': self.total_questions,
                }
            )
        else:
            self._enter_question(self.current_index + 1)
        return True

    def next(self) -> bool:
        """Single-button flow: reveal when unanswered, advance when answered."""
        if self._state == EngineState.ANSWERED:
            return self.advance()
        return self.reveal_answer()

    def results(self) -> QuizResults:
        """
        Final summary of the session.

        Raises:
            InvalidSessionStateError: If the session has not finished
        """
        if self._state != EngineState.FINISHED:
            raise InvalidSessionStateError(
                f"Results are only available once finished (state: {self._state.value})"
            )
        return QuizResults(
            score=self.score,
            total_questions=self.total_questions,
            correct_count=self.correct_count,
            incorrect_count=self.incorrect_count,
            remark=get_remark(self.score, self.total_questions),
        )

    def close(self) -> None:
        """Tear the session down; later fetch results and actions are ignored."""
        if not self._closed:
            self._closed = True
            logger.info(
                f"Quiz session {self.session_id} closed in state {self._state.value}",
                extra={'event_type': 'session_closed', 'session_id': self.session_id}
            )
