"""
Question provider for the QuizApp trivia bot.
Fetches a batch of questions from the trivia HTTP API and validates the payload.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .models import Question, QuizSettings

logger = logging.getLogger(__name__)

# Every option becomes a button; Discord fits 20 beside the control row
MAX_ANSWER_OPTIONS = 20


class QuestionProviderError(Exception):
    """Raised when the question batch cannot be fetched or is malformed."""
    pass


class TriviaQuestionProvider:
    """Single-shot client for the trivia API."""

    def __init__(self, settings: Optional[QuizSettings] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the provider.

        Args:
            settings: Quiz settings holding the API url, timeout and limit
            session: Optional shared aiohttp session; a private one is opened
                per fetch when omitted
        """
        self.settings = settings or QuizSettings()
        self._session = session

    def _build_params(self) -> Dict[str, str]:
        params = {}
        if self.settings.question_limit is not None:
            params['limit'] = str(self.settings.question_limit)
        return params

    def _build_timeout(self) -> aiohttp.ClientTimeout:
        # None keeps the request open until the server answers
        return aiohttp.ClientTimeout(total=self.settings.request_timeout)

    async def fetch_questions(self) -> Tuple[Question, ...]:
        """
        Fetch one Question Set from the API.

        Returns:
            Tuple of Question objects, possibly empty

        Raises:
            QuestionProviderError: On network failure, non-success status,
                timeout or a payload of the wrong shape
        """
        url = self.settings.api_url
        logger.info(f"Fetching questions from {url}")

        try:
            if self._session is not None:
                payload = await self._get_json(self._session, url)
            else:
                async with aiohttp.ClientSession() as session:
                    payload = await self._get_json(session, url)
        except asyncio.TimeoutError:
            raise QuestionProviderError(
                f"Request timed out after {self.settings.request_timeout} seconds"
            )
        except aiohttp.ContentTypeError as e:
            raise QuestionProviderError(f"Response is not JSON: {e.message}") from e
        except aiohttp.ClientResponseError as e:
            raise QuestionProviderError(f"HTTP {e.status}: {e.message}") from e
        except aiohttp.ClientError as e:
            raise QuestionProviderError(f"Network error: {e}") from e
        except ValueError as e:
            raise QuestionProviderError(f"Invalid JSON in response: {e}") from e

        questions = self.parse_questions(payload)
        logger.info(f"Fetched {len(questions)} questions from {url}")
        return questions

    async def _get_json(self, session: aiohttp.ClientSession, url: str) -> Any:
        async with session.get(url, params=self._build_params(),
                               timeout=self._build_timeout()) as response:
            response.raise_for_status()
            return await response.json()

    @classmethod
    def parse_questions(cls, payload: Any) -> Tuple[Question, ...]:
        """
        Convert the API payload into Question objects.

        Expected structure:
        [
            {
                "id": str,                  # Optional
                "category": str,            # Optional
                "difficulty": str,          # Optional
                "question": {"text": str},
                "correctAnswer": str,
                "incorrectAnswers": [str, ...]
            }
        ]

        Raises:
            QuestionProviderError: If any record does not match the structure
        """
        if not isinstance(payload, list):
            raise QuestionProviderError(
                f"Expected a list of questions, got {type(payload).__name__}"
            )

        return tuple(cls._parse_record(record, i) for i, record in enumerate(payload))

    @staticmethod
    def _parse_record(record: Any, index: int) -> Question:
        if not isinstance(record, dict):
            raise QuestionProviderError(f"Question {index} is not an object")

        question = record.get('question')
        text = question.get('text') if isinstance(question, dict) else None
        if not isinstance(text, str):
            raise QuestionProviderError(f"Question {index} is missing 'question.text'")

        correct = record.get('correctAnswer')
        if not isinstance(correct, str):
            raise QuestionProviderError(f"Question {index} is missing 'correctAnswer'")

        incorrect: List[Any] = record.get('incorrectAnswers')
        if not isinstance(incorrect, list) or not all(isinstance(a, str) for a in incorrect):
            raise QuestionProviderError(
                f"Question {index} 'incorrectAnswers' must be a list of strings"
            )
        if len(incorrect) + 1 > MAX_ANSWER_OPTIONS:
            raise QuestionProviderError(
                f"Question {index} has more than {MAX_ANSWER_OPTIONS} answer options"
            )

        return Question(
            text=text,
            correct_answer=correct,
            incorrect_answers=tuple(incorrect),
            category=record.get('category'),
            difficulty=record.get('difficulty'),
            question_id=record.get('id'),
        )
