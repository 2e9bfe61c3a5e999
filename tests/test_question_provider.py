"""
Unit tests for the trivia API question provider.
"""
import asyncio
import json
import unittest
from unittest.mock import ANY, MagicMock, Mock, patch

import aiohttp

from quizapp.models import Question, QuizSettings
from quizapp.question_provider import (
    MAX_ANSWER_OPTIONS,
    QuestionProviderError,
    TriviaQuestionProvider,
)
from tests.test_fixtures import MockHttpObjects, TestFixtures


class TestParseQuestions(unittest.TestCase):
    """Test cases for payload validation."""

    def test_parse_valid_payload(self):
        questions = TriviaQuestionProvider.parse_questions(TestFixtures.create_trivia_payload())

        self.assertEqual(len(questions), 2)
        self.assertEqual(questions[0], Question(
            text="Which element has the symbol O?",
            correct_answer="Oxygen",
            incorrect_answers=("Hydrogen", "Nitrogen", "Helium"),
            category="science",
            difficulty="easy",
            question_id="622a1c367cc59eab6f94fc5b"
        ))
        self.assertIsInstance(questions, tuple)

    def test_parse_empty_payload(self):
        self.assertEqual(TriviaQuestionProvider.parse_questions([]), ())

    def test_parse_minimal_record(self):
        payload = [{"question": {"text": "2+2?"}, "correctAnswer": "4", "incorrectAnswers": []}]
        questions = TriviaQuestionProvider.parse_questions(payload)

        self.assertEqual(questions[0].all_answers(), ["4"])
        self.assertIsNone(questions[0].category)

    def test_parse_invalid_payloads(self):
        """Every contract violation is reported, never partially accepted."""
        for payload in TestFixtures.create_invalid_payloads():
            with self.subTest(payload=payload):
                with self.assertRaises(QuestionProviderError):
                    TriviaQuestionProvider.parse_questions(payload)

    def test_parse_error_names_the_record(self):
        payload = TestFixtures.create_trivia_payload()
        del payload[1]["correctAnswer"]

        with self.assertRaises(QuestionProviderError) as context:
            TriviaQuestionProvider.parse_questions(payload)

        self.assertEqual(str(context.exception), "Question 1 is missing 'correctAnswer'")

    def test_parse_rejects_too_many_options(self):
        payload = [{
            "question": {"text": "Pick one"},
            "correctAnswer": "a",
            "incorrectAnswers": [f"wrong {i}" for i in range(MAX_ANSWER_OPTIONS)],
        }]

        with self.assertRaises(QuestionProviderError) as context:
            TriviaQuestionProvider.parse_questions(payload)

        self.assertIn("more than 20 answer options", str(context.exception))

    def test_parse_accepts_option_limit(self):
        payload = [{
            "question": {"text": "Pick one"},
            "correctAnswer": "a",
            "incorrectAnswers": [f"wrong {i}" for i in range(MAX_ANSWER_OPTIONS - 1)],
        }]

        questions = TriviaQuestionProvider.parse_questions(payload)

        self.assertEqual(len(questions[0].all_answers()), MAX_ANSWER_OPTIONS)


class TestFetchQuestions(unittest.IsolatedAsyncioTestCase):
    """Test cases for the HTTP fetch with a mocked aiohttp session."""

    def setUp(self):
        self.settings = TestFixtures.create_sample_settings()

    async def test_fetch_success(self):
        session = MockHttpObjects.create_mock_session(TestFixtures.create_trivia_payload())
        provider = TriviaQuestionProvider(self.settings, session=session)

        questions = await provider.fetch_questions()

        self.assertEqual([q.correct_answer for q in questions], ["Oxygen", "1066"])
        session.get.assert_called_once_with(self.settings.api_url, params={'limit': '4'}, timeout=ANY)

    async def test_fetch_without_limit_sends_no_params(self):
        settings = QuizSettings(api_url="https://trivia.example.com/q", question_limit=None)
        session = MockHttpObjects.create_mock_session([])
        provider = TriviaQuestionProvider(settings, session=session)

        questions = await provider.fetch_questions()

        self.assertEqual(questions, ())
        session.get.assert_called_once_with("https://trivia.example.com/q", params={}, timeout=ANY)

    async def test_fetch_uses_configured_timeout(self):
        session = MockHttpObjects.create_mock_session([])
        await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

        timeout = session.get.call_args.kwargs['timeout']
        self.assertIsInstance(timeout, aiohttp.ClientTimeout)
        self.assertEqual(timeout.total, 5.0)

    async def test_fetch_http_error_status(self):
        response = MockHttpObjects.create_mock_response()
        response.raise_for_status.side_effect = aiohttp.ClientResponseError(
            request_info=Mock(), history=(), status=503, message="Service Unavailable"
        )
        session = MockHttpObjects.create_mock_session(response=response)

        with self.assertRaises(QuestionProviderError) as context:
            await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

        self.assertEqual(str(context.exception), "HTTP 503: Service Unavailable")

    async def test_fetch_network_error(self):
        session = Mock()
        session.get.side_effect = aiohttp.ClientConnectionError("Connection refused")

        with self.assertRaises(QuestionProviderError) as context:
            await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

        self.assertIn("Connection refused", str(context.exception))

    async def test_fetch_timeout(self):
        response = MockHttpObjects.create_mock_response()
        response.json.side_effect = asyncio.TimeoutError()
        session = MockHttpObjects.create_mock_session(response=response)

        with self.assertRaises(QuestionProviderError) as context:
            await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

        self.assertEqual(str(context.exception), "Request timed out after 5.0 seconds")

    async def test_fetch_invalid_json(self):
        response = MockHttpObjects.create_mock_response()
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        session = MockHttpObjects.create_mock_session(response=response)

        with self.assertRaises(QuestionProviderError) as context:
            await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

        self.assertTrue(str(context.exception).startswith("Invalid JSON in response"))

    async def test_fetch_non_json_content_type(self):
        response = MockHttpObjects.create_mock_response()
        response.json.side_effect = aiohttp.ContentTypeError(
            request_info=Mock(), history=(), message="unexpected mimetype: text/html"
        )
        session = MockHttpObjects.create_mock_session(response=response)

        with self.assertRaises(QuestionProviderError) as context:
            await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

        self.assertEqual(str(context.exception), "Response is not JSON: unexpected mimetype: text/html")

    async def test_fetch_malformed_payload(self):
        session = MockHttpObjects.create_mock_session({"error": "rate limited"})

        with self.assertRaises(QuestionProviderError):
            await TriviaQuestionProvider(self.settings, session=session).fetch_questions()

    async def test_fetch_opens_private_session_when_none_given(self):
        inner = MockHttpObjects.create_mock_session(TestFixtures.create_trivia_payload())
        session_context = MagicMock()
        session_context.__aenter__.return_value = inner
        session_context.__aexit__.return_value = False

        with patch('quizapp.question_provider.aiohttp.ClientSession', return_value=session_context) as factory:
            questions = await TriviaQuestionProvider(self.settings).fetch_questions()

        factory.assert_called_once_with()
        session_context.__aexit__.assert_awaited_once()
        self.assertEqual(len(questions), 2)


if __name__ == '__main__':
    unittest.main()
