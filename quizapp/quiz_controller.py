"""
Quiz session controller for the QuizApp trivia bot.
Manages one quiz engine per Discord channel and renders engine state to embeds.
"""
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Any

import aiohttp
import discord

from .config_manager import ConfigManager
from .models import QuizResults, QuizSettings
from .navbar import apply_navbar
from .question_provider import TriviaQuestionProvider
from .quiz_engine import (
    EngineState,
    InvalidSessionStateError,
    NO_QUESTION_MESSAGE,
    QuizControllerError,
    QuizEngine,
)

COLOR_QUESTION = 0x2D3A4A
COLOR_CORRECT = 0x22C55E
COLOR_INCORRECT = 0xEF4444
COLOR_RESULTS = 0xFACC15
COLOR_ERROR = 0xFF0000
COLOR_INFO = 0x334155


class SessionConflictError(QuizControllerError):
    """Raised when attempting to create a session that conflicts with existing session."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when attempting to operate on a non-existent session."""
    pass


@dataclass
class ChannelSession:
    """An active quiz session in a Discord channel."""
    channel_id: int
    owner_id: int
    engine: QuizEngine
    settings: QuizSettings
    start_time: datetime


ProviderFactory = Callable[[QuizSettings], Any]


class QuizController:
    """
    Orchestrates quiz sessions across Discord channels.

    Each channel holds at most one session. A session whose fetch resolves
    after it was stopped is discarded without touching the channel.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        provider_factory: Optional[ProviderFactory] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
        rng_factory: Callable[[], random.Random] = random.Random
    ):
        """
        Initialize the quiz controller.

        Args:
            config_manager: Instance for managing configuration
            provider_factory: Builds a question provider from settings;
                defaults to the trivia API provider
            http_session: Shared aiohttp session for the default provider
            rng_factory: Builds the randomness source of each engine
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager
        self.http_session = http_session
        self._provider_factory = provider_factory or self._default_provider
        self._rng_factory = rng_factory

        # Active sessions mapped by channel ID
        self._active_sessions: Dict[int, ChannelSession] = {}
        # Results of the last finished quiz per channel, shown by /score
        self._finished_results: Dict[int, QuizResults] = {}

        self.logger.info("QuizController initialized")

    def _default_provider(self, settings: QuizSettings) -> TriviaQuestionProvider:
        return TriviaQuestionProvider(settings, session=self.http_session)

    def get_session(self, channel_id: int) -> Optional[ChannelSession]:
        return self._active_sessions.get(channel_id)

    def get_engine(self, channel_id: int) -> Optional[QuizEngine]:
        session = self._active_sessions.get(channel_id)
        return session.engine if session else None

    def has_active_session(self, channel_id: int) -> bool:
        """
        Check if a channel has a quiz that is loading or in progress.

        Args:
            channel_id: Discord channel identifier

        Returns:
            True if channel has active session, False otherwise
        """
        session = self._active_sessions.get(channel_id)
        return session is not None and not session.engine.is_closed

    def create_session(self, channel_id: int, owner_id: int) -> ChannelSession:
        """
        Register a new loading session for the channel.

        Raises:
            SessionConflictError: If the channel already has a session
        """
        if self.has_active_session(channel_id):
            raise SessionConflictError(f"Channel {channel_id} already has an active quiz")

        settings = self.config_manager.get_quiz_settings()
        engine = QuizEngine(rng=self._rng_factory(), session_id=str(channel_id))
        session = ChannelSession(
            channel_id=channel_id,
            owner_id=owner_id,
            engine=engine,
            settings=settings,
            start_time=datetime.now()
        )
        self._active_sessions[channel_id] = session
        self._finished_results.pop(channel_id, None)
        self.logger.info(
            f"Created quiz session for channel {channel_id} (owner {owner_id})",
            extra={'event_type': 'session_created', 'channel_id': channel_id}
        )
        return session

    async def start_quiz(self, channel_id: int, owner_id: int) -> Dict[str, Any]:
        """
        Create a session and load its questions.

        Args:
            channel_id: Discord channel identifier
            owner_id: Discord user that started the quiz

        Returns:
            Dictionary with success status, engine state and user-friendly message
        """
        try:
            session = self.create_session(channel_id, owner_id)
        except SessionConflictError as e:
            self.logger.warning(str(e))
            return {
                'success': False,
                'error': str(e),
                'state': None,
                'user_message': "❌ A quiz is already running in this channel. Use `/stop` to end it first."
            }

        engine = session.engine
        try:
            provider = self._provider_factory(session.settings)
            state = await engine.initialize(provider)
        except Exception:
            if self._active_sessions.get(channel_id) is session:
                engine.close()
                self._remove_session(channel_id)
            raise

        if engine.is_closed or self._active_sessions.get(channel_id) is not session:
            self.logger.info(f"Quiz session for channel {channel_id} was stopped while loading")
            return {
                'success': False,
                'error': "Session stopped while loading",
                'state': state.value,
                'engine': engine,
                'user_message': "ℹ️ The quiz was stopped before the questions arrived."
            }

        if state in (EngineState.ERROR, EngineState.EMPTY):
            # Terminal for this session; the channel is free for a new quiz
            self._remove_session(channel_id)
            message = engine.error_message if state == EngineState.ERROR else NO_QUESTION_MESSAGE
            return {
                'success': False,
                'error': message,
                'state': state.value,
                'engine': engine,
                'user_message': message
            }

        return {
            'success': True,
            'message': f"Quiz started with {engine.total_questions} questions",
            'state': state.value,
            'engine': engine,
            'session_info': self.get_session_progress(channel_id)
        }

    def stop_quiz(self, channel_id: int, engine: Optional[QuizEngine] = None) -> Dict[str, Any]:
        """
        Stop and discard the session of a channel, including one still loading.

        Args:
            channel_id: Discord channel identifier
            engine: Only stop the session if it still runs this engine

        Returns:
            Dictionary with success status and user-friendly message
        """
        session = self._active_sessions.get(channel_id)
        if session is None or (engine is not None and session.engine is not engine):
            return {
                'success': False,
                'error': f"No quiz session in channel {channel_id}",
                'user_message': "❌ There is no quiz running in this channel."
            }

        progress = self.get_session_progress(channel_id)
        session.engine.close()
        self._remove_session(channel_id)
        return {
            'success': True,
            'message': f"Quiz stopped in channel {channel_id}",
            'session_info': progress,
            'user_message': "🛑 Quiz stopped."
        }

    def _remove_session(self, channel_id: int) -> None:
        if self._active_sessions.pop(channel_id, None) is not None:
            self.logger.debug(f"Removed quiz session for channel {channel_id}")

    def _require_engine(self, channel_id: int) -> QuizEngine:
        engine = self.get_engine(channel_id)
        if engine is None:
            raise SessionNotFoundError(f"No quiz session in channel {channel_id}")
        return engine

    def select_answer(self, channel_id: int, answer: str) -> bool:
        return self._require_engine(channel_id).select_answer(answer)

    def reveal_answer(self, channel_id: int) -> bool:
        return self._require_engine(channel_id).reveal_answer()

    def advance(self, channel_id: int) -> bool:
        """
        Advance past the answered question; a finished session leaves the channel.

        Raises:
            SessionNotFoundError: If the channel has no session
        """
        engine = self._require_engine(channel_id)
        advanced = engine.advance()
        if engine.is_finished:
            self._finished_results[channel_id] = engine.results()
            self._remove_session(channel_id)
        return advanced

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a session.

        Returns:
            Dictionary with progress info, None if no session
        """
        session = self._active_sessions.get(channel_id)
        if session is None:
            return None

        engine = session.engine
        return {
            'state': engine.state.value,
            'current_question': engine.current_index + 1,
            'total_questions': engine.total_questions,
            'answered': engine.answered_count,
            'score': engine.score,
            'correct': engine.correct_count,
            'incorrect': engine.incorrect_count,
            'owner_id': session.owner_id,
            'start_time': session.start_time
        }

    def get_last_results(self, channel_id: int) -> Optional[QuizResults]:
        return self._finished_results.get(channel_id)

    def get_all_active_sessions(self) -> Dict[int, Dict[str, Any]]:
        return {
            channel_id: self.get_session_progress(channel_id)
            for channel_id in self._active_sessions
        }

    def build_state_embed(self, engine: QuizEngine) -> discord.Embed:
        """Render whichever view matches the engine state."""
        state = engine.state
        if state == EngineState.LOADING:
            embed = discord.Embed(title="Loading...", color=COLOR_INFO)
        elif state == EngineState.ERROR:
            embed = discord.Embed(title="❌ Quiz Unavailable", description=engine.error_message,
                                  color=COLOR_ERROR)
        elif state == EngineState.EMPTY:
            embed = discord.Embed(title=NO_QUESTION_MESSAGE, color=COLOR_INFO)
        elif state == EngineState.FINISHED:
            return self.build_results_embed(engine.results())
        else:
            return self.build_question_embed(engine)
        return apply_navbar(embed)

    def build_question_embed(self, engine: QuizEngine) -> discord.Embed:
        """
        Render the current question with its options, feedback and score.

        Raises:
            InvalidSessionStateError: If no question is on screen
        """
        question = engine.current_question
        if question is None:
            raise InvalidSessionStateError(f"No current question (state: {engine.state.value})")

        feedback = engine.feedback
        if feedback is None:
            color = COLOR_QUESTION
        elif question.is_correct(engine.selected_answer):
            color = COLOR_CORRECT
        else:
            color = COLOR_INCORRECT

        embed = discord.Embed(
            title=f"Q{engine.current_index + 1}. {question.text}",
            color=color
        )

        lines = []
        for option in engine.shuffled_answers:
            marker = "🔘" if option == engine.selected_answer else "⚪"
            lines.append(f"{marker} {option}")
        embed.add_field(name="Answers", value="\n".join(lines) or "-", inline=False)

        if feedback is not None:
            value = feedback
            if not question.is_correct(engine.selected_answer):
                value += f"\nThe correct answer was **{question.correct_answer}**."
            embed.add_field(name="Result", value=value, inline=False)

        details = [f"Question {engine.current_index + 1}/{engine.total_questions}"]
        if question.category:
            details.append(question.category.replace('_', ' ').title())
        if question.difficulty:
            details.append(question.difficulty.title())
        embed.add_field(name="Details", value=" | ".join(details), inline=True)
        embed.add_field(name="Score", value=f"**Score: {engine.score}**", inline=True)

        return apply_navbar(embed)

    def build_results_embed(self, results: QuizResults) -> discord.Embed:
        embed = discord.Embed(
            title="Quiz Results",
            description="\n".join(results.summary_lines()),
            color=COLOR_RESULTS
        )
        embed.add_field(name=results.remark, value=f"Final score: {results.score}/{results.total_questions}",
                        inline=False)
        return apply_navbar(embed)

    def build_status_embed(self, channel_id: int) -> discord.Embed:
        """Render the progress of the channel's session, or its last results, for /score."""
        progress = self.get_session_progress(channel_id)
        if progress is None:
            results = self._finished_results.get(channel_id)
            if results is not None:
                return self.build_results_embed(results)
            embed = discord.Embed(
                title="📭 No Active Quiz",
                description="Use `/quiz` to start a new trivia quiz.",
                color=COLOR_INFO
            )
            return apply_navbar(embed)

        embed = discord.Embed(title="📊 Quiz Progress", color=COLOR_INFO)
        if progress['state'] == EngineState.LOADING.value:
            embed.description = "Loading..."
        else:
            embed.description = (
                f"Question {progress['current_question']}/{progress['total_questions']}\n"
                f"Score: {progress['score']}\n"
                f"Correct: {progress['correct']} | Incorrect: {progress['incorrect']}"
            )
        return apply_navbar(embed)
