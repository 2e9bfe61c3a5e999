"""
Configuration manager for QuizApp settings and parameters.
"""
import logging
import os
from typing import Optional, Dict, Any, List

from .models import QuizSettings, DEFAULT_API_URL


class ConfigManager:
    """Manages bot configuration settings and quiz parameters."""

    # Default configuration values
    DEFAULT_API_URL = DEFAULT_API_URL
    DEFAULT_REQUEST_TIMEOUT = 10.0
    DEFAULT_QUESTION_LIMIT = None  # Let the API decide (10 questions)
    DEFAULT_VIEW_TIMEOUT = 300.0

    # Validation limits
    MIN_REQUEST_TIMEOUT = 1
    MAX_REQUEST_TIMEOUT = 120
    MIN_QUESTION_LIMIT = 1
    MAX_QUESTION_LIMIT = 50  # API maximum
    MIN_VIEW_TIMEOUT = 30
    MAX_VIEW_TIMEOUT = 3600

    API_URL_ENV = 'QUIZAPP_API_URL'

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings(
            api_url=self.DEFAULT_API_URL,
            request_timeout=self.DEFAULT_REQUEST_TIMEOUT,
            question_limit=self.DEFAULT_QUESTION_LIMIT,
            view_timeout=self.DEFAULT_VIEW_TIMEOUT
        )

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get a copy of the current quiz settings.

        Returns:
            QuizSettings object with current configuration
        """
        return QuizSettings(
            api_url=self._settings.api_url,
            request_timeout=self._settings.request_timeout,
            question_limit=self._settings.question_limit,
            view_timeout=self._settings.view_timeout
        )

    def set_api_url(self, url: str) -> Dict[str, Any]:
        """
        Set the trivia API endpoint.

        Args:
            url: Absolute http(s) URL returning a JSON list of questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(url, str) or not url.strip():
            error_msg = "API URL must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid API URL: value is empty"
            }

        url = url.strip()
        if not url.startswith(('http://', 'https://')):
            error_msg = f"API URL must start with http:// or https://, got {url}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid API URL: must start with http:// or https://"
            }

        self._settings.api_url = url
        self.logger.info(f"API URL set to {url}")
        return {
            'success': True,
            'message': f"API URL set to {url}",
            'user_message': f"✅ Questions will be fetched from {url}"
        }

    def get_api_url(self) -> str:
        return self._settings.api_url

    def set_request_timeout(self, timeout: Optional[float]) -> Dict[str, Any]:
        """
        Set the request timeout for the question fetch.

        Args:
            timeout: Seconds, or None to wait indefinitely

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if timeout is None:
            self._settings.request_timeout = None
            self.logger.warning("Request timeout disabled; a hung request will block loading")
            return {
                'success': True,
                'message': "Request timeout disabled",
                'user_message': "✅ Question requests will wait indefinitely"
            }

        # bool is an int subclass
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            error_msg = f"Request timeout must be a number, got {type(timeout).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(timeout).__name__}"
            }

        if timeout < self.MIN_REQUEST_TIMEOUT or timeout > self.MAX_REQUEST_TIMEOUT:
            error_msg = (f"Request timeout must be between {self.MIN_REQUEST_TIMEOUT} "
                         f"and {self.MAX_REQUEST_TIMEOUT} seconds")
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout out of range: {error_msg}"
            }

        self._settings.request_timeout = float(timeout)
        self.logger.info(f"Request timeout set to {timeout}s")
        return {
            'success': True,
            'message': f"Request timeout set to {timeout}s",
            'user_message': f"✅ Request timeout set to {timeout} seconds"
        }

    def get_request_timeout(self) -> Optional[float]:
        return self._settings.request_timeout

    def set_question_limit(self, limit: Optional[int]) -> Dict[str, Any]:
        """
        Set the number of questions requested from the API.

        Args:
            limit: Number of questions, or None for the API default

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if limit is None:
            self._settings.question_limit = None
            self.logger.info("Question limit set to API default")
            return {
                'success': True,
                'message': "Question limit set to API default",
                'user_message': "✅ Will use the API's default number of questions"
            }

        if isinstance(limit, bool) or not isinstance(limit, int):
            error_msg = f"Question limit must be an integer, got {type(limit).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(limit).__name__}"
            }

        if limit < self.MIN_QUESTION_LIMIT:
            error_msg = f"Question limit must be at least {self.MIN_QUESTION_LIMIT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too few questions: Minimum is {self.MIN_QUESTION_LIMIT}"
            }

        if limit > self.MAX_QUESTION_LIMIT:
            error_msg = f"Question limit cannot exceed {self.MAX_QUESTION_LIMIT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too many questions: Maximum is {self.MAX_QUESTION_LIMIT}"
            }

        self._settings.question_limit = limit
        self.logger.info(f"Question limit set to {limit}")
        return {
            'success': True,
            'message': f"Question limit set to {limit}",
            'user_message': f"✅ Question count set to {limit}"
        }

    def get_question_limit(self) -> Optional[int]:
        return self._settings.question_limit

    def set_view_timeout(self, timeout: float) -> Dict[str, Any]:
        """
        Set how long the answer buttons stay active without interaction.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            error_msg = f"View timeout must be a number, got {type(timeout).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(timeout).__name__}"
            }

        if timeout < self.MIN_VIEW_TIMEOUT or timeout > self.MAX_VIEW_TIMEOUT:
            error_msg = (f"View timeout must be between {self.MIN_VIEW_TIMEOUT} "
                         f"and {self.MAX_VIEW_TIMEOUT} seconds")
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout out of range: {error_msg}"
            }

        self._settings.view_timeout = float(timeout)
        self.logger.info(f"View timeout set to {timeout}s")
        return {
            'success': True,
            'message': f"View timeout set to {timeout}s",
            'user_message': f"✅ Quizzes expire after {timeout} seconds of inactivity"
        }

    def get_view_timeout(self) -> float:
        return self._settings.view_timeout

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'quiz' section of a loaded config.json, then environment overrides.

        Invalid values are logged and skipped so that defaults stay in effect.

        Args:
            config: Parsed configuration dictionary

        Returns:
            List of error messages for the values that were rejected
        """
        quiz_config = (config or {}).get('quiz') or {}
        errors = []

        setters = (
            ('api_url', self.set_api_url),
            ('request_timeout', self.set_request_timeout),
            ('question_limit', self.set_question_limit),
            ('view_timeout', self.set_view_timeout),
        )
        for key, setter in setters:
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                errors.append(f"{key}: {result['error']}")

        env_url = os.getenv(self.API_URL_ENV)
        if env_url:
            result = self.set_api_url(env_url)
            if not result['success']:
                errors.append(f"{self.API_URL_ENV}: {result['error']}")

        if errors:
            self.logger.warning(f"Ignored {len(errors)} invalid configuration values")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            api_url=self.DEFAULT_API_URL,
            request_timeout=self.DEFAULT_REQUEST_TIMEOUT,
            question_limit=self.DEFAULT_QUESTION_LIMIT,
            view_timeout=self.DEFAULT_VIEW_TIMEOUT
        )
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        url = self._settings.api_url
        if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid API URL: {url}")

        timeout = self._settings.request_timeout
        if timeout is not None and not (self.MIN_REQUEST_TIMEOUT <= timeout <= self.MAX_REQUEST_TIMEOUT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid request timeout: {timeout}")

        limit = self._settings.question_limit
        if limit is not None and not (self.MIN_QUESTION_LIMIT <= limit <= self.MAX_QUESTION_LIMIT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question limit: {limit}")

        view_timeout = self._settings.view_timeout
        if not (self.MIN_VIEW_TIMEOUT <= view_timeout <= self.MAX_VIEW_TIMEOUT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid view timeout: {view_timeout}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        limit_str = (
            str(self._settings.question_limit)
            if self._settings.question_limit is not None
            else "API default"
        )
        timeout_str = (
            f"{self._settings.request_timeout:g} seconds"
            if self._settings.request_timeout is not None
            else "none"
        )

        return (
            f"Quiz Settings:\n"
            f"• Questions: {limit_str}\n"
            f"• Request Timeout: {timeout_str}\n"
            f"• Inactivity Timeout: {self._settings.view_timeout:g} seconds\n"
            f"• API: {self._settings.api_url}"
        )
