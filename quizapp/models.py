"""
Core data models for the QuizApp trivia bot.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


DEFAULT_API_URL = "https://the-trivia-api.com/v2/questions"


@dataclass(frozen=True)
class Question:
    """Represents a single trivia question."""
    text: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...] = field(default_factory=tuple)
    category: Optional[str] = None
    difficulty: Optional[str] = None
    question_id: Optional[str] = None

    def all_answers(self) -> List[str]:
        """Incorrect answers followed by the correct one, unshuffled."""
        return [*self.incorrect_answers, self.correct_answer]

    def is_correct(self, answer: Optional[str]) -> bool:
        return answer == self.correct_answer


@dataclass
class QuizSettings:
    """Configuration settings for fetching and running a quiz."""
    api_url: str = DEFAULT_API_URL
    request_timeout: Optional[float] = 10.0
    question_limit: Optional[int] = None
    view_timeout: float = 300.0


@dataclass(frozen=True)
class QuizResults:
    """Final summary of a finished quiz session."""
    score: int
    total_questions: int
    correct_count: int
    incorrect_count: int
    remark: str

    def summary_lines(self) -> List[str]:
        return [
            f"You answered {self.correct_count} out of {self.total_questions} questions correctly.",
            f"You got {self.incorrect_count} incorrect answers.",
        ]
