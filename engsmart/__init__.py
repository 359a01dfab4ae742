"""EngSmart quiz lifecycle and grading engine."""

from engsmart.core.errors import (
    DeserializationError,
    GenerationError,
    NotFoundError,
    QuizError,
    ValidationError,
)
from engsmart.core.quiz_manager import QuizManager

__all__ = [
    "QuizManager",
    "QuizError",
    "GenerationError",
    "NotFoundError",
    "ValidationError",
    "DeserializationError",
]
