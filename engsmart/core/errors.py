"""Exception types raised by the quiz engine."""

from __future__ import annotations


class QuizError(Exception):
    """Base class for recoverable quiz engine failures."""


class GenerationError(QuizError):
    """Raised when the question generator is unavailable or returns unusable data."""


class NotFoundError(QuizError):
    """Raised when a quiz, access code, or submission cannot be resolved."""


class ValidationError(QuizError):
    """Raised when input is rejected before anything is persisted."""


class DeserializationError(QuizError):
    """Raised when stored data cannot be decoded into valid records."""
