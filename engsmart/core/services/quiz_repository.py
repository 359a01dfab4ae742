"""Service for storing published quizzes and resolving access codes."""

from __future__ import annotations

from dataclasses import replace
import logging
import secrets

from engsmart.constants.quiz_constants import (
    ACCESS_CODE_ALPHABET,
    ACCESS_CODE_LENGTH,
    ACCESS_CODE_MAX_ATTEMPTS,
    QUIZ_COLLECTION,
)
from engsmart.core.errors import NotFoundError
from engsmart.core.models import Quiz
from engsmart.core.records import quiz_from_record, quiz_to_record
from engsmart.core.storage import KeyValueStore

logger = logging.getLogger(__name__)


def generate_access_code(length: int = ACCESS_CODE_LENGTH) -> str:
    """Return a random uppercase alphanumeric token."""
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


class QuizRepository:
    """Manages the quiz collection inside a key-value store.

    Every operation reads the whole collection and writes it back. Business
    rules are checked by the caller; a quiz that does not fit the stored
    schema is refused with ValidationError before anything is written.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def save_quiz(self, quiz: Quiz) -> None:
        """Insert or replace a quiz, keeping the position of an existing entry."""
        quizzes = self.list_quizzes()
        existing_index = next((i for i, q in enumerate(quizzes) if q.id == quiz.id), -1)
        if existing_index >= 0:
            quizzes[existing_index] = quiz
        else:
            quizzes.append(quiz)
        self._write(quizzes)

    def list_quizzes(self) -> list[Quiz]:
        """Return every stored quiz in storage order."""
        return [quiz_from_record(item) for item in self._store.get_all(QUIZ_COLLECTION)]

    def get_quiz(self, quiz_id: str) -> Quiz | None:
        return next((q for q in self.list_quizzes() if q.id == quiz_id), None)

    def get_quiz_by_access_code(self, code: str) -> Quiz | None:
        """Exact, case-sensitive lookup restricted to active quizzes."""
        return next(
            (q for q in self.list_quizzes() if q.access_code == code and q.is_active),
            None,
        )

    def toggle_active(self, quiz_id: str) -> Quiz:
        quiz = self._require(quiz_id)
        return self.set_active(quiz_id, not quiz.is_active)

    def set_active(self, quiz_id: str, is_active: bool) -> Quiz:
        quiz = self._require(quiz_id)
        updated = replace(quiz, is_active=is_active)
        self.save_quiz(updated)
        return updated

    def delete_quiz(self, quiz_id: str) -> bool:
        """Remove a quiz. Submissions that reference it are left in place."""
        quizzes = self.list_quizzes()
        remaining = [q for q in quizzes if q.id != quiz_id]
        if len(remaining) == len(quizzes):
            return False
        self._write(remaining)
        return True

    def allocate_access_code(self) -> str:
        """Pick a code not used by any stored quiz, within a bounded number of tries.

        When every attempt collides the last candidate is returned anyway, so
        two quizzes may share a code; lookups then resolve the first active one.
        """
        taken = {q.access_code for q in self.list_quizzes()}
        candidate = generate_access_code()
        for _ in range(ACCESS_CODE_MAX_ATTEMPTS - 1):
            if candidate not in taken:
                return candidate
            candidate = generate_access_code()
        if candidate in taken:
            logger.warning("Access code %s collides with an existing quiz; keeping it.", candidate)
        return candidate

    def _require(self, quiz_id: str) -> Quiz:
        quiz = self.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} does not exist.")
        return quiz

    def _write(self, quizzes: list[Quiz]) -> None:
        self._store.put(QUIZ_COLLECTION, [quiz_to_record(q) for q in quizzes])
