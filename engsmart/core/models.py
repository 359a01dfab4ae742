"""Domain models for the quiz engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from engsmart.constants.quiz_constants import DEFAULT_SECTION


class Difficulty(str, Enum):
    """Cognitive level of a question, stored by its Vietnamese label."""

    RECOGNITION = "Nhận biết"
    UNDERSTANDING = "Thông hiểu"
    APPLICATION = "Vận dụng"
    HIGH_APPLICATION = "Vận dụng cao"


def question_id(batch: str, index: int) -> str:
    """Build a question id from a per-set batch token and the question position."""
    return f"{batch}-{index}"


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question with exactly four options."""

    id: str
    text: str
    options: tuple[str, ...]
    correct_answer: int
    difficulty: Difficulty = Difficulty.RECOGNITION
    explanation: str | None = None
    section: str | None = DEFAULT_SECTION


@dataclass(slots=True)
class Quiz:
    """A published test; question order defines the answer index space."""

    id: str
    title: str
    grade: str
    topic: str
    created_at: datetime
    questions: list[Question]
    access_code: str
    is_active: bool = True

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def sections(self) -> list[str]:
        """Return section labels in the order they first appear."""
        seen: list[str] = []
        for question in self.questions:
            label = question.section or DEFAULT_SECTION
            if label not in seen:
                seen.append(label)
        return seen


@dataclass(frozen=True, slots=True)
class StudentSubmission:
    """Graded attempt; answers are aligned with the quiz question order."""

    id: str
    quiz_id: str
    student_name: str
    score: float
    total_questions: int
    submitted_at: datetime
    answers: tuple[int, ...]
