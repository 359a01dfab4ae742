from __future__ import annotations

import asyncio

import pytest

from engsmart.core.errors import GenerationError
from engsmart.core.models import Difficulty, Question
from engsmart.core.question_generator import QuestionGenerator
from engsmart.core.quiz_manager import QuizManager
from engsmart.core.storage import InMemoryStore


def make_question(index: int, correct_answer: int = 0, section: str = "Grammar") -> Question:
    return Question(
        id=f"q{index}",
        text=f"Question {index}?",
        options=("A", "B", "C", "D"),
        correct_answer=correct_answer,
        difficulty=Difficulty.RECOGNITION,
        explanation=f"Because of rule {index}.",
        section=section,
    )


class FakeGenerator(QuestionGenerator):
    def __init__(self, questions: list[Question] | None = None, error: Exception | None = None, delay: float = 0.0):
        self.questions = questions or [make_question(0, 1), make_question(1, 2)]
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str, int]] = []

    async def generate(self, topic: str, grade: str, count: int) -> list[Question]:
        self.calls.append((topic, grade, count))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.questions[:count])


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def manager(store: InMemoryStore, generator: FakeGenerator) -> QuizManager:
    return QuizManager(store=store, generator=generator, generation_timeout_seconds=1.0)


@pytest.fixture
def two_question_quiz(manager: QuizManager):
    """Quiz whose answer key is [1, 2]."""
    return manager.create_and_publish_quiz(
        grade="9",
        topic="Present perfect",
        questions=[make_question(0, 1), make_question(1, 2)],
    )


@pytest.fixture
def failing_generator() -> FakeGenerator:
    return FakeGenerator(error=GenerationError("Gemini API key is missing."))
