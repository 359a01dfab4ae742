from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from engsmart.constants.quiz_constants import ACCESS_CODE_ALPHABET, ACCESS_CODE_LENGTH
from engsmart.core.errors import NotFoundError, ValidationError
from engsmart.core.models import Quiz
from engsmart.core.services import quiz_repository
from engsmart.core.services.quiz_repository import QuizRepository, generate_access_code
from engsmart.core.storage import InMemoryStore
from tests.conftest import make_question


def _quiz(quiz_id: str, code: str, is_active: bool = True) -> Quiz:
    return Quiz(
        id=quiz_id,
        title=f"Quiz {quiz_id}",
        grade="9",
        topic="Tenses",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        questions=[make_question(0, 1)],
        access_code=code,
        is_active=is_active,
    )


@pytest.fixture
def repository() -> QuizRepository:
    return QuizRepository(InMemoryStore())


def test_save_appends_then_replaces_in_place(repository: QuizRepository):
    repository.save_quiz(_quiz("1", "AAAAAA"))
    repository.save_quiz(_quiz("2", "BBBBBB"))
    repository.save_quiz(replace(_quiz("1", "AAAAAA"), title="Renamed"))

    quizzes = repository.list_quizzes()
    assert [q.id for q in quizzes] == ["1", "2"]
    assert quizzes[0].title == "Renamed"


def test_access_code_lookup_only_resolves_active_quizzes(repository: QuizRepository):
    repository.save_quiz(_quiz("open", "OPEN01"))
    repository.save_quiz(_quiz("closed", "SHUT01", is_active=False))

    assert repository.get_quiz_by_access_code("OPEN01").id == "open"
    assert repository.get_quiz_by_access_code("SHUT01") is None


@pytest.mark.parametrize("code", ["open01", "OPEN0", "OPEN011", " OPEN01", ""])
def test_access_code_lookup_is_exact_and_case_sensitive(repository: QuizRepository, code: str):
    repository.save_quiz(_quiz("open", "OPEN01"))

    assert repository.get_quiz_by_access_code(code) is None


def test_toggle_twice_restores_original_quiz(repository: QuizRepository):
    original = _quiz("1", "AAAAAA")
    repository.save_quiz(original)

    assert repository.toggle_active("1").is_active is False
    assert repository.toggle_active("1").is_active is True
    assert repository.get_quiz("1") == original


def test_toggle_unknown_quiz_raises(repository: QuizRepository):
    with pytest.raises(NotFoundError):
        repository.toggle_active("missing")


def test_delete_removes_only_the_target(repository: QuizRepository):
    repository.save_quiz(_quiz("1", "AAAAAA"))
    repository.save_quiz(_quiz("2", "BBBBBB"))

    assert repository.delete_quiz("1") is True
    assert repository.delete_quiz("1") is False
    assert [q.id for q in repository.list_quizzes()] == ["2"]
    assert repository.get_quiz_by_access_code("AAAAAA") is None


def test_generated_access_code_shape():
    code = generate_access_code()

    assert len(code) == ACCESS_CODE_LENGTH
    assert code == code.upper()
    assert set(code) <= set(ACCESS_CODE_ALPHABET)


def test_allocate_access_code_retries_on_collision(repository: QuizRepository, monkeypatch):
    repository.save_quiz(_quiz("1", "TAKEN1"))
    candidates = iter(["TAKEN1", "TAKEN1", "FRESH1"])
    monkeypatch.setattr(quiz_repository, "generate_access_code", lambda: next(candidates))

    assert repository.allocate_access_code() == "FRESH1"


def test_allocate_access_code_accepts_collision_after_bounded_retries(repository: QuizRepository, monkeypatch):
    repository.save_quiz(_quiz("1", "TAKEN1"))
    calls = []

    def always_taken() -> str:
        calls.append(1)
        return "TAKEN1"

    monkeypatch.setattr(quiz_repository, "generate_access_code", always_taken)

    assert repository.allocate_access_code() == "TAKEN1"
    assert len(calls) == 5


@pytest.mark.parametrize(
    "question",
    [
        replace(make_question(0), options=("A", "B", "C")),
        replace(make_question(0), correct_answer=7),
    ],
)
def test_quiz_outside_the_stored_schema_is_refused(repository: QuizRepository, question):
    quiz = replace(_quiz("1", "AAAAAA"), questions=[question])

    with pytest.raises(ValidationError):
        repository.save_quiz(quiz)

    assert repository.list_quizzes() == []
