from __future__ import annotations

import asyncio
import json
import re
from types import SimpleNamespace

from google.genai.errors import APIError
import httpx
import pytest

from engsmart.core import question_generator
from engsmart.core.errors import GenerationError
from engsmart.core.models import Difficulty
from engsmart.core.question_generator import (
    GeminiQuestionGenerator,
    build_prompt,
    map_difficulty,
    parse_generated_questions,
)


def _item(**overrides):
    item = {
        "text": "Choose the word whose underlined part is pronounced differently.",
        "options": ["cat", "hat", "late", "map"],
        "correctAnswer": 2,
        "difficulty": "Nhận biết",
        "explanation": "'late' có âm /eɪ/.",
        "section": "Phonetics",
    }
    item.update(overrides)
    return item


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Vận dụng cao", Difficulty.HIGH_APPLICATION),
        ("VẬN DỤNG CAO", Difficulty.HIGH_APPLICATION),
        ("Vận dụng", Difficulty.APPLICATION),
        ("thông hiểu", Difficulty.UNDERSTANDING),
        ("Thông Hiểu", Difficulty.UNDERSTANDING),
        ("Nhận biết", Difficulty.RECOGNITION),
        ("High Application", Difficulty.RECOGNITION),
        ("", Difficulty.RECOGNITION),
    ],
)
def test_map_difficulty(label: str, expected: Difficulty):
    assert map_difficulty(label) is expected


def test_parse_generated_questions():
    raw = json.dumps([_item(), _item(section="", difficulty="Thông hiểu", correctAnswer=0)])

    questions = parse_generated_questions(raw)

    assert len(questions) == 2
    assert questions[0].options == ("cat", "hat", "late", "map")
    assert questions[0].correct_answer == 2
    assert questions[0].section == "Phonetics"
    assert questions[1].section == "General"
    assert questions[1].difficulty is Difficulty.UNDERSTANDING
    assert questions[0].id != questions[1].id
    assert all(re.fullmatch(r"[0-9a-f]{12}-\d+", q.id) for q in questions)


def test_missing_section_defaults_to_general():
    item = _item()
    del item["section"]

    assert parse_generated_questions(json.dumps([item]))[0].section == "General"


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not json",
        "{}",
        "[]",
        json.dumps([_item(options=["a", "b", "c"])]),
        json.dumps([_item(correctAnswer=4)]),
        json.dumps([_item(correctAnswer=True)]),
        json.dumps([_item(text="  ")]),
        json.dumps(["just a string"]),
    ],
)
def test_unusable_responses_raise_generation_error(raw):
    with pytest.raises(GenerationError):
        parse_generated_questions(raw)


def test_missing_api_key_raises_generation_error():
    generator = GeminiQuestionGenerator(api_key=None)

    with pytest.raises(GenerationError):
        asyncio.run(generator.generate("Tenses", "9", 10))


def test_prompt_mentions_inputs():
    prompt = build_prompt("Past simple", "7", 25)

    assert "25-question" in prompt
    assert "Grade 7" in prompt
    assert "Past simple" in prompt


class _FakeModels:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls: list[str] = []

    async def generate_content(self, model, contents, config):
        self.calls.append(model)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return SimpleNamespace(text=self.outcome)


class _FakeAsyncClient:
    def __init__(self, outcome):
        self.models = _FakeModels(outcome)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


@pytest.fixture
def fake_gemini(monkeypatch):
    """Replace genai.Client; call the returned function with a response body or an exception."""
    clients: list[_FakeAsyncClient] = []

    def install(outcome):
        def client_factory(api_key):
            aio = _FakeAsyncClient(outcome)
            clients.append(aio)
            return SimpleNamespace(aio=aio)

        monkeypatch.setattr(question_generator.genai, "Client", client_factory)
        return clients

    return install


def test_generate_returns_parsed_questions(fake_gemini):
    clients = fake_gemini(json.dumps([_item(), _item(correctAnswer=1)]))
    generator = GeminiQuestionGenerator(api_key="key", model="gemini-test")

    questions = asyncio.run(generator.generate("Tenses", "9", 2))

    assert [q.correct_answer for q in questions] == [2, 1]
    assert clients[0].models.calls == ["gemini-test"]
    assert clients[0].closed


def test_api_error_becomes_generation_error(fake_gemini):
    error = APIError(503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}})
    clients = fake_gemini(error)

    with pytest.raises(GenerationError) as info:
        asyncio.run(GeminiQuestionGenerator(api_key="key").generate("Tenses", "9", 2))

    assert info.value.__cause__ is error
    assert clients[0].closed


@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("network down"), httpx.ReadTimeout("read timed out")],
)
def test_transport_error_becomes_generation_error(fake_gemini, error):
    clients = fake_gemini(error)

    with pytest.raises(GenerationError) as info:
        asyncio.run(GeminiQuestionGenerator(api_key="key").generate("Tenses", "9", 2))

    assert info.value.__cause__ is error
    assert clients[0].closed


def test_empty_model_response_becomes_generation_error(fake_gemini):
    fake_gemini(None)

    with pytest.raises(GenerationError):
        asyncio.run(GeminiQuestionGenerator(api_key="key").generate("Tenses", "9", 2))
