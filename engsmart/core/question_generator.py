"""Question generation through the Gemini API.

The generator is a single awaitable call: it either returns a complete list
of validated questions or raises GenerationError. Nothing is streamed and
nothing is persisted here; the caller decides whether to publish the result.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from uuid import uuid4

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError

from engsmart.constants.generation_constants import DEFAULT_GEMINI_MODEL
from engsmart.constants.quiz_constants import DEFAULT_SECTION, OPTION_COUNT
from engsmart.core.errors import GenerationError
from engsmart.core.models import Difficulty, Question, question_id

logger = logging.getLogger(__name__)


def map_difficulty(label: str) -> Difficulty:
    """Map a free-text difficulty label onto the four levels.

    Checks run in order on the lower-cased label, and anything unrecognised
    falls back to Recognition.
    """
    lowered = label.lower()
    if "cao" in lowered:
        return Difficulty.HIGH_APPLICATION
    if "vận dụng" in lowered:
        return Difficulty.APPLICATION
    if "thông hiểu" in lowered:
        return Difficulty.UNDERSTANDING
    return Difficulty.RECOGNITION


def build_prompt(topic: str, grade: str, count: int) -> str:
    return (
        f"Create a {count}-question English test for Grade {grade} students in Vietnam "
        "(Secondary School - THCS), following the 'Cong van 5512' matrix.\n\n"
        "1. STRUCTURE, in this order and in proportion to the question count:\n"
        "   - Phonetics (10%): pronunciation and word stress.\n"
        f"   - Lexico-Grammar (40%): focus on \"{topic}\", tenses, vocabulary and grammar of Grade {grade}.\n"
        "   - Communication (4%): social interactions.\n"
        "   - Reading (30%): one cloze passage and reading comprehension passages.\n"
        "   - Writing (16%): error identification and sentence transformation.\n\n"
        "2. DIFFICULTY MATRIX:\n"
        "   - 40% Recognition (Nhận biết)\n"
        "   - 30% Understanding (Thông hiểu)\n"
        "   - 20% Application (Vận dụng)\n"
        "   - 10% High Application (Vận dụng cao)\n\n"
        "3. FORMAT:\n"
        "   - Every question is 4-option multiple choice (A, B, C, D).\n"
        "   - correctAnswer is the 0-based index of the right option.\n"
        "   - Provide an explanation in Vietnamese for each question.\n"
        "   - Put the section name (Phonetics, Grammar, Communication, Reading, Writing) in 'section'.\n"
        "   - Output JSON ONLY.\n\n"
        f"Return an array of {count} question objects."
    )


_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "text": types.Schema(type=types.Type.STRING),
            "options": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
            ),
            "correctAnswer": types.Schema(type=types.Type.INTEGER),
            "difficulty": types.Schema(type=types.Type.STRING),
            "explanation": types.Schema(type=types.Type.STRING),
            "section": types.Schema(
                type=types.Type.STRING,
                description="Phonetics, Grammar, Reading, Writing, etc.",
            ),
        },
        required=["text", "options", "correctAnswer", "difficulty", "explanation", "section"],
    ),
)


def parse_generated_questions(raw_text: str | None) -> list[Question]:
    """Turn the model's JSON body into questions, rejecting anything malformed."""
    if not raw_text or not raw_text.strip():
        raise GenerationError("No data returned from the generator.")
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise GenerationError("Generator returned unparseable JSON.") from exc
    if not isinstance(payload, list) or not payload:
        raise GenerationError("Generator response must be a non-empty JSON array.")

    batch = uuid4().hex[:12]
    return [_parse_item(item, question_id(batch, index)) for index, item in enumerate(payload)]


def _parse_item(item: Any, new_id: str) -> Question:
    if not isinstance(item, dict):
        raise GenerationError("Each generated question must be a JSON object.")

    text = item.get("text")
    if not isinstance(text, str) or not text.strip():
        raise GenerationError("Generated question is missing its text.")

    options = item.get("options")
    if (
        not isinstance(options, list)
        or len(options) != OPTION_COUNT
        or not all(isinstance(option, str) for option in options)
    ):
        raise GenerationError("Each generated question must have exactly four text options.")

    correct = item.get("correctAnswer")
    if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < OPTION_COUNT:
        raise GenerationError(f"Generated correctAnswer {correct!r} is not an index between 0 and 3.")

    difficulty = item.get("difficulty")
    explanation = item.get("explanation")
    section = item.get("section")
    return Question(
        id=new_id,
        text=text.strip(),
        options=tuple(option.strip() for option in options),
        correct_answer=correct,
        difficulty=map_difficulty(difficulty if isinstance(difficulty, str) else ""),
        explanation=explanation if isinstance(explanation, str) else None,
        section=section if isinstance(section, str) and section.strip() else DEFAULT_SECTION,
    )


class QuestionGenerator:
    """Interface for anything that can produce a question set."""

    async def generate(self, topic: str, grade: str, count: int) -> list[Question]:
        raise NotImplementedError


class GeminiQuestionGenerator(QuestionGenerator):
    """Calls Gemini in JSON mode with a fixed response schema."""

    def __init__(self, api_key: str | None, model: str = DEFAULT_GEMINI_MODEL) -> None:
        self._api_key = api_key
        self._model = model

    async def generate(self, topic: str, grade: str, count: int) -> list[Question]:
        if not self._api_key:
            raise GenerationError("Gemini API key is missing.")

        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=_RESPONSE_SCHEMA,
        )
        logger.info("Requesting %d questions on %r for grade %s from %s", count, topic, grade, self._model)
        try:
            async with genai.Client(api_key=self._api_key).aio as client:
                response = await client.models.generate_content(
                    model=self._model,
                    contents=build_prompt(topic, grade, count),
                    config=config,
                )
        except APIError as exc:
            logger.error("Gemini API error: %s", exc)
            raise GenerationError(f"Gemini API error: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.error("Could not reach Gemini: %s", exc)
            raise GenerationError(f"Could not reach Gemini: {exc}") from exc

        questions = parse_generated_questions(response.text)
        logger.info("Gemini returned %d questions", len(questions))
        return questions
