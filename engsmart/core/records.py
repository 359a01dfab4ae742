"""Persisted record schemas and their conversion to domain models.

Stored field names follow the camelCase layout of the original browser
storage, so existing exports load unchanged. Every record is validated on
load; anything that does not match the schema raises DeserializationError
instead of leaking partially-typed data into the engine. Timestamps stored
without a timezone are read as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from engsmart.constants.quiz_constants import DEFAULT_SECTION
from engsmart.core.errors import DeserializationError, ValidationError
from engsmart.core.models import Difficulty, Question, Quiz, StudentSubmission


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuestionRecord(BaseModel):
    id: str
    text: str
    options: list[str] = Field(min_length=4, max_length=4)
    correctAnswer: int = Field(ge=0, le=3)
    difficulty: Difficulty
    explanation: str | None = None
    section: str | None = DEFAULT_SECTION


class QuizRecord(BaseModel):
    id: str
    title: str
    grade: str
    topic: str
    createdAt: datetime
    questions: list[QuestionRecord]
    accessCode: str
    isActive: bool

    @field_validator("createdAt")
    @classmethod
    def created_at_as_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class SubmissionRecord(BaseModel):
    id: str
    quizId: str
    studentName: str
    score: float = Field(ge=0, le=10)
    totalQuestions: int = Field(ge=0)
    submittedAt: datetime
    answers: list[int]

    @field_validator("submittedAt")
    @classmethod
    def submitted_at_as_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


def quiz_to_record(quiz: Quiz) -> dict[str, Any]:
    """Serialize a quiz; raises ValidationError when it does not fit the stored schema."""
    try:
        record = QuizRecord(
            id=quiz.id,
            title=quiz.title,
            grade=quiz.grade,
            topic=quiz.topic,
            createdAt=quiz.created_at,
            questions=[_question_to_record(question) for question in quiz.questions],
            accessCode=quiz.access_code,
            isActive=quiz.is_active,
        )
    except PydanticValidationError as exc:
        raise ValidationError(f"Quiz {quiz.id} cannot be stored: {exc}") from exc
    return record.model_dump(mode="json")


def quiz_from_record(raw: dict[str, Any]) -> Quiz:
    try:
        record = QuizRecord.model_validate(raw)
    except PydanticValidationError as exc:
        raise DeserializationError(f"Stored quiz is malformed: {exc}") from exc
    return Quiz(
        id=record.id,
        title=record.title,
        grade=record.grade,
        topic=record.topic,
        created_at=record.createdAt,
        questions=[_question_from_record(item) for item in record.questions],
        access_code=record.accessCode,
        is_active=record.isActive,
    )


def submission_to_record(submission: StudentSubmission) -> dict[str, Any]:
    try:
        record = SubmissionRecord(
            id=submission.id,
            quizId=submission.quiz_id,
            studentName=submission.student_name,
            score=submission.score,
            totalQuestions=submission.total_questions,
            submittedAt=submission.submitted_at,
            answers=list(submission.answers),
        )
    except PydanticValidationError as exc:
        raise ValidationError(f"Submission {submission.id} cannot be stored: {exc}") from exc
    return record.model_dump(mode="json")


def submission_from_record(raw: dict[str, Any]) -> StudentSubmission:
    try:
        record = SubmissionRecord.model_validate(raw)
    except PydanticValidationError as exc:
        raise DeserializationError(f"Stored submission is malformed: {exc}") from exc
    return StudentSubmission(
        id=record.id,
        quiz_id=record.quizId,
        student_name=record.studentName,
        score=record.score,
        total_questions=record.totalQuestions,
        submitted_at=record.submittedAt,
        answers=tuple(record.answers),
    )


def _question_to_record(question: Question) -> QuestionRecord:
    return QuestionRecord(
        id=question.id,
        text=question.text,
        options=list(question.options),
        correctAnswer=question.correct_answer,
        difficulty=question.difficulty,
        explanation=question.explanation,
        section=question.section,
    )


def _question_from_record(record: QuestionRecord) -> Question:
    return Question(
        id=record.id,
        text=record.text,
        options=tuple(record.options),
        correct_answer=record.correctAnswer,
        difficulty=record.difficulty,
        explanation=record.explanation,
        section=record.section,
    )
