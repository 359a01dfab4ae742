"""FastAPI server that exposes the teacher and student endpoints."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field
import uvicorn

from engsmart.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from engsmart.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT, TEACHER_PASSPHRASE_HEADER
from engsmart.constants.quiz_constants import (
    DEFAULT_QUESTION_COUNT,
    DEFAULT_SECTION,
    EXAM_DURATION_MINUTES,
    UNANSWERED,
)
from engsmart.core.errors import GenerationError, NotFoundError, ValidationError
from engsmart.core.markdown_renderer import renderer
from engsmart.core.models import Question, Quiz, StudentSubmission, question_id
from engsmart.core.question_generator import map_difficulty
from engsmart.core.quiz_manager import QuizManager
from engsmart.core.services.statistics import QuizStatistics, classify_score
from engsmart.core.services.submission_engine import ExamAttempt, grade, is_correct

logger = logging.getLogger(__name__)


class LoginPayload(BaseModel):
    passphrase: str


class GeneratePayload(BaseModel):
    topic: str
    grade: str
    count: int = Field(default=DEFAULT_QUESTION_COUNT, gt=0, le=100)


class QuestionPayload(BaseModel):
    """Question as produced by the generate endpoint and edited by the teacher."""

    id: str | None = None
    text: str
    options: list[str]
    correctAnswer: int
    difficulty: str = ""
    explanation: str | None = None
    section: str | None = None


class PublishPayload(BaseModel):
    grade: str
    topic: str
    title: str | None = None
    questions: list[QuestionPayload]


class ActivePayload(BaseModel):
    is_active: bool


class EnterExamPayload(BaseModel):
    access_code: str
    student_name: str


class SubmitPayload(BaseModel):
    quiz_id: str
    student_name: str
    answers: list[int]


def _question_from_payload(payload: QuestionPayload, batch: str, position: int) -> Question:
    return Question(
        id=payload.id or question_id(batch, position),
        text=payload.text,
        options=tuple(payload.options),
        correct_answer=payload.correctAnswer,
        difficulty=map_difficulty(payload.difficulty),
        explanation=payload.explanation,
        section=(payload.section or "").strip() or DEFAULT_SECTION,
    )


def _question_to_dict(question: Question, include_key: bool) -> dict[str, object]:
    data: dict[str, object] = {
        "id": question.id,
        "text": question.text,
        "text_html": renderer.render_fragment(question.text),
        "options": list(question.options),
        "options_html": [renderer.render_inline(option) for option in question.options],
        "section": question.section or DEFAULT_SECTION,
        "difficulty": question.difficulty.value,
    }
    if include_key:
        data["correctAnswer"] = question.correct_answer
        data["explanation"] = question.explanation
    return data


def _quiz_to_dict(quiz: Quiz, include_key: bool = True) -> dict[str, object]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "grade": quiz.grade,
        "topic": quiz.topic,
        "createdAt": quiz.created_at.isoformat(),
        "accessCode": quiz.access_code,
        "isActive": quiz.is_active,
        "sections": quiz.sections(),
        "questions": [_question_to_dict(q, include_key) for q in quiz.questions],
    }


def _submission_to_dict(submission: StudentSubmission) -> dict[str, object]:
    return {
        "id": submission.id,
        "quizId": submission.quiz_id,
        "studentName": submission.student_name,
        "score": submission.score,
        "totalQuestions": submission.total_questions,
        "submittedAt": submission.submitted_at.isoformat(),
        "answers": list(submission.answers),
    }


def _statistics_to_dict(stats: QuizStatistics) -> dict[str, object]:
    return {
        "quiz_id": stats.quiz_id,
        "submission_count": stats.submission_count,
        "has_data": stats.has_data,
        "mean_score": stats.mean_score,
        "histogram": [
            {"key": bucket.key, "label": bucket.label, "count": bucket.count}
            for bucket in stats.histogram
        ],
        "roster": [_submission_to_dict(s) for s in stats.roster],
        "correct_per_question": stats.correct_per_question,
    }


def _exam_to_dict(attempt: ExamAttempt) -> dict[str, object]:
    quiz = attempt.quiz
    return {
        "quiz": _quiz_to_dict(quiz, include_key=False),
        "student_name": attempt.student_name,
        "answers": list(attempt.answers),
        "unanswered_value": UNANSWERED,
        "duration_minutes": EXAM_DURATION_MINUTES,
    }


def _result_to_dict(quiz: Quiz, submission: StudentSubmission) -> dict[str, object]:
    result = grade(quiz, submission.answers)
    review = []
    for question, answer in zip(quiz.questions, submission.answers):
        review.append(
            {
                **_question_to_dict(question, include_key=True),
                "selected": answer,
                "is_correct": is_correct(answer, question.correct_answer),
                "explanation_html": renderer.render_fragment(question.explanation),
            }
        )
    return {
        "submission": _submission_to_dict(submission),
        "correct_count": result.correct_count,
        "classification": classify_score(submission.score),
        "review": review,
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _get_teacher_guard(passphrase: str):
    def guard(
        supplied: str | None = Header(default=None, alias=TEACHER_PASSPHRASE_HEADER),
    ) -> None:
        if supplied != passphrase:
            raise HTTPException(status_code=401, detail="Teacher passphrase required.")

    return guard


def create_api_app(quiz_manager: QuizManager, teacher_passphrase: str) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, description=APP_ABOUT_TEXT)
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)
    teacher_only = [Depends(_get_teacher_guard(teacher_passphrase))]

    @app.post("/api/teacher/login")
    def teacher_login(payload: LoginPayload) -> dict[str, object]:
        if payload.passphrase != teacher_passphrase:
            raise HTTPException(status_code=401, detail="Wrong passphrase.")
        return {"ok": True}

    @app.post("/api/quizzes/generate", dependencies=teacher_only)
    async def generate_questions(
        payload: GeneratePayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            questions = await manager.generate_questions(payload.topic, payload.grade, payload.count)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except GenerationError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"questions": [_question_to_dict(q, include_key=True) for q in questions]}

    @app.post("/api/quizzes", status_code=201, dependencies=teacher_only)
    def publish_quiz(
        payload: PublishPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        batch = uuid4().hex[:12]
        questions = [_question_from_payload(q, batch, i) for i, q in enumerate(payload.questions)]
        try:
            quiz = manager.create_and_publish_quiz(
                grade=payload.grade,
                topic=payload.topic,
                questions=questions,
                title=payload.title,
            )
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _quiz_to_dict(quiz)

    @app.get("/api/quizzes", dependencies=teacher_only)
    def list_quizzes(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [_quiz_to_dict(q) for q in manager.list_quizzes()]

    @app.get("/api/quizzes/{quiz_id}", dependencies=teacher_only)
    def get_quiz(quiz_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        try:
            return _quiz_to_dict(manager.get_quiz(quiz_id))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.put("/api/quizzes/{quiz_id}/active", dependencies=teacher_only)
    def set_quiz_active(
        quiz_id: str,
        payload: ActivePayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            return _quiz_to_dict(manager.set_quiz_active(quiz_id, payload.is_active))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/api/quizzes/{quiz_id}/toggle", dependencies=teacher_only)
    def toggle_quiz(quiz_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        try:
            return _quiz_to_dict(manager.toggle_quiz_active(quiz_id))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.delete("/api/quizzes/{quiz_id}", status_code=204, dependencies=teacher_only)
    def delete_quiz(quiz_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> None:
        try:
            manager.delete_quiz(quiz_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/api/quizzes/{quiz_id}/statistics", dependencies=teacher_only)
    def get_statistics(quiz_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return _statistics_to_dict(manager.get_statistics(quiz_id))

    @app.get("/api/quizzes/{quiz_id}/submissions", dependencies=teacher_only)
    def list_submissions(
        quiz_id: str,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_submission_to_dict(s) for s in manager.list_submissions(quiz_id)]

    @app.post("/api/exam/enter")
    def enter_exam(
        payload: EnterExamPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            attempt = manager.enter_exam_by_code(payload.access_code, payload.student_name)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _exam_to_dict(attempt)

    @app.post("/api/exam/submit", status_code=201)
    def submit_exam(
        payload: SubmitPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            submission = manager.submit_answers(payload.quiz_id, payload.student_name, payload.answers)
            quiz = manager.get_quiz(payload.quiz_id)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _result_to_dict(quiz, submission)

    @app.get("/api/submissions/{submission_id}")
    def get_submission(
        submission_id: str,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            return _submission_to_dict(manager.get_submission(submission_id))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    return app


def run_api_server(app: FastAPI, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Serve the API in the foreground until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    logger.info("Serving %s API on http://%s:%d/", APP_NAME, host, port)
    server.run()
