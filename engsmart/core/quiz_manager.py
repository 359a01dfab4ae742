"""Business logic for the quiz lifecycle shared by the API and any other caller."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from threading import Lock
from uuid import uuid4

from engsmart.constants.generation_constants import DEFAULT_GENERATION_TIMEOUT_SECONDS
from engsmart.constants.quiz_constants import OPTION_COUNT
from engsmart.core.errors import GenerationError, NotFoundError, ValidationError
from engsmart.core.models import Difficulty, Question, Quiz, StudentSubmission
from engsmart.core.question_generator import QuestionGenerator
from engsmart.core.services.quiz_repository import QuizRepository
from engsmart.core.services.statistics import QuizStatistics, StatisticsAggregator
from engsmart.core.services.submission_engine import ExamAttempt, SubmissionEngine
from engsmart.core.storage import KeyValueStore

logger = logging.getLogger(__name__)


def default_quiz_title(grade: str, topic: str) -> str:
    return f"English {grade} term test: {topic}"


class QuizManager:
    """Facade for quiz services: Repository, SubmissionEngine, and StatisticsAggregator."""

    def __init__(
        self,
        store: KeyValueStore,
        generator: QuestionGenerator,
        generation_timeout_seconds: float = DEFAULT_GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self._lock = Lock()
        self._generator = generator
        self._generation_timeout_seconds = generation_timeout_seconds

        # Services
        self._repository = QuizRepository(store)
        self._engine = SubmissionEngine(store)
        self._statistics = StatisticsAggregator()

    # --- Generation ---

    async def generate_questions(self, topic: str, grade: str, count: int) -> list[Question]:
        """Ask the generator for a question set; nothing is saved until published."""
        if count <= 0:
            raise ValidationError("Question count must be a positive integer.")
        try:
            return await asyncio.wait_for(
                self._generator.generate(topic, grade, count),
                timeout=self._generation_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Question generation timed out after %.0fs", self._generation_timeout_seconds)
            raise GenerationError("Question generation timed out; please try again.") from exc

    # --- Teacher workflow ---

    def create_and_publish_quiz(
        self,
        grade: str,
        topic: str,
        questions: list[Question],
        title: str | None = None,
    ) -> Quiz:
        cleaned_grade = grade.strip()
        if not cleaned_grade:
            raise ValidationError("Grade must not be empty.")
        cleaned_topic = topic.strip()
        if not questions:
            raise ValidationError("Quiz must contain at least one question.")
        for position, question in enumerate(questions, start=1):
            self._validate_question(position, question)
        cleaned_title = (title or "").strip() or default_quiz_title(cleaned_grade, cleaned_topic)

        with self._lock:
            quiz = Quiz(
                id=uuid4().hex,
                title=cleaned_title,
                grade=cleaned_grade,
                topic=cleaned_topic,
                created_at=datetime.now(timezone.utc),
                questions=list(questions),
                access_code=self._repository.allocate_access_code(),
                is_active=True,
            )
            self._repository.save_quiz(quiz)
        logger.info("Published quiz %s (%d questions) with code %s", quiz.id, quiz.question_count, quiz.access_code)
        return quiz

    def list_quizzes(self) -> list[Quiz]:
        """Return all quizzes, newest first."""
        with self._lock:
            quizzes = self._repository.list_quizzes()
        return sorted(quizzes, key=lambda q: q.created_at, reverse=True)

    def get_quiz(self, quiz_id: str) -> Quiz:
        with self._lock:
            quiz = self._repository.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} does not exist.")
        return quiz

    def set_quiz_active(self, quiz_id: str, is_active: bool) -> Quiz:
        with self._lock:
            quiz = self._repository.set_active(quiz_id, is_active)
        logger.info("Quiz %s is now %s", quiz_id, "open" if quiz.is_active else "closed")
        return quiz

    def toggle_quiz_active(self, quiz_id: str) -> Quiz:
        with self._lock:
            quiz = self._repository.toggle_active(quiz_id)
        logger.info("Quiz %s is now %s", quiz_id, "open" if quiz.is_active else "closed")
        return quiz

    def delete_quiz(self, quiz_id: str) -> None:
        """Delete a quiz; its submissions stay retrievable by id."""
        with self._lock:
            removed = self._repository.delete_quiz(quiz_id)
        if not removed:
            raise NotFoundError(f"Quiz {quiz_id} does not exist.")
        logger.info("Deleted quiz %s", quiz_id)

    def get_statistics(self, quiz_id: str) -> QuizStatistics:
        with self._lock:
            quiz = self._repository.get_quiz(quiz_id)
            submissions = self._engine.list_submissions(quiz_id) if quiz is not None else []
        return self._statistics.compute(quiz_id, quiz, submissions)

    # --- Student workflow ---

    def enter_exam_by_code(self, code: str, student_name: str) -> ExamAttempt:
        """Resolve a typed access code and start an attempt for the student."""
        cleaned_name = student_name.strip()
        if not cleaned_name:
            raise ValidationError("Student name must not be empty.")
        normalized = code.strip().upper()
        with self._lock:
            quiz = self._repository.get_quiz_by_access_code(normalized)
        if quiz is None:
            raise NotFoundError("Invalid access code or the exam has been closed.")
        return self._engine.start_attempt(quiz, cleaned_name)

    def submit_attempt(self, attempt: ExamAttempt) -> StudentSubmission:
        with self._lock:
            return self._engine.submit(attempt)

    def submit_answers(self, quiz_id: str, student_name: str, answers: list[int]) -> StudentSubmission:
        """Grade and store an answer vector sent by a client that kept the attempt itself."""
        cleaned_name = student_name.strip()
        if not cleaned_name:
            raise ValidationError("Student name must not be empty.")
        with self._lock:
            quiz = self._repository.get_quiz(quiz_id)
            if quiz is None:
                raise NotFoundError(f"Quiz {quiz_id} does not exist.")
            return self._engine.record_submission(quiz, cleaned_name, answers)

    def list_submissions(self, quiz_id: str) -> list[StudentSubmission]:
        with self._lock:
            return self._engine.list_submissions(quiz_id)

    def get_submission(self, submission_id: str) -> StudentSubmission:
        with self._lock:
            submission = self._engine.get_submission(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} does not exist.")
        return submission

    @staticmethod
    def _validate_question(position: int, question: Question) -> None:
        if not question.text.strip():
            raise ValidationError(f"Question {position} text must not be empty.")
        if len(question.options) != OPTION_COUNT:
            raise ValidationError(f"Question {position} must have exactly four options.")
        if any(not option.strip() for option in question.options):
            raise ValidationError(f"Question {position} has an empty option.")
        if not 0 <= question.correct_answer < OPTION_COUNT:
            raise ValidationError(f"Question {position} correct option index must be between 0 and 3.")
        if not isinstance(question.difficulty, Difficulty):
            raise ValidationError(f"Question {position} has an unknown difficulty {question.difficulty!r}.")
        if question.section is not None and not isinstance(question.section, str):
            raise ValidationError(f"Question {position} section must be text.")
