"""Service for running exam attempts and grading submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
import logging
from uuid import uuid4

from engsmart.constants.quiz_constants import MAX_SCORE, OPTION_COUNT, SUBMISSION_COLLECTION, UNANSWERED
from engsmart.core.errors import ValidationError
from engsmart.core.models import Quiz, StudentSubmission
from engsmart.core.records import submission_from_record, submission_to_record
from engsmart.core.storage import KeyValueStore

logger = logging.getLogger(__name__)


class AttemptState(Enum):
    NOT_STARTED = auto()
    IN_PROGRESS = auto()
    SUBMITTED = auto()


@dataclass(slots=True)
class ExamAttempt:
    """One student's pass through a quiz, from entry until submission."""

    quiz: Quiz
    student_name: str
    answers: list[int] = field(default_factory=list)
    state: AttemptState = AttemptState.NOT_STARTED
    submission: StudentSubmission | None = None

    def start(self) -> None:
        if self.state is not AttemptState.NOT_STARTED:
            raise ValidationError("Attempt has already been started.")
        self.answers = [UNANSWERED] * self.quiz.question_count
        self.state = AttemptState.IN_PROGRESS

    def select_answer(self, question_index: int, option_index: int) -> None:
        """Record a choice; later selections for the same question win."""
        self._require_in_progress()
        self._check_question_index(question_index)
        if not 0 <= option_index < OPTION_COUNT:
            raise ValidationError(f"Option index {option_index} out of range")
        self.answers[question_index] = option_index

    def clear_answer(self, question_index: int) -> None:
        self._require_in_progress()
        self._check_question_index(question_index)
        self.answers[question_index] = UNANSWERED

    def unanswered_count(self) -> int:
        return sum(1 for answer in self.answers if answer == UNANSWERED)

    def has_unanswered(self) -> bool:
        return self.unanswered_count() > 0

    def _require_in_progress(self) -> None:
        if self.state is not AttemptState.IN_PROGRESS:
            raise ValidationError("Attempt is not in progress.")

    def _check_question_index(self, question_index: int) -> None:
        if not 0 <= question_index < len(self.answers):
            raise ValidationError(f"Question index {question_index} out of range")


@dataclass(frozen=True, slots=True)
class GradeResult:
    correct_count: int
    total_questions: int
    score: float


def is_correct(answer: int, correct_answer: int) -> bool:
    """The unanswered sentinel never matches, whatever the key says."""
    return answer != UNANSWERED and answer == correct_answer


def grade(quiz: Quiz, answers: list[int] | tuple[int, ...]) -> GradeResult:
    """Score an answer vector against the quiz key on a 0-10 scale, unrounded."""
    total = quiz.question_count
    if total == 0:
        raise ValidationError("Cannot grade a quiz without questions.")
    if len(answers) != total:
        raise ValidationError(
            f"Expected {total} answers but received {len(answers)}."
        )
    correct = sum(
        1 for answer, question in zip(answers, quiz.questions) if is_correct(answer, question.correct_answer)
    )
    return GradeResult(
        correct_count=correct,
        total_questions=total,
        score=(correct / total) * MAX_SCORE,
    )


class SubmissionEngine:
    """Grades attempts and appends submissions to the store.

    Submitting is not idempotent: every call records a new submission, so a
    student who submits twice has two entries.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def start_attempt(self, quiz: Quiz, student_name: str) -> ExamAttempt:
        attempt = ExamAttempt(quiz=quiz, student_name=student_name)
        attempt.start()
        return attempt

    def submit(self, attempt: ExamAttempt) -> StudentSubmission:
        if attempt.state is not AttemptState.IN_PROGRESS:
            raise ValidationError("Only an attempt in progress can be submitted.")
        submission = self.record_submission(attempt.quiz, attempt.student_name, attempt.answers)
        attempt.submission = submission
        attempt.state = AttemptState.SUBMITTED
        return submission

    def record_submission(
        self,
        quiz: Quiz,
        student_name: str,
        answers: list[int] | tuple[int, ...],
    ) -> StudentSubmission:
        for answer in answers:
            if answer != UNANSWERED and not 0 <= answer < OPTION_COUNT:
                raise ValidationError(f"Answer {answer} is not a valid option index.")
        result = grade(quiz, answers)
        submission = StudentSubmission(
            id=uuid4().hex,
            quiz_id=quiz.id,
            student_name=student_name,
            score=result.score,
            total_questions=result.total_questions,
            submitted_at=datetime.now(timezone.utc),
            answers=tuple(answers),
        )
        records = self._store.get_all(SUBMISSION_COLLECTION)
        records.append(submission_to_record(submission))
        self._store.put(SUBMISSION_COLLECTION, records)
        logger.info(
            "Recorded submission %s for quiz %s: %d/%d correct",
            submission.id,
            quiz.id,
            result.correct_count,
            result.total_questions,
        )
        return submission

    def list_submissions(self, quiz_id: str | None = None) -> list[StudentSubmission]:
        """Return submissions in insertion order, optionally for one quiz."""
        submissions = [submission_from_record(item) for item in self._store.get_all(SUBMISSION_COLLECTION)]
        if quiz_id is None:
            return submissions
        return [s for s in submissions if s.quiz_id == quiz_id]

    def get_submission(self, submission_id: str) -> StudentSubmission | None:
        return next((s for s in self.list_submissions() if s.id == submission_id), None)
