"""Service for summarising submissions into per-quiz statistics."""

from __future__ import annotations

from dataclasses import dataclass, replace

from engsmart.constants.quiz_constants import MAX_SCORE
from engsmart.core.models import Quiz, StudentSubmission
from engsmart.core.services.submission_engine import is_correct


@dataclass(frozen=True, slots=True)
class ScoreBucket:
    """Histogram bucket covering ``[lower, upper)``; the top bucket also includes ``upper``."""

    key: str
    label: str
    lower: float
    upper: float
    count: int = 0

    def contains(self, score: float) -> bool:
        if self.upper >= MAX_SCORE:
            return self.lower <= score <= self.upper
        return self.lower <= score < self.upper


@dataclass(frozen=True, slots=True)
class QuizStatistics:
    """Immutable snapshot returned to consumers."""

    quiz_id: str
    submission_count: int
    mean_score: float | None
    histogram: list[ScoreBucket]
    roster: list[StudentSubmission]
    correct_per_question: list[int]

    @property
    def has_data(self) -> bool:
        return self.submission_count > 0


_BUCKET_BOUNDS: tuple[tuple[str, str, float, float], ...] = (
    ("low", "0-4", 0.0, 5.0),
    ("mid-low", "5-6.5", 5.0, 7.0),
    ("mid-high", "7-8.5", 7.0, 9.0),
    ("high", "9-10", 9.0, MAX_SCORE),
)

_CLASSIFICATIONS: tuple[tuple[float, str], ...] = (
    (9.0, "Excellent"),
    (8.0, "Good"),
    (6.5, "Fair"),
    (5.0, "Average"),
)


def mean_score(submissions: list[StudentSubmission]) -> float | None:
    """Arithmetic mean, or None when there is nothing to average."""
    if not submissions:
        return None
    return sum(s.score for s in submissions) / len(submissions)


def build_histogram(submissions: list[StudentSubmission]) -> list[ScoreBucket]:
    buckets = []
    for key, label, lower, upper in _BUCKET_BOUNDS:
        template = ScoreBucket(key=key, label=label, lower=lower, upper=upper)
        count = sum(1 for s in submissions if template.contains(s.score))
        buckets.append(replace(template, count=count))
    return buckets


def rank_submissions(submissions: list[StudentSubmission]) -> list[StudentSubmission]:
    """Highest score first; equal scores keep their submission order."""
    return sorted(submissions, key=lambda s: -s.score)


def count_correct_per_question(quiz: Quiz, submissions: list[StudentSubmission]) -> list[int]:
    counts = [0] * quiz.question_count
    for submission in submissions:
        for index, (answer, question) in enumerate(zip(submission.answers, quiz.questions)):
            if is_correct(answer, question.correct_answer):
                counts[index] += 1
    return counts


def classify_score(score: float) -> str:
    """Map a 10-point score to the result label shown to students."""
    for threshold, label in _CLASSIFICATIONS:
        if score >= threshold:
            return label
    return "Needs improvement"


class StatisticsAggregator:
    """Computes read-side statistics; never writes to the store."""

    def compute(self, quiz_id: str, quiz: Quiz | None, submissions: list[StudentSubmission]) -> QuizStatistics:
        if quiz is None:
            return self.empty(quiz_id)
        relevant = [s for s in submissions if s.quiz_id == quiz_id]
        return QuizStatistics(
            quiz_id=quiz_id,
            submission_count=len(relevant),
            mean_score=mean_score(relevant),
            histogram=build_histogram(relevant),
            roster=rank_submissions(relevant),
            correct_per_question=count_correct_per_question(quiz, relevant),
        )

    @staticmethod
    def empty(quiz_id: str) -> QuizStatistics:
        return QuizStatistics(
            quiz_id=quiz_id,
            submission_count=0,
            mean_score=None,
            histogram=build_histogram([]),
            roster=[],
            correct_per_question=[],
        )
