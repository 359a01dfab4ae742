"""Quiz-related constants shared across the core and server layers."""

OPTION_COUNT: int = 4
UNANSWERED: int = -1  # Answer-vector slot with no option selected; never a valid option index.
MAX_SCORE: float = 10.0

DEFAULT_SECTION: str = "General"
DEFAULT_QUESTION_COUNT: int = 50
EXAM_DURATION_MINUTES: int = 45  # Shown to students only, not enforced.

ACCESS_CODE_LENGTH: int = 6
ACCESS_CODE_ALPHABET: str = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
ACCESS_CODE_MAX_ATTEMPTS: int = 5

QUIZ_COLLECTION: str = "engsmart_quizzes"
SUBMISSION_COLLECTION: str = "engsmart_submissions"
