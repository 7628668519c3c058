"""Retry eligibility, results and per-course metadata."""
from pydantic import BaseModel, Field


class RetryInfo(BaseModel):
    """Retry eligibility; None in any field means unknown."""

    can_retry: bool | None = None
    remaining_attempts: int | None = None
    max_attempts: int | None = None
    used_attempts: int | None = None
    best_score: float | None = None
    passed: bool | None = None

    @property
    def is_known(self) -> bool:
        return any(value is not None for value in self.model_dump().values())

    def merge(self, fresher: "RetryInfo | None") -> "RetryInfo":
        """Overlay the known fields of ``fresher``; unknowns never erase known values."""
        if fresher is None:
            return self
        updates = {
            name: value
            for name, value in fresher.model_dump().items()
            if value is not None
        }
        return self.model_copy(update=updates)


class ScoreBreakdown(BaseModel):
    """Score fields found on a submit or result response."""

    score: float | None = None
    passed: bool | None = None
    correct_count: int | None = None
    wrong_count: int | None = None
    total_count: int | None = None
    submitted_at: str | None = None


def _display(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class AttemptResult(BaseModel):
    """Outcome of one submitted attempt."""

    attempt_id: str
    attempt_number: int | None = None
    score: float | None = None
    passed: bool | None = None
    correct_count: int | None = None
    wrong_count: int | None = None
    total_count: int | None = None
    submitted_at: str | None = None
    pass_score: float | None = None
    retry_info: RetryInfo = Field(default_factory=RetryInfo)
    # False when the authoritative result could not be fetched.
    available: bool = True

    def display(self) -> dict[str, object]:
        """View payload; unknown numbers render as "-"."""
        return {
            "attemptId": self.attempt_id,
            "attemptNumber": self.attempt_number,
            "score": _display(self.score),
            "passed": self.passed,
            "correctCount": _display(self.correct_count),
            "wrongCount": _display(self.wrong_count),
            "totalCount": _display(self.total_count),
            "submittedAt": self.submitted_at,
            "passScore": _display(self.pass_score),
            "canRetry": self.retry_info.can_retry,
            "remainingAttempts": self.retry_info.remaining_attempts,
            "resultAvailable": self.available,
        }


class CourseMeta(BaseModel):
    """Cached pass score and retry info of one course. Only ever moves forward."""

    pass_score: float | None = None
    retry_info: RetryInfo = Field(default_factory=RetryInfo)

    def absorb(self, pass_score: float | None, retry_info: RetryInfo | None) -> None:
        if pass_score is not None:
            self.pass_score = pass_score
        self.retry_info = self.retry_info.merge(retry_info)


class CourseSummary(BaseModel):
    """A course offered on the quiz dashboard."""

    course_id: str
    title: str
    category: str | None = None
    attempt_count: int = 0
    max_attempts: int | None = None
    has_attempted: bool = False
    best_score: float | None = None
    passed: bool | None = None


class WrongAnswer(BaseModel):
    """A missed question of a submitted attempt."""

    question: str
    choices: list[str] = Field(default_factory=list)
    user_answer_index: int = -1
    correct_answer_index: int = -1
    explanation: str = ""
