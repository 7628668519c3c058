"""Attempt session models owned by the session controller."""
from enum import Enum

from pydantic import BaseModel, Field

from quiz_session.models.results import RetryInfo


class SessionPhase(str, Enum):
    """Session controller state."""

    DASHBOARD = "dashboard"
    STARTING = "starting"
    SOLVING = "solving"
    AUTO_SUBMITTING = "auto_submitting"
    MANUAL_SUBMITTING = "manual_submitting"
    RESULT = "result"


class SaveStatus(str, Enum):
    """Autosave status shown next to the questions."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class LeaveReason(str, Enum):
    """Why the user left an attempt in progress."""

    HIDDEN = "HIDDEN"
    UNLOAD = "UNLOAD"
    BACK = "BACK"
    CLOSE = "CLOSE"


class Question(BaseModel):
    """A question as loaded into a session. Immutable."""

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    order: int = 0
    prompt: str = ""
    choices: tuple[str, ...] = ()
    saved_choice: int | None = None

    def accepts(self, choice_index: int) -> bool:
        return 0 <= choice_index < len(self.choices)


class AnswerItem(BaseModel):
    """One entry of an answer set, in the remote service's wire shape."""

    questionId: str
    userSelectedIndex: int


class StartedAttempt(BaseModel):
    """Parsed response of the start call."""

    attempt_id: str
    questions: list[Question]
    saved_answers: dict[str, int] = Field(default_factory=dict)
    raw: dict[str, object] = Field(default_factory=dict)


class TimerState(BaseModel):
    """
    Countdown for the attempt; 0 time limit means unlimited.

    A parsed server response leaves a field None when the server did not
    report it. The controller's live timer always has both set.
    """

    time_limit_seconds: int | None = Field(default=0, ge=0)
    remaining_seconds: int | None = Field(default=0, ge=0)
    is_server_expired: bool = False

    @property
    def unlimited(self) -> bool:
        return self.time_limit_seconds == 0

    @property
    def expired(self) -> bool:
        if self.is_server_expired:
            return True
        if self.unlimited or self.remaining_seconds is None:
            return False
        return self.remaining_seconds <= 0

    @property
    def elapsed_seconds(self) -> int | None:
        if self.unlimited or self.time_limit_seconds is None or self.remaining_seconds is None:
            return None
        return max(0, self.time_limit_seconds - self.remaining_seconds)


class AttemptSession(BaseModel):
    """One in-progress exam instance."""

    attempt_id: str
    course_id: str
    attempt_number: int = Field(default=1, ge=1)
    questions: list[Question]
    pass_score: float | None = None
    retry_info: RetryInfo = Field(default_factory=RetryInfo)

    def question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
