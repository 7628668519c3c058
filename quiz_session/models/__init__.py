"""Pydantic models."""
from quiz_session.models.notifications import Notification
from quiz_session.models.view import AnswerRequest, LeaveRequest, StartRequest
from quiz_session.models.results import (
    AttemptResult,
    CourseMeta,
    CourseSummary,
    RetryInfo,
    ScoreBreakdown,
    WrongAnswer,
)
from quiz_session.models.session import (
    AnswerItem,
    AttemptSession,
    LeaveReason,
    Question,
    SaveStatus,
    SessionPhase,
    StartedAttempt,
    TimerState,
)

__all__ = [
    "AnswerItem",
    "AnswerRequest",
    "AttemptResult",
    "AttemptSession",
    "CourseMeta",
    "CourseSummary",
    "LeaveReason",
    "LeaveRequest",
    "Notification",
    "Question",
    "RetryInfo",
    "SaveStatus",
    "ScoreBreakdown",
    "SessionPhase",
    "StartRequest",
    "StartedAttempt",
    "TimerState",
    "WrongAnswer",
]
