"""Request bodies of the view-layer API."""
from typing import Literal

from pydantic import BaseModel, Field


class StartRequest(BaseModel):
    """Start an attempt for a course."""

    courseId: str = Field(..., min_length=1)
    defaultPassScore: float | None = Field(None, ge=0, le=1000)


class AnswerRequest(BaseModel):
    """Select a choice for a question."""

    choiceIndex: int = Field(..., ge=0)


class LeaveRequest(BaseModel):
    """The view was hidden or is unloading."""

    reason: Literal["hidden", "unload"]
    leaveSeconds: int | None = Field(None, ge=0)
