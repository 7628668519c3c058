"""Transient user-facing notifications."""
from typing import Literal

from pydantic import BaseModel, Field

NotificationType = Literal["success", "warning", "info"]


class Notification(BaseModel):
    """A dismissible toast."""

    id: int
    type: NotificationType
    title: str = Field(..., min_length=1)
    description: str | None = None
    created_at: str
