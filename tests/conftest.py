import asyncio
import copy

import pytest

from quiz_session.config import ControllerSettings
from quiz_session.errors import QuizSessionError
from quiz_session.models import AnswerItem
from quiz_session.services.quiz_api import (
    parse_course,
    parse_started_attempt,
    parse_timer,
    parse_wrong_answer,
)


def make_questions(count: int = 3) -> list[dict[str, object]]:
    return [
        {"questionId": f"q{n}", "order": n, "question": f"Question {n}", "choices": ["A", "B", "C", "D"]}
        for n in range(1, count + 1)
    ]


class FakeQuizApi:
    """In-memory stand-in for QuizApi recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.failures: dict[str, QuizSessionError] = {}
        self.delays: dict[str, float] = {}
        self.retry_info: dict[str, object] = {"canRetry": True, "remainingAttempts": 2, "passScore": 70}
        self.start_response: dict[str, object] = {"attemptId": "a-1", "questions": make_questions()}
        self.timer: dict[str, object] = {"timeLimit": 600, "remainingSeconds": 600, "isExpired": False}
        self.submit_response: dict[str, object] = {"submitted": True}
        self.result_response: dict[str, object] = {
            "score": 90,
            "passed": True,
            "correctCount": 3,
            "wrongCount": 0,
            "totalCount": 3,
            "submittedAt": "2024-05-01T10:00:00+00:00",
        }
        self.courses: list[dict[str, object]] = [
            {"educationId": "c-1", "title": "Safety", "attemptCount": 1, "maxAttempts": 3, "bestScore": 60}
        ]
        self.wrongs: list[dict[str, object]] = [
            {"question": "Question 2", "choices": ["A", "B"], "userAnswerIndex": 0, "correctAnswerIndex": 1}
        ]

    async def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def calls_of(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def fetch_retry_info(self, course_id, parent=None):
        await self._record("fetch_retry_info", course_id)
        return copy.deepcopy(self.retry_info)

    async def start_attempt(self, course_id, parent=None):
        await self._record("start_attempt", course_id)
        return parse_started_attempt(copy.deepcopy(self.start_response))

    async def fetch_timer(self, attempt_id, parent=None):
        await self._record("fetch_timer", attempt_id)
        return parse_timer(dict(self.timer))

    async def push_timer(self, attempt_id, remaining_seconds, parent=None):
        await self._record("push_timer", attempt_id, remaining_seconds)

    async def save_answers(self, attempt_id, answers: list[AnswerItem], elapsed_seconds=None, parent=None):
        await self._record("save_answers", attempt_id, [a.model_dump() for a in answers], elapsed_seconds)
        return {"saved": True}

    async def submit_answers(self, attempt_id, answers: list[AnswerItem], parent=None):
        await self._record("submit_answers", attempt_id, [a.model_dump() for a in answers])
        return copy.deepcopy(self.submit_response)

    async def fetch_attempt_result(self, attempt_id, parent=None):
        await self._record("fetch_attempt_result", attempt_id)
        return copy.deepcopy(self.result_response)

    async def record_leave(self, attempt_id, timestamp, reason, leave_seconds=None, parent=None):
        await self._record("record_leave", attempt_id, reason, leave_seconds)
        return {"recorded": True}

    async def list_available_courses(self, parent=None):
        await self._record("list_available_courses")
        return [c for c in (parse_course(r) for r in self.courses) if c]

    async def fetch_wrong_answers(self, attempt_id, parent=None):
        await self._record("fetch_wrong_answers", attempt_id)
        return [w for w in (parse_wrong_answer(r) for r in self.wrongs) if w]


@pytest.fixture
def fake_api() -> FakeQuizApi:
    return FakeQuizApi()


@pytest.fixture
def settings() -> ControllerSettings:
    # Loops effectively never fire on their own; tests drive tick/reconcile directly.
    return ControllerSettings(
        tick_interval=3600,
        reconcile_interval=3600,
        push_interval=3600,
        autosave_debounce=0.05,
        notification_ttl=60,
        close_grace=1,
    )
