"""Client for the remote edu service quiz endpoints."""
from __future__ import annotations

from urllib.parse import quote

from quiz_session.config import READ_TIMEOUT_MS, WRITE_TIMEOUT_MS
from quiz_session.errors import ServiceResponseError
from quiz_session.models import (
    AnswerItem,
    CourseSummary,
    Question,
    StartedAttempt,
    TimerState,
    WrongAnswer,
)
from quiz_session.services.cancel import CancelToken
from quiz_session.services.executor import run_with_deadline
from quiz_session.services.http_client import AuthorizedHttpClient
from quiz_session.services.normalizer import (
    as_bool,
    as_count,
    as_id,
    as_int,
    as_number,
    as_text,
    build_rules,
    extract_list,
    first_match,
    unwrap_record,
)

ATTEMPT_ID_RULES = build_rules(("attemptId", "attempt_id", "attempt-id"), as_id)
TIME_LIMIT_RULES = build_rules(("timeLimit", "time_limit", "timeLimitSeconds"), as_count)
REMAINING_RULES = build_rules(("remainingSeconds", "remaining_seconds"), as_count)
EXPIRED_RULES = build_rules(("isExpired", "is_expired", "expired"), as_bool)


def _segment(value: str | int) -> str:
    return quote(str(value), safe="")


def _keys_preview(raw: object) -> str:
    if not isinstance(raw, dict):
        return type(raw).__name__
    return "keys=[" + ", ".join(list(raw)[:18]) + "]"


def parse_question(raw: dict, index: int) -> Question | None:
    question_id = as_id(raw.get("questionId")) or as_id(raw.get("question_id")) or as_id(raw.get("id"))
    if not question_id:
        return None
    order = as_int(raw.get("order"))
    prompt = as_text(raw.get("question")) or as_text(raw.get("text")) or as_text(raw.get("prompt")) or ""
    choices = raw.get("choices") or raw.get("options") or []
    if not isinstance(choices, list):
        choices = []
    saved = as_count(raw.get("userSelectedIndex"))
    if saved is None:
        saved = as_count(raw.get("user_selected_index"))
    question = Question(
        id=question_id,
        order=order if order is not None else index + 1,
        prompt=prompt,
        choices=tuple(choice for choice in choices if isinstance(choice, str)),
        saved_choice=saved,
    )
    if question.saved_choice is not None and not question.accepts(question.saved_choice):
        question = question.model_copy(update={"saved_choice": None})
    return question


def parse_saved_answers(dto: dict) -> dict[str, int]:
    raw = dto.get("savedAnswers")
    if not isinstance(raw, list):
        raw = dto.get("saved_answers")
    if not isinstance(raw, list):
        raw = dto.get("answers")
    if not isinstance(raw, list):
        return {}
    saved: dict[str, int] = {}
    for item in raw:
        if not isinstance(item, dict):
            continue
        question_id = as_id(item.get("questionId")) or as_id(item.get("id"))
        index = as_count(item.get("userSelectedIndex"))
        if index is None:
            index = as_count(item.get("user_selected_index"))
        if question_id and index is not None:
            saved[question_id] = index
    return saved


def parse_started_attempt(raw: object) -> StartedAttempt:
    dto = unwrap_record(raw)
    if dto is None:
        raise ServiceResponseError(f"start: unexpected response ({_keys_preview(raw)})")
    attempt_id = first_match(dto, ATTEMPT_ID_RULES)
    if not attempt_id:
        raise ServiceResponseError(f"start: attemptId is missing ({_keys_preview(dto)})")
    records = extract_list(dto, ("questions", "items", "list"))
    if records is None:
        raise ServiceResponseError(f"start: questions are missing ({_keys_preview(dto)})")
    questions = [q for q in (parse_question(r, i) for i, r in enumerate(records)) if q]
    if not questions:
        raise ServiceResponseError("start: the attempt has no questions")
    questions.sort(key=lambda q: q.order)
    return StartedAttempt(
        attempt_id=attempt_id,
        questions=questions,
        saved_answers=parse_saved_answers(dto),
        raw=dto,
    )


def parse_timer(raw: object) -> TimerState:
    dto = unwrap_record(raw)
    if dto is None:
        raise ServiceResponseError(f"timer: unexpected response ({_keys_preview(raw)})")
    time_limit = first_match(dto, TIME_LIMIT_RULES)
    remaining = first_match(dto, REMAINING_RULES)
    expired = bool(first_match(dto, EXPIRED_RULES))
    if remaining is None:
        remaining = 0 if expired else time_limit
    return TimerState(
        time_limit_seconds=time_limit,
        remaining_seconds=remaining,
        is_server_expired=expired,
    )


def parse_course(raw: dict) -> CourseSummary | None:
    course_id = as_id(raw.get("educationId")) or as_id(raw.get("education_id")) or as_id(raw.get("id"))
    title = as_text(raw.get("title")) or as_text(raw.get("educationTitle")) or as_text(raw.get("name"))
    if not course_id or not title:
        return None
    return CourseSummary(
        course_id=course_id,
        title=title,
        category=as_text(raw.get("category")),
        attempt_count=as_count(raw.get("attemptCount")) or 0,
        max_attempts=as_count(raw.get("maxAttempts")),
        has_attempted=bool(as_bool(raw.get("hasAttempted"))),
        best_score=as_number(raw.get("bestScore")),
        passed=as_bool(raw.get("passed")),
    )


def parse_wrong_answer(raw: dict) -> WrongAnswer | None:
    question = as_text(raw.get("question"))
    if question is None:
        return None
    user_index = as_int(raw.get("userAnswerIndex"))
    if user_index is None:
        user_index = as_int(raw.get("user_answer_index"))
    correct_index = as_int(raw.get("correctAnswerIndex"))
    if correct_index is None:
        correct_index = as_int(raw.get("correct_answer_index"))
    choices = raw.get("choices")
    return WrongAnswer(
        question=question,
        choices=[c for c in choices if isinstance(c, str)] if isinstance(choices, list) else [],
        user_answer_index=-1 if user_index is None else user_index,
        correct_answer_index=-1 if correct_index is None else correct_index,
        explanation=as_text(raw.get("explanation")) or "",
    )


def answers_payload(answers: list[AnswerItem]) -> list[dict[str, object]]:
    return [answer.model_dump() for answer in answers]


class QuizApi:
    """
    The quiz operations of the edu service.

    Every call runs under ``run_with_deadline``; ``parent`` ties it to a
    wider scope (the attempt) so all of them can be cancelled together.
    Reads and critical writes raise; callers decide whether to swallow.
    """

    def __init__(
        self,
        http: AuthorizedHttpClient,
        read_timeout_ms: int = READ_TIMEOUT_MS,
        write_timeout_ms: int = WRITE_TIMEOUT_MS,
    ):
        self.http = http
        self.read_timeout_ms = read_timeout_ms
        self.write_timeout_ms = write_timeout_ms

    async def _call(
        self,
        method: str,
        path: str,
        label: str,
        parent: CancelToken | None = None,
        json_body: object = None,
    ) -> object:
        timeout_ms = self.read_timeout_ms if method in ("GET", "HEAD") else self.write_timeout_ms
        return await run_with_deadline(
            lambda token: self.http.request_json(
                method,
                path,
                json_body=json_body,
                cancel=token,
                timeout_ms=timeout_ms,
                label=label,
            ),
            timeout_ms,
            label,
            parent=parent,
        )

    async def fetch_retry_info(self, course_id: str, parent: CancelToken | None = None) -> dict:
        raw = await self._call(
            "GET", f"/quiz/{_segment(course_id)}/retry-info", "GET /quiz/:courseId/retry-info", parent
        )
        return unwrap_record(raw) or {}

    async def start_attempt(self, course_id: str, parent: CancelToken | None = None) -> StartedAttempt:
        raw = await self._call(
            "GET", f"/quiz/{_segment(course_id)}/start", "GET /quiz/:courseId/start", parent
        )
        return parse_started_attempt(raw)

    async def fetch_timer(self, attempt_id: str, parent: CancelToken | None = None) -> TimerState:
        raw = await self._call(
            "GET", f"/quiz/attempt/{_segment(attempt_id)}/timer", "GET /quiz/attempt/:id/timer", parent
        )
        return parse_timer(raw)

    async def push_timer(
        self, attempt_id: str, remaining_seconds: int, parent: CancelToken | None = None
    ) -> None:
        await self._call(
            "PUT",
            f"/quiz/attempt/{_segment(attempt_id)}/timer",
            "PUT /quiz/attempt/:id/timer",
            parent,
            {"remainingSeconds": remaining_seconds},
        )

    async def save_answers(
        self,
        attempt_id: str,
        answers: list[AnswerItem],
        elapsed_seconds: int | None = None,
        parent: CancelToken | None = None,
    ) -> dict:
        body: dict[str, object] = {"answers": answers_payload(answers)}
        if elapsed_seconds is not None:
            body["elapsedSeconds"] = elapsed_seconds
        raw = await self._call(
            "POST", f"/quiz/attempt/{_segment(attempt_id)}/save", "POST /quiz/attempt/:id/save", parent, body
        )
        return unwrap_record(raw) or {"saved": True}

    async def submit_answers(
        self, attempt_id: str, answers: list[AnswerItem], parent: CancelToken | None = None
    ) -> dict:
        raw = await self._call(
            "POST",
            f"/quiz/attempt/{_segment(attempt_id)}/submit",
            "POST /quiz/attempt/:id/submit",
            parent,
            {"answers": answers_payload(answers)},
        )
        return unwrap_record(raw) or {}

    async def fetch_attempt_result(self, attempt_id: str, parent: CancelToken | None = None) -> dict:
        raw = await self._call(
            "GET", f"/quiz/attempt/{_segment(attempt_id)}/result", "GET /quiz/attempt/:id/result", parent
        )
        dto = unwrap_record(raw)
        if dto is None:
            raise ServiceResponseError(f"result: unexpected response ({_keys_preview(raw)})")
        return dto

    async def record_leave(
        self,
        attempt_id: str,
        timestamp: str,
        reason: str,
        leave_seconds: int | None = None,
        parent: CancelToken | None = None,
    ) -> dict:
        body: dict[str, object] = {"timestamp": timestamp, "reason": reason}
        if leave_seconds is not None:
            body["leaveSeconds"] = leave_seconds
        raw = await self._call(
            "POST", f"/quiz/attempt/{_segment(attempt_id)}/leave", "POST /quiz/attempt/:id/leave", parent, body
        )
        return unwrap_record(raw) or {"recorded": True}

    async def list_available_courses(self, parent: CancelToken | None = None) -> list[CourseSummary]:
        raw = await self._call(
            "GET", "/quiz/available-educations", "GET /quiz/available-educations", parent
        )
        records = extract_list(raw, ("educations", "items", "list"))
        if records is None:
            raise ServiceResponseError(f"available-educations: no list ({_keys_preview(raw)})")
        return [c for c in (parse_course(r) for r in records) if c]

    async def fetch_wrong_answers(self, attempt_id: str, parent: CancelToken | None = None) -> list[WrongAnswer]:
        raw = await self._call(
            "GET", f"/quiz/{_segment(attempt_id)}/wrongs", "GET /quiz/:attemptId/wrongs", parent
        )
        records = extract_list(raw, ("wrongs", "wrongList", "items", "list"))
        if records is None:
            raise ServiceResponseError(f"wrongs: no list ({_keys_preview(raw)})")
        return [w for w in (parse_wrong_answer(r) for r in records) if w]
