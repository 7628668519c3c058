"""
Lifecycle of one quiz attempt.

dashboard -> starting -> solving -> (auto_submitting | manual_submitting) -> result

While solving, three loops run on the event loop: a 1 s local countdown,
a 15 s reconciliation against the server clock and a 10 s push of the
remaining time. Answer edits apply immediately and are saved after a
quiet period; every exit path (view hidden, unload, back to dashboard,
teardown) flushes what it can without blocking.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import requests

from quiz_session.config import ControllerSettings
from quiz_session.errors import (
    AnswerRejectedError,
    InvalidStateError,
    QuizSessionError,
    describe_error,
)
from quiz_session.models import (
    AnswerItem,
    AttemptResult,
    AttemptSession,
    CourseMeta,
    CourseSummary,
    LeaveReason,
    Question,
    RetryInfo,
    SaveStatus,
    ScoreBreakdown,
    SessionPhase,
    TimerState,
    WrongAnswer,
)
from quiz_session.services.cancel import CancelToken
from quiz_session.services.normalizer import (
    extract_attempt_number,
    extract_pass_score,
    extract_retry_info,
    extract_score_breakdown,
)
from quiz_session.services.notifications import NotificationCenter
from quiz_session.services.quiz_api import QuizApi
from quiz_session.utils import format_clock, json_compact, utc_now

log = logging.getLogger(__name__)

# Failures of remote calls. Anything else is a bug and propagates.
REMOTE_ERRORS = (QuizSessionError, requests.RequestException)

SUBMITTING = (SessionPhase.AUTO_SUBMITTING, SessionPhase.MANUAL_SUBMITTING)


def build_answer_set(questions: list[Question], selections: dict[str, int]) -> list[AnswerItem]:
    """Every current selection, in question order."""
    return [
        AnswerItem(questionId=question.id, userSelectedIndex=selections[question.id])
        for question in questions
        if question.id in selections
    ]


def answer_fingerprint(answers: list[AnswerItem]) -> str:
    return json_compact([answer.model_dump() for answer in answers])


def merge_saved_answers(questions: list[Question], saved: dict[str, int]) -> dict[str, int]:
    """
    Selections restored for a resumed attempt.

    Answers embedded in the questions come first; a separately listed
    saved answer only fills a question that has no selection yet.
    """
    selections = {q.id: q.saved_choice for q in questions if q.saved_choice is not None}
    by_id = {q.id: q for q in questions}
    for question_id, index in saved.items():
        question = by_id.get(question_id)
        if question is None or question_id in selections or not question.accepts(index):
            continue
        selections[question_id] = index
    return selections


def resolve_start_timer(server: TimerState, default_limit: int) -> TimerState:
    """
    Fill what the server left out of the first timer response.

    An unreported limit never makes the attempt untimed: the reported
    remaining time stands in for it, or the default duration when that
    is missing too.
    """
    limit = server.time_limit_seconds
    remaining = server.remaining_seconds
    if limit is None:
        limit = remaining if remaining else default_limit
    if remaining is None:
        remaining = limit
    return TimerState(
        time_limit_seconds=limit,
        remaining_seconds=remaining,
        is_server_expired=server.is_server_expired,
    )


def merge_breakdowns(*breakdowns: ScoreBreakdown) -> ScoreBreakdown:
    """Later breakdowns win wherever they know a field."""
    merged = ScoreBreakdown()
    for breakdown in breakdowns:
        known = {k: v for k, v in breakdown.model_dump().items() if v is not None}
        merged = merged.model_copy(update=known)
    return merged


class QuizSessionController:
    """Owns the quiz panel's attempt lifecycle. One instance per panel."""

    def __init__(
        self,
        api: QuizApi,
        settings: ControllerSettings | None = None,
        notifications: NotificationCenter | None = None,
    ):
        self.api = api
        self.settings = settings or ControllerSettings()
        self.notifications = notifications or NotificationCenter(self.settings.notification_ttl)

        self.phase = SessionPhase.DASHBOARD
        self.course_id: str | None = None
        self.session: AttemptSession | None = None
        self.timer: TimerState | None = None
        self.selections: dict[str, int] = {}
        self.save_status = SaveStatus.IDLE
        self.leaving = 0

        # Panel-lifetime caches.
        self.course_meta: dict[str, CourseMeta] = {}
        self.results: dict[str, AttemptResult] = {}
        self.last_result: AttemptResult | None = None
        self.courses: list[CourseSummary] = []
        self._leave_recorded: set[tuple[str, LeaveReason]] = set()

        self._default_pass_score: float | None = None
        self._background: set[asyncio.Task] = set()
        self._save_lock = asyncio.Lock()
        self._closed = False
        self._loops: list[asyncio.Task] = []
        self._reset_attempt_flags()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _reset_attempt_flags(self) -> None:
        self._attempt_token: CancelToken | None = None
        self._save_handle: asyncio.TimerHandle | None = None
        self._save_task: asyncio.Task | None = None
        self._last_saved_fingerprint: str | None = None
        self._auto_submit_fired = False
        self._reconcile_inflight = False
        self._push_inflight = False

    def _meta(self, course_id: str) -> CourseMeta:
        return self.course_meta.setdefault(course_id, CourseMeta())

    def _is_current(self, attempt_id: str) -> bool:
        return self.session is not None and self.session.attempt_id == attempt_id

    def _spawn(self, coro: Awaitable[object]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Background task failed", exc_info=exc)

    async def _every(self, interval: float, action: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(interval)
            action()

    def _start_loops(self) -> None:
        self._stop_loops()
        self._loops = [
            asyncio.ensure_future(self._every(self.settings.tick_interval, self.tick)),
            asyncio.ensure_future(
                self._every(
                    self.settings.reconcile_interval,
                    lambda: self._spawn(self.reconcile_timer()),
                )
            ),
            asyncio.ensure_future(
                self._every(
                    self.settings.push_interval,
                    lambda: self._spawn(self.push_timer()),
                )
            ),
        ]

    def _stop_loops(self) -> None:
        for task in self._loops:
            task.cancel()
        self._loops = []

    def _end_attempt(self) -> None:
        """Drop all solving state and cancel the attempt's outstanding calls."""
        self._stop_loops()
        if self._save_handle is not None:
            self._save_handle.cancel()
        if self._attempt_token is not None:
            self._attempt_token.cancel("attempt ended")
        self.session = None
        self.timer = None
        self.selections = {}
        self.save_status = SaveStatus.IDLE
        self._reset_attempt_flags()

    def pass_score_for(self, course_id: str | None) -> float:
        if course_id is not None:
            known = self._meta(course_id).pass_score
            if known is not None:
                return known
        if self._default_pass_score is not None:
            return self._default_pass_score
        return self.settings.default_pass_score

    def answer_set(self) -> list[AnswerItem]:
        if self.session is None:
            return []
        return build_answer_set(self.session.questions, self.selections)

    @property
    def save_pending(self) -> bool:
        return self._save_handle is not None

    # ------------------------------------------------------------------
    # start
    # ------------------------------------------------------------------

    async def start(self, course_id: str, default_pass_score: float | None = None) -> bool:
        """Start a new attempt. Returns False when it could not be started."""
        if self._closed:
            raise InvalidStateError("the quiz panel is closed")
        if self.phase not in (SessionPhase.DASHBOARD, SessionPhase.RESULT):
            raise InvalidStateError(f"cannot start a quiz while {self.phase.value}")

        self.phase = SessionPhase.STARTING
        self.course_id = course_id
        self._default_pass_score = default_pass_score
        meta = self._meta(course_id)

        # Eligibility first, so an exhausted course never creates a server-side attempt.
        try:
            retry_raw = await self.api.fetch_retry_info(course_id)
        except REMOTE_ERRORS as exc:
            log.warning("Retry info for course %s unavailable: %s", course_id, exc)
        else:
            meta.absorb(extract_pass_score(retry_raw), extract_retry_info(retry_raw))
        if self._closed:
            self.phase = SessionPhase.DASHBOARD
            return False
        if meta.retry_info.can_retry is False:
            self.notifications.push(
                "warning",
                "No attempts left",
                "You have used every attempt for this quiz.",
            )
            self.phase = SessionPhase.DASHBOARD
            return False

        try:
            started = await self.api.start_attempt(course_id)
        except REMOTE_ERRORS as exc:
            log.warning("Starting quiz for course %s failed: %s", course_id, exc)
            self.notifications.push("warning", "Could not start the quiz", describe_error(exc))
            self.phase = SessionPhase.DASHBOARD
            return False

        token = CancelToken()
        try:
            timer = await self.api.fetch_timer(started.attempt_id, parent=token)
        except REMOTE_ERRORS as exc:
            limit = self.settings.default_time_limit_seconds
            log.warning(
                "Timer for attempt %s unavailable, using %ss: %s",
                started.attempt_id,
                limit,
                exc,
            )
            timer = TimerState(time_limit_seconds=limit, remaining_seconds=limit)
        else:
            timer = resolve_start_timer(timer, self.settings.default_time_limit_seconds)
        if self._closed:
            token.cancel("panel closed")
            self.phase = SessionPhase.DASHBOARD
            return False

        meta.absorb(extract_pass_score(started.raw), extract_retry_info(started.raw))
        attempt_number = extract_attempt_number(started.raw)
        if attempt_number is None:
            used = meta.retry_info.used_attempts
            attempt_number = used + 1 if used is not None else 1

        self._end_attempt()
        self._attempt_token = token
        self.session = AttemptSession(
            attempt_id=started.attempt_id,
            course_id=course_id,
            attempt_number=attempt_number,
            questions=started.questions,
            pass_score=meta.pass_score,
            retry_info=meta.retry_info,
        )
        self.selections = merge_saved_answers(started.questions, started.saved_answers)
        if self.selections:
            # Restored answers are already on the server.
            self._last_saved_fingerprint = answer_fingerprint(self.answer_set())
        self.timer = timer
        self.phase = SessionPhase.SOLVING
        log.info(
            "Attempt %s (#%s) started for course %s: %s questions, limit %ss",
            started.attempt_id,
            attempt_number,
            course_id,
            len(started.questions),
            timer.time_limit_seconds,
        )
        self._start_loops()
        self._check_expiry()
        return True

    # ------------------------------------------------------------------
    # timer
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """One local countdown step. Never counts up."""
        if self.phase is not SessionPhase.SOLVING or self.timer is None:
            return
        if not self.timer.unlimited and self.timer.remaining_seconds > 0:
            self.timer.remaining_seconds -= 1
        self._check_expiry()

    def apply_server_timer(self, server: TimerState) -> None:
        """Adopt the server clock, ignoring drift below the jitter threshold."""
        if self.timer is None:
            return
        if server.time_limit_seconds is not None:
            self.timer.time_limit_seconds = server.time_limit_seconds
        if server.remaining_seconds is not None:
            drift = abs(server.remaining_seconds - self.timer.remaining_seconds)
            if drift >= self.settings.reconcile_jitter_seconds:
                self.timer.remaining_seconds = server.remaining_seconds
        self.timer.is_server_expired = server.is_server_expired

    async def reconcile_timer(self) -> None:
        if self.phase is not SessionPhase.SOLVING or self.session is None:
            return
        if self._reconcile_inflight:
            return
        attempt_id = self.session.attempt_id
        self._reconcile_inflight = True
        try:
            server = await self.api.fetch_timer(attempt_id, parent=self._attempt_token)
        except REMOTE_ERRORS as exc:
            log.debug("Timer reconciliation for %s failed: %s", attempt_id, exc)
            return
        finally:
            if self._is_current(attempt_id):
                self._reconcile_inflight = False
        if not self._is_current(attempt_id) or self.phase is not SessionPhase.SOLVING:
            return
        self.apply_server_timer(server)
        self._check_expiry()

    async def push_timer(self) -> None:
        """Report remaining time so a reload resumes correctly. Best-effort."""
        if self.session is None or self.timer is None or self.timer.unlimited:
            return
        if self._push_inflight:
            return
        attempt_id = self.session.attempt_id
        self._push_inflight = True
        try:
            await self._push_remaining(
                attempt_id, self.timer.remaining_seconds, self._attempt_token
            )
        finally:
            if self._is_current(attempt_id):
                self._push_inflight = False

    async def _push_remaining(
        self, attempt_id: str, remaining: int, parent: CancelToken | None
    ) -> None:
        try:
            await self.api.push_timer(attempt_id, remaining, parent=parent)
        except REMOTE_ERRORS as exc:
            log.debug("Timer push for %s failed: %s", attempt_id, exc)

    def _check_expiry(self) -> None:
        if self.phase is not SessionPhase.SOLVING or self.timer is None:
            return
        if self._auto_submit_fired or not self.timer.expired:
            return
        self._auto_submit_fired = True
        self.phase = SessionPhase.AUTO_SUBMITTING
        log.info("Time is up for attempt %s; submitting", self.session.attempt_id)
        self._spawn(self._submit())

    # ------------------------------------------------------------------
    # answers and autosave
    # ------------------------------------------------------------------

    def select_answer(self, question_id: str, choice_index: int) -> None:
        if self.phase is not SessionPhase.SOLVING or self.session is None:
            raise AnswerRejectedError("answers can only change while solving")
        if self.timer is not None and self.timer.expired:
            raise AnswerRejectedError("time is up")
        question = self.session.question(question_id)
        if question is None:
            raise AnswerRejectedError(f"unknown question {question_id}")
        if not question.accepts(choice_index):
            raise AnswerRejectedError(
                f"choice {choice_index} is out of range for question {question_id}"
            )
        self.selections[question_id] = choice_index
        self._schedule_save()

    def _schedule_save(self) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
        loop = asyncio.get_running_loop()
        self._save_handle = loop.call_later(
            self.settings.autosave_debounce, self._fire_scheduled_save
        )

    def _fire_scheduled_save(self) -> None:
        self._save_handle = None
        self._save_task = self._spawn(self._save_current())

    def _take_pending_save(self) -> bool:
        if self._save_handle is None:
            return False
        self._save_handle.cancel()
        self._save_handle = None
        return True

    def _save_current(self, detached: bool = False) -> Awaitable[bool]:
        # Snapshot now: by the time the task runs the attempt may be over.
        session = self.session
        if session is None:
            return asyncio.sleep(0, result=False)
        elapsed = self.timer.elapsed_seconds if self.timer else None
        return self._save(
            session.attempt_id,
            self.answer_set(),
            elapsed,
            None if detached else self._attempt_token,
        )

    async def _save(
        self,
        attempt_id: str,
        answers: list[AnswerItem],
        elapsed: int | None,
        parent: CancelToken | None,
    ) -> bool:
        fingerprint = answer_fingerprint(answers)
        async with self._save_lock:
            current = self._is_current(attempt_id)
            if current and fingerprint == self._last_saved_fingerprint:
                return True
            if current:
                self.save_status = SaveStatus.SAVING
            try:
                await self.api.save_answers(attempt_id, answers, elapsed, parent=parent)
            except REMOTE_ERRORS as exc:
                log.warning("Autosave for attempt %s failed: %s", attempt_id, exc)
                if self._is_current(attempt_id):
                    self.save_status = SaveStatus.ERROR
                    self.notifications.push("warning", "Autosave failed", describe_error(exc))
                return False
            if self._is_current(attempt_id):
                self._last_saved_fingerprint = fingerprint
                self.save_status = SaveStatus.SAVED
            return True

    async def flush_pending_save(self) -> None:
        """Save a debounced edit now; otherwise wait for a save already started."""
        if self._take_pending_save():
            await self._save_current()
            return
        task = self._save_task
        if task is not None and not task.done():
            await asyncio.wait({task})
        elif self._save_lock.locked():
            async with self._save_lock:
                pass

    def flush_pending_save_nowait(self) -> None:
        if self._take_pending_save():
            self._spawn(self._save_current(detached=True))

    # ------------------------------------------------------------------
    # submit
    # ------------------------------------------------------------------

    async def submit(self) -> AttemptResult | None:
        """Manual submit; refused unless every question is answered."""
        if self.phase is not SessionPhase.SOLVING or self.session is None:
            raise InvalidStateError(f"cannot submit while {self.phase.value}")
        missing = [q for q in self.session.questions if q.id not in self.selections]
        if missing:
            self.notifications.push(
                "warning",
                "Answer every question before submitting",
                f"{len(missing)} of {len(self.session.questions)} questions are unanswered.",
            )
            return None
        self.phase = SessionPhase.MANUAL_SUBMITTING
        return await self._submit()

    async def _submit(self) -> AttemptResult | None:
        session = self.session
        if session is None:
            self.phase = SessionPhase.DASHBOARD
            return None
        token = self._attempt_token
        self._stop_loops()
        await self.flush_pending_save()
        answers = self.answer_set()

        try:
            submitted = await self.api.submit_answers(session.attempt_id, answers, parent=token)
        except REMOTE_ERRORS as exc:
            log.warning("Submitting attempt %s failed: %s", session.attempt_id, exc)
            self.notifications.push("warning", "Submission failed", describe_error(exc))
            if self._is_current(session.attempt_id):
                self._end_attempt()
            self.phase = SessionPhase.DASHBOARD
            return None

        fetched: dict | None = None
        try:
            fetched = await self.api.fetch_attempt_result(session.attempt_id, parent=token)
        except REMOTE_ERRORS as exc:
            log.warning("Result of attempt %s unavailable: %s", session.attempt_id, exc)

        result = self._compose_result(
            session.attempt_id,
            session.course_id,
            session.attempt_number,
            [submitted] if fetched is None else [submitted, fetched],
            available=fetched is not None,
        )
        self.results[result.attempt_id] = result
        self.last_result = result
        if self._is_current(session.attempt_id):
            self._end_attempt()
        self.phase = SessionPhase.RESULT
        self._notify_result(result)
        return result

    def _compose_result(
        self,
        attempt_id: str,
        course_id: str,
        attempt_number: int | None,
        responses: list[dict],
        available: bool,
        previous: AttemptResult | None = None,
    ) -> AttemptResult:
        """Build a result from responses ordered oldest to freshest."""
        meta = self._meta(course_id)
        breakdowns = []
        if previous is not None:
            breakdowns.append(ScoreBreakdown(**previous.model_dump(include=set(ScoreBreakdown.model_fields))))
        for response in responses:
            meta.absorb(extract_pass_score(response), extract_retry_info(response))
            breakdowns.append(extract_score_breakdown(response))
            attempt_number = extract_attempt_number(response) or attempt_number
        breakdown = merge_breakdowns(*breakdowns)

        pass_score = self.pass_score_for(course_id)
        passed = breakdown.passed
        if passed is None and breakdown.score is not None:
            passed = breakdown.score >= pass_score
        return AttemptResult(
            attempt_id=attempt_id,
            attempt_number=attempt_number,
            score=breakdown.score,
            passed=passed,
            correct_count=breakdown.correct_count,
            wrong_count=breakdown.wrong_count,
            total_count=breakdown.total_count,
            submitted_at=breakdown.submitted_at or utc_now(),
            pass_score=pass_score,
            retry_info=meta.retry_info.model_copy(),
            available=available,
        )

    def _notify_result(self, result: AttemptResult) -> None:
        if not result.available:
            self.notifications.push(
                "info",
                "Answers submitted",
                "The result is not available yet. Retry to load it.",
            )
        elif result.passed:
            self.notifications.push("success", "Passed", f"Score {result.display()['score']}")
        else:
            self.notifications.push("info", "Submitted", f"Score {result.display()['score']}")

    async def retry_result(self) -> AttemptResult:
        """Fetch the authoritative result again after it was unavailable."""
        previous = self.last_result
        if self.phase is not SessionPhase.RESULT or previous is None:
            raise InvalidStateError("there is no result to reload")
        try:
            fetched = await self.api.fetch_attempt_result(previous.attempt_id)
        except REMOTE_ERRORS as exc:
            log.warning("Result of attempt %s still unavailable: %s", previous.attempt_id, exc)
            self.notifications.push("warning", "Result still unavailable", describe_error(exc))
            return previous
        result = self._compose_result(
            previous.attempt_id,
            self.course_id or "",
            previous.attempt_number,
            [fetched],
            available=True,
            previous=previous,
        )
        self.results[result.attempt_id] = result
        self.last_result = result
        return result

    # ------------------------------------------------------------------
    # leaving
    # ------------------------------------------------------------------

    def on_visibility_hidden(self, leave_seconds: int | None = None) -> bool:
        return self._leave(LeaveReason.HIDDEN, leave_seconds)

    def on_unload(self, leave_seconds: int | None = None) -> bool:
        return self._leave(LeaveReason.UNLOAD, leave_seconds)

    def _leave(self, reason: LeaveReason, leave_seconds: int | None = None) -> bool:
        """
        Fire-and-forget progress capture: flush the pending save, push the
        remaining time and record the leave. A leave is recorded at most
        once per (attempt, reason). None of it is tied to the attempt's
        cancel token, so it survives the attempt ending right after.
        """
        if self.phase is not SessionPhase.SOLVING or self.session is None:
            return False
        attempt_id = self.session.attempt_id
        self.flush_pending_save_nowait()
        if self.timer is not None and not self.timer.unlimited:
            self._spawn(self._push_remaining(attempt_id, self.timer.remaining_seconds, None))
        key = (attempt_id, reason)
        if key not in self._leave_recorded:
            self._leave_recorded.add(key)
            self._spawn(self._record_leave(attempt_id, reason, leave_seconds))
        return True

    async def _record_leave(
        self, attempt_id: str, reason: LeaveReason, leave_seconds: int | None
    ) -> None:
        self.leaving += 1
        try:
            await self.api.record_leave(attempt_id, utc_now(), reason.value, leave_seconds)
        except REMOTE_ERRORS as exc:
            log.debug("Recording %s leave for %s failed: %s", reason.value, attempt_id, exc)
        finally:
            self.leaving -= 1

    def back_to_dashboard(self) -> None:
        if self.phase is SessionPhase.SOLVING:
            self._leave(LeaveReason.BACK)
            self._end_attempt()
        elif self.phase in SUBMITTING or self.phase is SessionPhase.STARTING:
            raise InvalidStateError(f"cannot leave while {self.phase.value}")
        self.phase = SessionPhase.DASHBOARD

    async def close(self) -> None:
        """Panel teardown. Waits a short grace period for best-effort calls."""
        if self._closed:
            return
        self._closed = True
        if self.phase is SessionPhase.SOLVING:
            self._leave(LeaveReason.CLOSE)
            self.phase = SessionPhase.DASHBOARD
        self._end_attempt()
        pending = list(self._background)
        if pending:
            await asyncio.wait(pending, timeout=self.settings.close_grace)
        self.notifications.clear()

    # ------------------------------------------------------------------
    # dashboard and result extras
    # ------------------------------------------------------------------

    async def load_courses(self) -> list[CourseSummary]:
        try:
            courses = await self.api.list_available_courses()
        except REMOTE_ERRORS as exc:
            log.warning("Loading quiz courses failed: %s", exc)
            self.notifications.push("warning", "Could not load quizzes", describe_error(exc))
            return self.courses
        for course in courses:
            self._meta(course.course_id).absorb(
                None,
                RetryInfo(
                    max_attempts=course.max_attempts,
                    used_attempts=course.attempt_count,
                    best_score=course.best_score,
                    passed=course.passed,
                ),
            )
        self.courses = courses
        return courses

    async def load_wrong_answers(self, attempt_id: str | None = None) -> list[WrongAnswer]:
        if attempt_id is None:
            if self.last_result is None:
                raise InvalidStateError("no submitted attempt")
            attempt_id = self.last_result.attempt_id
        try:
            return await self.api.fetch_wrong_answers(attempt_id)
        except REMOTE_ERRORS as exc:
            log.warning("Wrong answers of %s unavailable: %s", attempt_id, exc)
            self.notifications.push("warning", "Could not load the review", describe_error(exc))
            return []

    # ------------------------------------------------------------------
    # view
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Everything the view renders."""
        session = self.session
        attempt = None
        if session is not None:
            attempt = {
                "attemptId": session.attempt_id,
                "attemptNumber": session.attempt_number,
                "passScore": self.pass_score_for(session.course_id),
                "canRetry": session.retry_info.can_retry,
                "remainingAttempts": session.retry_info.remaining_attempts,
                "questions": [
                    {
                        "id": q.id,
                        "order": q.order,
                        "prompt": q.prompt,
                        "choices": list(q.choices),
                    }
                    for q in session.questions
                ],
            }
        timer = None
        if self.timer is not None:
            timer = {
                "timeLimitSeconds": self.timer.time_limit_seconds,
                "remainingSeconds": self.timer.remaining_seconds,
                "display": None if self.timer.unlimited else format_clock(self.timer.remaining_seconds),
                "isServerExpired": self.timer.is_server_expired,
            }
        result = None
        if self.phase is SessionPhase.RESULT and self.last_result is not None:
            result = self.last_result.display()
        return {
            "state": self.phase.value,
            "leaving": self.leaving > 0,
            "courseId": self.course_id,
            "attempt": attempt,
            "timer": timer,
            "answers": dict(self.selections),
            "saveStatus": self.save_status.value,
            "result": result,
            "notifications": [n.model_dump() for n in self.notifications.active()],
        }
