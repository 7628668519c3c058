import asyncio

import pytest

from quiz_session.errors import OperationTimeoutError, ServiceResponseError
from quiz_session.models import AnswerItem
from quiz_session.services.quiz_api import (
    QuizApi,
    parse_course,
    parse_started_attempt,
    parse_timer,
    parse_wrong_answer,
)


class FakeHttp:
    def __init__(self, payload=None, delay=0.0):
        self.payload = payload
        self.delay = delay
        self.calls = []

    async def request_json(self, method, path, *, json_body=None, data=None, cancel=None, timeout_ms=10000, label=None):
        self.calls.append({"method": method, "path": path, "json": json_body, "timeout_ms": timeout_ms, "label": label})
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.payload


def test_parse_started_attempt_orders_questions_and_reads_saved_answers() -> None:
    started = parse_started_attempt(
        {
            "data": {
                "attemptId": 17,
                "questions": [
                    {"questionId": "q2", "order": 2, "question": "Second", "choices": ["x", "y"]},
                    {"id": "q1", "order": 1, "text": "First", "options": ["a", "b"], "userSelectedIndex": 1},
                    {"order": 3, "question": "no id"},
                ],
                "savedAnswers": [{"questionId": "q2", "userSelectedIndex": "0"}],
            }
        }
    )
    assert started.attempt_id == "17"
    assert [q.id for q in started.questions] == ["q1", "q2"]
    assert started.questions[0].prompt == "First"
    assert started.questions[0].saved_choice == 1
    assert started.saved_answers == {"q2": 0}


def test_parse_started_attempt_drops_out_of_range_saved_choice() -> None:
    started = parse_started_attempt(
        {"attemptId": "a", "questions": [{"id": "q1", "choices": ["a"], "userSelectedIndex": 4}]}
    )
    assert started.questions[0].saved_choice is None


@pytest.mark.parametrize(
    "raw",
    [
        None,
        {"questions": [{"id": "q1"}]},
        {"attemptId": "a"},
        {"attemptId": "a", "questions": []},
    ],
)
def test_parse_started_attempt_rejects_unusable_responses(raw: object) -> None:
    with pytest.raises(ServiceResponseError):
        parse_started_attempt(raw)


def test_parse_timer_variants() -> None:
    timer = parse_timer({"result": {"timeLimit": "600", "remainingSeconds": 120}})
    assert (timer.time_limit_seconds, timer.remaining_seconds, timer.expired) == (600, 120, False)

    expired = parse_timer({"time_limit": 600, "is_expired": "true"})
    assert expired.remaining_seconds == 0
    assert expired.expired

    unlimited = parse_timer({"timeLimit": 0})
    assert unlimited.unlimited
    assert not unlimited.expired

    unknown = parse_timer({"remainingSeconds": 30})
    assert unknown.time_limit_seconds is None
    assert unknown.remaining_seconds == 30
    assert not unknown.unlimited

    silent = parse_timer({})
    assert (silent.time_limit_seconds, silent.remaining_seconds) == (None, None)
    assert not silent.expired


def test_parse_course_and_wrong_answer() -> None:
    course = parse_course({"educationId": 5, "title": "Fire drill", "hasAttempted": "true", "passed": 0})
    assert course.course_id == "5"
    assert course.has_attempted is True
    assert course.passed is False
    assert parse_course({"educationId": 5}) is None

    wrong = parse_wrong_answer({"question": "Q", "choices": ["a", 1, "b"], "correct_answer_index": 1})
    assert wrong.choices == ["a", "b"]
    assert wrong.user_answer_index == -1
    assert wrong.correct_answer_index == 1


def test_calls_use_expected_paths_and_timeouts() -> None:
    http = FakeHttp({"ok": True})
    api = QuizApi(http, read_timeout_ms=100, write_timeout_ms=200)

    async def scenario() -> None:
        await api.fetch_retry_info("course 1")
        await api.push_timer("a/1", 30)
        await api.save_answers("a1", [AnswerItem(questionId="q1", userSelectedIndex=2)], elapsed_seconds=5)
        await api.record_leave("a1", "2024-01-01T00:00:00+00:00", "HIDDEN")

    asyncio.run(scenario())
    assert [(c["method"], c["path"], c["timeout_ms"]) for c in http.calls] == [
        ("GET", "/quiz/course%201/retry-info", 100),
        ("PUT", "/quiz/attempt/a%2F1/timer", 200),
        ("POST", "/quiz/attempt/a1/save", 200),
        ("POST", "/quiz/attempt/a1/leave", 200),
    ]
    assert http.calls[1]["json"] == {"remainingSeconds": 30}
    assert http.calls[2]["json"] == {
        "answers": [{"questionId": "q1", "userSelectedIndex": 2}],
        "elapsedSeconds": 5,
    }
    assert http.calls[3]["json"] == {"timestamp": "2024-01-01T00:00:00+00:00", "reason": "HIDDEN"}


def test_calls_time_out() -> None:
    api = QuizApi(FakeHttp({"ok": True}, delay=1.0), read_timeout_ms=20)
    with pytest.raises(OperationTimeoutError):
        asyncio.run(api.fetch_timer("a1"))


def test_result_must_be_a_record() -> None:
    api = QuizApi(FakeHttp(["not", "a", "record"]))
    with pytest.raises(ServiceResponseError):
        asyncio.run(api.fetch_attempt_result("a1"))


def test_course_list_accepts_wrapped_lists() -> None:
    api = QuizApi(FakeHttp({"data": {"educations": [{"educationId": "c1", "title": "Safety"}, "junk"]}}))
    courses = asyncio.run(api.list_available_courses())
    assert [c.course_id for c in courses] == ["c1"]
