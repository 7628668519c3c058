from fastapi.testclient import TestClient

from quiz_session.app import create_app
from quiz_session.config import ControllerSettings
from tests.conftest import FakeQuizApi


def _client(fake_api: FakeQuizApi, settings: ControllerSettings) -> TestClient:
    return TestClient(create_app(api=fake_api, settings=settings))


def test_full_attempt_through_the_api(fake_api: FakeQuizApi, settings: ControllerSettings) -> None:
    with _client(fake_api, settings) as client:
        assert client.get("/api/quiz/state").json()["state"] == "dashboard"

        started = client.post("/api/quiz/start", json={"courseId": "c-1"})
        assert started.status_code == 200
        assert started.json()["started"] is True
        assert started.json()["state"] == "solving"
        assert client.post("/api/quiz/start", json={"courseId": "c-1"}).status_code == 409

        answered = client.put("/api/quiz/answers/q1", json={"choiceIndex": 1})
        assert answered.status_code == 200
        assert answered.json()["savePending"] is True
        assert client.put("/api/quiz/answers/q9", json={"choiceIndex": 1}).status_code == 400
        assert client.put("/api/quiz/answers/q1", json={"choiceIndex": -1}).status_code == 422

        incomplete = client.post("/api/quiz/submit").json()
        assert incomplete["submitted"] is False
        assert incomplete["state"] == "solving"

        client.put("/api/quiz/answers/q2", json={"choiceIndex": 0})
        client.put("/api/quiz/answers/q3", json={"choiceIndex": 3})
        submitted = client.post("/api/quiz/submit").json()
        assert submitted["submitted"] is True
        assert submitted["state"] == "result"
        assert submitted["result"]["score"] == "90"

        wrongs = client.get("/api/quiz/result/wrongs").json()["items"]
        assert wrongs[0]["correct_answer_index"] == 1
        assert client.post("/api/quiz/result/retry").json()["resultAvailable"] is True

        back = client.post("/api/quiz/back").json()
        assert back["state"] == "dashboard"

    assert fake_api.calls_of("submit_answers") == [
        (
            "submit_answers",
            "a-1",
            [
                {"questionId": "q1", "userSelectedIndex": 1},
                {"questionId": "q2", "userSelectedIndex": 0},
                {"questionId": "q3", "userSelectedIndex": 3},
            ],
        )
    ]


def test_leave_and_shutdown_record_leaves(fake_api: FakeQuizApi, settings: ControllerSettings) -> None:
    with _client(fake_api, settings) as client:
        client.post("/api/quiz/start", json={"courseId": "c-1"})
        hidden = client.post("/api/quiz/leave", json={"reason": "hidden", "leaveSeconds": 12})
        assert hidden.json() == {"accepted": True, "state": "solving"}
        assert client.post("/api/quiz/leave", json={"reason": "away"}).status_code == 422

    reasons = [call[2] for call in fake_api.calls_of("record_leave")]
    assert reasons == ["HIDDEN", "CLOSE"]


def test_notifications_can_be_dismissed(fake_api: FakeQuizApi, settings: ControllerSettings) -> None:
    fake_api.retry_info = {"canRetry": False}
    with _client(fake_api, settings) as client:
        refused = client.post("/api/quiz/start", json={"courseId": "c-1"}).json()
        assert refused["started"] is False

        items = client.get("/api/quiz/notifications").json()["items"]
        assert [n["title"] for n in items] == ["No attempts left"]
        notification_id = items[0]["id"]
        assert client.delete(f"/api/quiz/notifications/{notification_id}").status_code == 200
        assert client.delete(f"/api/quiz/notifications/{notification_id}").status_code == 404
        assert client.get("/api/quiz/notifications").json()["items"] == []


def test_result_endpoints_need_a_result(fake_api: FakeQuizApi, settings: ControllerSettings) -> None:
    with _client(fake_api, settings) as client:
        assert client.post("/api/quiz/result/retry").status_code == 409
        assert client.get("/api/quiz/result/wrongs").status_code == 409
        assert client.post("/api/quiz/submit").status_code == 409


def test_courses_endpoint(fake_api: FakeQuizApi, settings: ControllerSettings) -> None:
    with _client(fake_api, settings) as client:
        items = client.get("/api/quiz/courses").json()["items"]
    assert [(c["course_id"], c["title"]) for c in items] == [("c-1", "Safety")]
