import logging
from datetime import datetime

import pytest

from quiz_session import config
from quiz_session.errors import HttpError, OperationTimeoutError, describe_error
from quiz_session.logging_setup import resolve_level, setup_console_logging
from quiz_session.utils import json_utils, time_utils


def test_json_compact_keeps_unicode_and_drops_spaces() -> None:
    payload = {"message": "привет", "answers": [{"questionId": "q1", "userSelectedIndex": 0}]}
    dumped = json_utils.json_compact(payload)
    assert "привет" in dumped
    assert " " not in dumped.replace("привет", "")


def test_form_encode_preserves_order() -> None:
    assert json_utils.form_encode({"b": 1, "a": "x y"}) == "b=1&a=x+y"
    assert json_utils.form_encode([("z", 1), ("a", 2)]) == "z=1&a=2"


def test_parse_body_text() -> None:
    assert json_utils.parse_body_text("") is None
    assert json_utils.parse_body_text('{"ok": true}') == {"ok": True}
    assert json_utils.parse_body_text("Bad Gateway") == "Bad Gateway"


def test_utc_now_is_timezone_aware() -> None:
    timestamp = time_utils.utc_now()
    assert timestamp.endswith("+00:00")
    assert datetime.fromisoformat(timestamp).tzinfo is not None


def test_format_clock() -> None:
    assert time_utils.format_clock(600) == "10:00"
    assert time_utils.format_clock(59) == "00:59"
    assert time_utils.format_clock(3725) == "1:02:05"
    assert time_utils.format_clock(-3) == "00:00"


def test_parse_int_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUIZ_TEST_INT", "42")
    assert config._parse_int_env("QUIZ_TEST_INT", 7) == 42
    monkeypatch.setenv("QUIZ_TEST_INT", "forty-two")
    assert config._parse_int_env("QUIZ_TEST_INT", 7) == 7
    monkeypatch.delenv("QUIZ_TEST_INT")
    assert config._parse_int_env("QUIZ_TEST_INT", 7) == 7


def test_controller_settings_defaults() -> None:
    settings = config.ControllerSettings()
    assert settings.tick_interval == 1
    assert settings.reconcile_interval == 15
    assert settings.push_interval == 10
    assert settings.autosave_debounce == pytest.approx(0.65)
    assert settings.reconcile_jitter_seconds == 2


def test_describe_error_prefers_service_message() -> None:
    exc = HttpError("http://edu/quiz", 409, "Conflict", {"message": "no attempts left"})
    assert describe_error(exc) == "status=409 no attempts left"
    assert describe_error(HttpError("http://edu/quiz", 502, "Bad Gateway")) == "status=502"
    assert describe_error(OperationTimeoutError("GET /x", 8000)) == "GET /x: timeout after 8000ms"


def test_setup_console_logging_is_idempotent() -> None:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    root.handlers = []
    try:
        setup_console_logging("INFO")
        setup_console_logging("DEBUG")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_resolve_level() -> None:
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" Warning ") == logging.WARNING
    assert resolve_level("chatty") == logging.INFO
    assert resolve_level(logging.ERROR) == logging.ERROR
