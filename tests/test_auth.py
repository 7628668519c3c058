import asyncio
import threading
import time

import pytest
import requests
from jose import jwt

from quiz_session.services import auth
from quiz_session.services.auth import RefreshTokenGrant, TokenProvider, token_expires_in


def _jwt(expires_in: float) -> str:
    return jwt.encode({"sub": "learner", "exp": int(time.time() + expires_in)}, "secret", algorithm="HS256")


def test_token_expires_in_reads_exp_without_verifying() -> None:
    remaining = token_expires_in(_jwt(120))
    assert remaining is not None
    assert 100 < remaining <= 120
    assert token_expires_in("opaque-token") is None
    assert token_expires_in(jwt.encode({"sub": "x"}, "secret", algorithm="HS256")) is None


def test_expiring_token_is_refreshed_before_use() -> None:
    fresh = _jwt(3600)
    provider = TokenProvider(_jwt(10), refresh=lambda: fresh)

    assert asyncio.run(provider.get_access_token()) == fresh
    assert provider.refresh_count == 1


def test_valid_token_is_used_as_is() -> None:
    token = _jwt(3600)
    provider = TokenProvider(token, refresh=lambda: "other")

    assert asyncio.run(provider.get_access_token()) == token
    assert provider.refresh_count == 0


def test_concurrent_refreshes_share_one_call() -> None:
    calls: list[int] = []
    lock = threading.Lock()

    def refresh() -> str:
        with lock:
            calls.append(1)
        time.sleep(0.05)
        return "fresh"

    provider = TokenProvider("", refresh=refresh)

    async def scenario() -> list[object]:
        return await asyncio.gather(*(provider.get_access_token() for _ in range(5)))

    assert asyncio.run(scenario()) == ["fresh"] * 5
    assert calls == [1]


def test_failed_refresh_keeps_current_token(caplog: pytest.LogCaptureFixture) -> None:
    def refresh() -> str:
        raise requests.ConnectionError("token endpoint down")

    provider = TokenProvider("stale", refresh=refresh)
    asyncio.run(provider.refresh())

    assert provider.token == "stale"
    assert "Token refresh failed" in caplog.text


def test_refresh_times_out() -> None:
    provider = TokenProvider("stale", refresh=lambda: time.sleep(0.3) or "late", refresh_timeout_ms=20)
    asyncio.run(provider.refresh())
    assert provider.token == "stale"


def test_refresh_token_grant_posts_form_and_rotates(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    class FakeResponse:
        def raise_for_status(self) -> None:
            return None

        def json(self):
            return {"access_token": "new-access", "refresh_token": "new-refresh"}

    def fake_post(url, data=None, timeout=None):
        calls.append((url, dict(data), timeout))
        return FakeResponse()

    monkeypatch.setattr(auth.requests, "post", fake_post)
    grant = RefreshTokenGrant("http://sso/token", "edu-web", "old-refresh", timeout=2.0)

    assert grant() == "new-access"
    assert grant.refresh_token == "new-refresh"
    assert calls == [
        (
            "http://sso/token",
            {"grant_type": "refresh_token", "client_id": "edu-web", "refresh_token": "old-refresh"},
            2.0,
        )
    ]


def test_provider_from_env_without_token_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(auth, "ACCESS_TOKEN", "static")
    monkeypatch.setattr(auth, "TOKEN_URL", "")
    provider = auth.provider_from_env()
    assert provider.token == "static"
    assert not provider.can_refresh
