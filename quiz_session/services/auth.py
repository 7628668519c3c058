"""Bearer token supply for authorized requests."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

import requests
from jose import JWTError, jwt

from quiz_session.config import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    TOKEN_CLIENT_ID,
    TOKEN_MIN_VALIDITY_SECONDS,
    TOKEN_REFRESH_TIMEOUT_MS,
    TOKEN_URL,
)
from quiz_session.errors import QuizSessionError
from quiz_session.services.dedupe import SingleFlight
from quiz_session.services.executor import run_with_deadline

log = logging.getLogger(__name__)


def token_expires_in(token: str, now: float | None = None) -> float | None:
    """Seconds until a JWT's ``exp``, or None for opaque tokens / tokens without exp."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or isinstance(exp, bool):
        return None
    return exp - (time.time() if now is None else now)


class RefreshTokenGrant:
    """OAuth2 refresh_token grant against a token endpoint (e.g. Keycloak)."""

    def __init__(self, token_url: str, client_id: str, refresh_token: str, timeout: float = 5.0):
        self.token_url = token_url
        self.client_id = client_id
        self.refresh_token = refresh_token
        self.timeout = timeout

    def __call__(self) -> str | None:
        response = requests.post(
            self.token_url,
            data={
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "refresh_token": self.refresh_token,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        # Rotating refresh tokens: keep the newest one.
        rotated = payload.get("refresh_token")
        if isinstance(rotated, str) and rotated:
            self.refresh_token = rotated
        token = payload.get("access_token")
        return token if isinstance(token, str) and token else None


class TokenProvider:
    """
    Holds the current access token and refreshes it on demand.

    Refresh goes through a single-flight slot: however many requests need a
    fresh token at once, only one refresh call is outstanding and all of
    them await it. Refresh failures are logged and the current token (if
    any) is used as-is; the server will answer 401 if it is really stale.
    """

    def __init__(
        self,
        token: str = "",
        refresh: Callable[[], str | None] | None = None,
        refresh_timeout_ms: int = TOKEN_REFRESH_TIMEOUT_MS,
    ):
        self._token = token
        self._refresh = refresh
        self._refresh_timeout_ms = refresh_timeout_ms
        self._flight: SingleFlight[None] = SingleFlight()
        self.refresh_count = 0

    @property
    def token(self) -> str | None:
        return self._token or None

    @property
    def can_refresh(self) -> bool:
        return self._refresh is not None

    def needs_refresh(self, min_validity_seconds: int) -> bool:
        if not self._token:
            return True
        remaining = token_expires_in(self._token)
        if remaining is None:
            return False
        return remaining < min_validity_seconds

    async def get_access_token(
        self, min_validity_seconds: int = TOKEN_MIN_VALIDITY_SECONDS
    ) -> str | None:
        if self.can_refresh and self.needs_refresh(min_validity_seconds):
            await self.refresh()
        return self.token

    async def refresh(self) -> None:
        """Force a refresh; concurrent callers share one attempt."""
        if self._refresh is None:
            return
        await self._flight.run(self._refresh_once)

    async def _refresh_once(self) -> None:
        self.refresh_count += 1
        refresh = self._refresh
        try:
            token = await run_with_deadline(
                lambda _token: asyncio.to_thread(refresh),
                self._refresh_timeout_ms,
                "token refresh",
            )
        except (QuizSessionError, requests.RequestException, ValueError) as exc:
            log.warning("Token refresh failed: %s", exc)
            return
        if token:
            self._token = token


def provider_from_env() -> TokenProvider:
    """Build the token provider from ACCESS_TOKEN / TOKEN_URL settings."""
    refresh = None
    if TOKEN_URL and REFRESH_TOKEN:
        refresh = RefreshTokenGrant(
            TOKEN_URL,
            TOKEN_CLIENT_ID,
            REFRESH_TOKEN,
            timeout=TOKEN_REFRESH_TIMEOUT_MS / 1000,
        )
    return TokenProvider(ACCESS_TOKEN, refresh)
