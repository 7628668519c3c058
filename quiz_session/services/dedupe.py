"""Collapse concurrent identical requests into one in-flight call."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Awaitable, Callable, Generic, TypeVar

from quiz_session.utils.json_utils import form_encode

log = logging.getLogger(__name__)

T = TypeVar("T")

# POST is never collapsed: two submits are two submits.
DEDUPE_METHODS = {"GET", "HEAD", "PUT", "PATCH", "DELETE"}


def body_fingerprint(body: object) -> str | None:
    """
    Fingerprint a request body, or None when it cannot be derived.

    Text and form-encoded bodies are fingerprinted; binary and streamed
    bodies are not, and the request then skips deduplication entirely.
    """
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, Mapping):
        return form_encode(body)
    if isinstance(body, (list, tuple)):
        if all(isinstance(item, tuple) and len(item) == 2 for item in body):
            return form_encode(body)
        return None
    return None


def dedupe_key(method: str | None, url: str, body: object = None) -> str | None:
    """Build the (verb, target, body) key, or None if the request must not be collapsed."""
    verb = (method or "GET").upper()
    if verb not in DEDUPE_METHODS:
        return None
    fingerprint = body_fingerprint(body)
    if fingerprint is None:
        return None
    return f"{verb} {url} {fingerprint}"


def _consume(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


class RequestDeduplicator:
    """Shares one in-flight call between concurrent callers with the same key."""

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def run(self, key: str | None, factory: Callable[[], Awaitable[T]]) -> T:
        if key is None:
            return await factory()

        existing = self._inflight.get(key)
        if existing is not None:
            log.debug("Joining in-flight request %s", key)
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(factory())
        self._inflight[key] = task

        def _release(done: asyncio.Task) -> None:
            if self._inflight.get(key) is done:
                del self._inflight[key]
            _consume(done)

        task.add_done_callback(_release)
        return await asyncio.shield(task)


class SingleFlight(Generic[T]):
    """At most one outstanding call; every caller awaits that same call."""

    def __init__(self) -> None:
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        if self._task is None:
            task = asyncio.ensure_future(factory())
            self._task = task

            def _release(done: asyncio.Task) -> None:
                if self._task is done:
                    self._task = None
                _consume(done)

            task.add_done_callback(_release)
        return await asyncio.shield(self._task)
