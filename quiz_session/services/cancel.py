"""Cancellation signal shared between a caller and the operation it runs."""
from __future__ import annotations

import asyncio
from typing import Callable

from quiz_session.errors import OperationAbortedError


class CancelToken:
    """
    One-shot cancellation signal.

    An operation receives a token and checks ``cancelled`` (or awaits
    ``wait()``) at its suspension points; the owner calls ``cancel()``.
    Listeners run synchronously, once, in registration order.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._listeners: list[Callable[[], None]] = []
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def cancel(self, reason: str | None = None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()
        if self._event is not None:
            self._event.set()

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a cancel listener. Returns a function that removes it."""
        if self._cancelled:
            listener()
            return lambda: None
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return remove

    def raise_if_cancelled(self, label: str) -> None:
        if self._cancelled:
            raise OperationAbortedError(label, self._reason)

    async def wait(self) -> None:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()
