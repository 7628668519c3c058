"""Run remote operations with a deadline and an optional parent cancel token."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from quiz_session.errors import OperationAbortedError, OperationTimeoutError
from quiz_session.services.cancel import CancelToken

log = logging.getLogger(__name__)

T = TypeVar("T")

_SETTLED = "settled"
_DEADLINE = "deadline"
_PARENT = "parent"


def _consume_outcome(task: asyncio.Future) -> None:
    # Abandoned operations may still fail later; retrieve it so asyncio stays quiet.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.debug("Abandoned operation finished with %r", exc)


async def run_with_deadline(
    operation: Callable[[CancelToken], Awaitable[T]],
    timeout_ms: int,
    label: str,
    parent: CancelToken | None = None,
) -> T:
    """
    Run ``operation(token)`` and race it against a deadline and ``parent``.

    Whichever source fires first decides the outcome: the operation's own
    result or exception, ``OperationTimeoutError`` when the deadline
    elapsed first, or ``OperationAbortedError`` when the parent cancelled
    first. On timeout or abort the operation's token is cancelled and its
    task is cancelled so its own cleanup runs. The deadline timer and the
    parent listener are released on every exit path.
    """
    if parent is not None and parent.cancelled:
        raise OperationAbortedError(label, parent.reason)

    loop = asyncio.get_running_loop()
    token = CancelToken()
    first: list[str] = []
    wake: asyncio.Future = loop.create_future()

    def _fire(source: str) -> None:
        if first:
            return
        first.append(source)
        if source != _SETTLED:
            token.cancel(source)
        if not wake.done():
            wake.set_result(source)

    timer = loop.call_later(timeout_ms / 1000, _fire, _DEADLINE)
    remove_parent = parent.add_listener(lambda: _fire(_PARENT)) if parent else None
    task = asyncio.ensure_future(operation(token))
    task.add_done_callback(lambda _t: _fire(_SETTLED))

    winner = _SETTLED
    try:
        await asyncio.wait({task, wake}, return_when=asyncio.FIRST_COMPLETED)
        if first:
            winner = first[0]
        if winner == _SETTLED:
            return task.result()
        if winner == _DEADLINE:
            log.debug("%s timed out after %sms", label, timeout_ms)
            raise OperationTimeoutError(label, timeout_ms)
        raise OperationAbortedError(label, parent.reason if parent else None)
    finally:
        timer.cancel()
        if remove_parent is not None:
            remove_parent()
        if not wake.done():
            wake.cancel()
        if not task.done():
            task.add_done_callback(_consume_outcome)
            task.cancel()
        elif winner != _SETTLED:
            _consume_outcome(task)
