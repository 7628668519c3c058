"""Transient notifications for the view layer."""
from __future__ import annotations

import asyncio
import itertools
import logging

from quiz_session.config import NOTIFICATION_TTL_SECONDS
from quiz_session.models import Notification
from quiz_session.models.notifications import NotificationType
from quiz_session.utils import utc_now

log = logging.getLogger(__name__)


class NotificationCenter:
    """
    Holds the active toasts shown by the view.

    Each notification dismisses itself ``ttl`` seconds after it was pushed
    (when pushed from inside a running event loop); the view may dismiss
    it earlier.
    """

    def __init__(self, ttl: float = NOTIFICATION_TTL_SECONDS):
        self.ttl = ttl
        self._items: dict[int, Notification] = {}
        self._handles: dict[int, asyncio.TimerHandle] = {}
        self._ids = itertools.count(1)

    def push(
        self,
        type: NotificationType,
        title: str,
        description: str | None = None,
    ) -> Notification:
        notification = Notification(
            id=next(self._ids),
            type=type,
            title=title,
            description=description,
            created_at=utc_now(),
        )
        self._items[notification.id] = notification
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._handles[notification.id] = loop.call_later(
                self.ttl, self.dismiss, notification.id
            )
        log.info("Notification [%s] %s %s", type, title, description or "")
        return notification

    def dismiss(self, notification_id: int) -> bool:
        handle = self._handles.pop(notification_id, None)
        if handle is not None:
            handle.cancel()
        return self._items.pop(notification_id, None) is not None

    def active(self) -> list[Notification]:
        return list(self._items.values())

    def clear(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        self._items.clear()
