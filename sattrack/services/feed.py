"""In-process change feed for newly inserted notifications."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from itertools import count

from sattrack.schemas.notifications import NotificationRead

logger = logging.getLogger(__name__)

Subscriber = Callable[[NotificationRead], Awaitable[None] | None]


class NotificationFeed:
    """
    Fan-out of committed notification inserts to subscribers.

    Producers publish after their insert has been committed; subscribers
    (client mirrors) receive a detached NotificationRead snapshot. Coroutine
    subscribers are scheduled on the running loop so a slow subscriber never
    blocks the producer.
    """

    def __init__(self):
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = count(1)
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber and return the function that removes it."""
        token = next(self._ids)
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, notification: NotificationRead) -> None:
        """Deliver one notification to every current subscriber."""
        for callback in list(self._subscribers.values()):
            try:
                result = callback(notification)
            except Exception:
                logger.exception("Notification subscriber failed for %s", notification.id)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Notification subscriber task failed", exc_info=task.exception())

