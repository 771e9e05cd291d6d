"""
Realtime notification mirror.

Runs the same detection as the dispatch job for one signed-in user, with
in-app wording, while the app is open. New notifications reach the user two
ways that are both safe to overlap: the change feed pushes inserts as they
are committed, and a periodic poll picks up the newest unread row. Each
notification id is presented at most once per mirror instance.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sattrack.config import Settings, get_settings
from sattrack.db.models import DailyLog, Notification, NotificationKind, StudyPlan
from sattrack.schemas.notifications import NotificationRead
from sattrack.services.detector import detect_events
from sattrack.services.events import Phrasing, TomorrowReminderEvent
from sattrack.services.feed import NotificationFeed
from sattrack.services.ledger import NotificationLedger
from sattrack.services.legacy import normalize_notification
from sattrack.services.timeutils import (
    Clock,
    coerce_utc,
    day_window_start,
    has_time_passed,
    local_date,
    local_now,
    tomorrow_date,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toast:
    """A notification as shown on screen."""

    notification_id: UUID
    message: str
    kind: str
    plan_id: UUID | None = None
    go_to_plan: bool = False


class ToastPresenter(Protocol):
    def show(self, toast: Toast) -> None: ...

    def hide(self, toast: Toast) -> None: ...


class LoggingPresenter:
    """Presenter for headless runs: toasts go to the log."""

    def show(self, toast: Toast) -> None:
        logger.info("Toast shown: %s", toast.message)

    def hide(self, toast: Toast) -> None:
        logger.debug("Toast hidden: %s", toast.notification_id)


class NotificationMirror:
    """
    Client-side reminder loop for one user.

    Use as an async context manager; leaving the block cancels the poll task
    and pending hide timers and unsubscribes from the feed, on every path.
    """

    def __init__(
        self,
        user_id: UUID,
        session_factory: async_sessionmaker[AsyncSession],
        feed: NotificationFeed,
        presenter: ToastPresenter | None = None,
        *,
        clock: Clock = local_now,
        settings: Settings | None = None,
    ):
        self.user_id = user_id
        self.session_factory = session_factory
        self.feed = feed
        self.presenter = presenter or LoggingPresenter()
        self.clock = clock

        settings = settings or get_settings()
        self.poll_interval = settings.mirror_poll_interval_seconds
        self.toast_duration = settings.toast_duration_seconds
        self.fresh_seconds = settings.toast_fresh_seconds
        self.tomorrow_reminder_hour = settings.mirror_tomorrow_reminder_hour

        self.shown_ids: set[UUID] = set()
        self._checking = False
        self._poll_task: asyncio.Task | None = None
        self._hide_handles: dict[UUID, asyncio.TimerHandle] = {}
        self._unsubscribe = None

    async def __aenter__(self) -> "NotificationMirror":
        self._unsubscribe = self.feed.subscribe(self._on_insert)
        try:
            self._poll_task = asyncio.create_task(self._poll_loop())
            await self.run_cycle()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        for handle in self._hide_handles.values():
            handle.cancel()
        self._hide_handles.clear()

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.run_cycle()

    async def run_cycle(self) -> None:
        """One detect-and-show pass. Skipped while another pass is running; errors are logged."""
        if self._checking:
            return
        self._checking = True
        try:
            await self.check_and_create()
            await self.check_latest()
        except Exception:
            logger.exception("Notification mirror cycle failed for user %s", self.user_id)
        finally:
            self._checking = False

    async def check_and_create(self) -> int:
        """Insert due reminder notifications through the ledger; returns how many were new."""
        now = self.clock()
        today = local_date(now)
        tomorrow = tomorrow_date(now)
        created = 0

        async with self.session_factory() as db:
            result = await db.execute(
                select(StudyPlan).where(
                    StudyPlan.user_id == self.user_id,
                    StudyPlan.date.in_([today, tomorrow]),
                )
            )
            plans = list(result.scalars())
            today_plans = [plan for plan in plans if plan.date == today]
            tomorrow_plans = [plan for plan in plans if plan.date == tomorrow]

            result = await db.execute(
                select(DailyLog).where(DailyLog.user_id == self.user_id, DailyLog.date == today)
            )
            today_logs = list(result.scalars())

            events = detect_events(
                today_plans,
                tomorrow_plans,
                today_logs,
                now,
                phrasing=Phrasing.IN_APP,
                tomorrow_reminder_hour=self.tomorrow_reminder_hour,
            )

            ledger = NotificationLedger(db, self.feed)
            for event in events:
                # The server reminder has its own wording, so the exact-message check misses it
                if isinstance(event, TomorrowReminderEvent) and await ledger.has_tomorrow_reminder(
                    self.user_id, day_window_start(today)
                ):
                    continue
                if await ledger.record(self.user_id, event, now) is not None:
                    created += 1
        return created

    async def check_latest(self) -> Toast | None:
        """Show the newest unread notification if it is fresh and not shown yet."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Notification)
                .where(Notification.user_id == self.user_id, Notification.dismissed_at.is_(None))
                .order_by(Notification.created_at.desc())
                .limit(1)
            )
            latest = result.scalar_one_or_none()
            if latest is None:
                return None
            notification = NotificationRead.model_validate(latest)

        now = self.clock()
        age = now.astimezone(timezone.utc) - coerce_utc(notification.created_at)
        if age.total_seconds() >= self.fresh_seconds:
            return None
        return self.present(notification)

    def _on_insert(self, notification: NotificationRead) -> None:
        if notification.user_id == self.user_id:
            self.present(notification)

    def is_stale(self, notification: NotificationRead, now: datetime) -> bool:
        """A start notification whose plan has already ended is not worth showing."""
        return (
            notification.kind == NotificationKind.PLAN_START.value
            and notification.end_time is not None
            and has_time_passed(notification.end_time, local_date(now), now)
        )

    def present(self, notification: NotificationRead) -> Toast | None:
        """Show a toast once per notification id and schedule its auto-hide."""
        notification = normalize_notification(notification)
        if notification.id in self.shown_ids:
            return None
        if self.is_stale(notification, self.clock()):
            logger.debug("Suppressing stale start notification %s", notification.id)
            return None

        toast = Toast(
            notification_id=notification.id,
            message=notification.message,
            kind=notification.kind,
            plan_id=notification.plan_id,
            go_to_plan=notification.go_to_plan,
        )
        try:
            self.presenter.show(toast)
        except Exception:
            logger.exception("Error showing notification %s", notification.id)
            return None
        self.shown_ids.add(notification.id)

        loop = asyncio.get_running_loop()
        self._hide_handles[toast.notification_id] = loop.call_later(
            self.toast_duration, self._hide, toast
        )
        return toast

    def _hide(self, toast: Toast) -> None:
        # Hiding never marks the notification as read
        self._hide_handles.pop(toast.notification_id, None)
        try:
            self.presenter.hide(toast)
        except Exception:
            logger.exception("Error hiding notification %s", toast.notification_id)
