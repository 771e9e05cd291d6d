"""
Notification dispatch: the scheduled reminder batch job.

One run walks every user in the directory, detects due reminder events,
records new ones through the idempotency ledger and emails users who have not
opened the app since. Per-user failures are logged and skipped; anything that
escapes that boundary aborts the run and is recorded as an error in the audit
log before being re-raised.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sattrack.db.models import CronJob, CronStatus, DailyLog, StudyPlan
from sattrack.services.detector import detect_today_events, detect_tomorrow_reminder
from sattrack.services.directory import DirectoryUser, UserDirectory
from sattrack.services.email import EmailSender
from sattrack.services.events import ReminderEvent
from sattrack.services.feed import NotificationFeed
from sattrack.services.jobs import (
    PendingEmail,
    get_last_seen_at,
    send_emails,
    should_email,
    write_cron_log,
)
from sattrack.services.ledger import NotificationLedger
from sattrack.services.timeutils import Clock, local_date, local_now, tomorrow_date

logger = logging.getLogger(__name__)


@dataclass
class DispatchSummary:
    """Aggregate counts of one dispatch run."""

    users_processed: int = 0
    notifications_created: int = 0
    emails_sent: int = 0


class NotificationDispatcher:
    """Runs the reminder batch job over all users."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        directory: UserDirectory,
        email_sender: EmailSender,
        *,
        feed: NotificationFeed | None = None,
        clock: Clock = local_now,
        max_email_concurrency: int = 10,
    ):
        self.session_factory = session_factory
        self.directory = directory
        self.email_sender = email_sender
        self.feed = feed
        self.clock = clock
        self.max_email_concurrency = max_email_concurrency

    async def run(self) -> DispatchSummary:
        """
        Execute one dispatch run and write its audit record.

        Returns:
            The run's aggregate counts.

        Raises:
            Exception: Whatever aborted the run (directory or configuration
                failure). An error audit row is attempted first.
        """
        run_at = self.clock()
        summary = DispatchSummary()
        pending: list[PendingEmail] = []

        try:
            users = await self.directory.list_users()
            if not users:
                logger.info("No users to process")

            for user in users:
                summary.users_processed += 1
                try:
                    await self._process_user(user, summary, pending)
                except Exception:
                    logger.exception("Error processing user %s", user.id)

            summary.emails_sent = await send_emails(
                self.email_sender, pending, max_concurrency=self.max_email_concurrency
            )

            await write_cron_log(
                self.session_factory,
                job=CronJob.DISPATCH_NOTIFICATIONS.value,
                run_at=run_at,
                status=CronStatus.SUCCESS,
                users_processed=summary.users_processed,
                notifications_created=summary.notifications_created,
                emails_sent=summary.emails_sent,
            )
        except Exception as e:
            await self._record_failure(run_at, summary, e)
            raise

        logger.info(
            "Dispatch finished: users=%d notifications=%d emails=%d",
            summary.users_processed,
            summary.notifications_created,
            summary.emails_sent,
        )
        return summary

    async def _process_user(
        self,
        user: DirectoryUser,
        summary: DispatchSummary,
        pending: list[PendingEmail],
    ) -> None:
        """Detect, record and queue emails for one user in its own session."""
        async with self.session_factory() as db:
            ledger = NotificationLedger(db, self.feed)
            now = self.clock()
            today = local_date(now)

            # 1. Plan start / missed check-in events for today
            today_plans = await self._plans_for(db, user, today)
            if today_plans:
                result = await db.execute(
                    select(DailyLog).where(
                        DailyLog.user_id == user.id,
                        DailyLog.date == today,
                        DailyLog.plan_id.in_([plan.id for plan in today_plans]),
                    )
                )
                today_logs = list(result.scalars())
                for event in detect_today_events(today_plans, today_logs, now):
                    await self._record(db, ledger, user, event, now, summary, pending)

            # 2. No plan for tomorrow
            tomorrow_plans = await self._plans_for(db, user, tomorrow_date(now))
            reminder = detect_tomorrow_reminder(tomorrow_plans, now)
            if reminder is not None:
                await self._record(db, ledger, user, reminder, now, summary, pending)

    async def _record(
        self,
        db: AsyncSession,
        ledger: NotificationLedger,
        user: DirectoryUser,
        event: ReminderEvent,
        now: datetime,
        summary: DispatchSummary,
        pending: list[PendingEmail],
    ) -> None:
        """Record one event and queue its email when the user has not been back since."""
        notification = await ledger.record(user.id, event, now)
        if notification is None:
            return
        summary.notifications_created += 1

        last_seen_at = await get_last_seen_at(db, user.id)
        if should_email(last_seen_at, notification.created_at):
            pending.append(PendingEmail(to=user.email, subject=event.subject, message=event.message))

    async def _plans_for(self, db: AsyncSession, user: DirectoryUser, day: str) -> list[StudyPlan]:
        result = await db.execute(
            select(StudyPlan).where(StudyPlan.user_id == user.id, StudyPlan.date == day)
        )
        return list(result.scalars())

    async def _record_failure(self, run_at: datetime, summary: DispatchSummary, error: Exception) -> None:
        """Best-effort error audit row; a failure here is logged and swallowed."""
        logger.error("Dispatch run failed: %s", str(error))
        try:
            await write_cron_log(
                self.session_factory,
                job=CronJob.DISPATCH_NOTIFICATIONS.value,
                run_at=run_at,
                status=CronStatus.ERROR,
                users_processed=summary.users_processed,
                notifications_created=summary.notifications_created,
                emails_sent=summary.emails_sent,
                error_message=str(error) or error.__class__.__name__,
            )
        except Exception:
            logger.exception("Error logging cron run")
