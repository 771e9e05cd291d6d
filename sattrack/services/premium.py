"""
Premium expiry: the scheduled subscription batch job.

Revokes premium for profiles past their expiry and warns, at most once a
day, users whose subscription ends within 24 hours. Same shape as the
notification dispatcher: per-user isolation, concurrent emails, one audit row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sattrack.db.models import CronJob, CronStatus, NotificationKind, UserProfile
from sattrack.services.directory import UserDirectory
from sattrack.services.email import EmailSender
from sattrack.services.events import PlainEvent
from sattrack.services.feed import NotificationFeed
from sattrack.services.jobs import PendingEmail, send_emails, write_cron_log
from sattrack.services.ledger import NotificationLedger
from sattrack.services.timeutils import Clock, coerce_utc, local_now

logger = logging.getLogger(__name__)

EXPIRED_EVENT = PlainEvent(
    message="Your Premium subscription has expired. Renew now to continue enjoying unlimited features.",
    kind=NotificationKind.PREMIUM_EXPIRED,
    subject="Premium Expired",
)
EXPIRING_EVENT = PlainEvent(
    message="Your Premium subscription will expire in less than 24 hours.",
    kind=NotificationKind.PREMIUM_EXPIRING,
    subject="Premium Expiring Soon",
)
WARNING_WINDOW = timedelta(hours=24)


@dataclass
class PremiumSummary:
    """Aggregate counts of one premium expiry run."""

    processed: int = 0
    expired: int = 0
    warnings: int = 0
    emails_sent: int = 0


class PremiumExpiryChecker:
    """Runs the premium expiry batch job over all premium profiles."""

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

    async def run(self) -> PremiumSummary:
        """Execute one run; errors outside the per-user boundary are logged to the audit table and re-raised."""
        run_at = self.clock()
        summary = PremiumSummary()
        pending: list[PendingEmail] = []

        try:
            # Emails live in the auth directory, not in user_profiles
            emails = {user.id: user.email for user in await self.directory.list_users()}

            async with self.session_factory() as db:
                result = await db.execute(
                    select(UserProfile.user_id, UserProfile.premium_expires_at).where(
                        UserProfile.is_premium.is_(True)
                    )
                )
                profiles = list(result)

            for user_id, expires_at in profiles:
                summary.processed += 1
                if expires_at is None:
                    continue
                try:
                    event = await self._process_profile(user_id, coerce_utc(expires_at), summary)
                except Exception:
                    logger.exception("Error checking premium expiry for user %s", user_id)
                    continue
                if event is not None and emails.get(user_id):
                    pending.append(
                        PendingEmail(
                            to=emails[user_id],
                            subject=event.subject,
                            message=event.message,
                            action_path="/premium",
                            action_label="Renew Premium",
                        )
                    )

            summary.emails_sent = await send_emails(
                self.email_sender, pending, max_concurrency=self.max_email_concurrency
            )

            await write_cron_log(
                self.session_factory,
                job=CronJob.CHECK_PREMIUM_EXPIRY.value,
                run_at=run_at,
                status=CronStatus.SUCCESS,
                users_processed=summary.processed,
                notifications_created=summary.expired + summary.warnings,
                emails_sent=summary.emails_sent,
                error_message=f"Expired: {summary.expired}, Warnings: {summary.warnings}",
            )
        except Exception as e:
            await self._record_failure(run_at, summary, e)
            raise

        logger.info(
            "Premium expiry finished: processed=%d expired=%d warnings=%d emails=%d",
            summary.processed,
            summary.expired,
            summary.warnings,
            summary.emails_sent,
        )
        return summary

    async def _process_profile(
        self,
        user_id,
        expires_at: datetime,
        summary: PremiumSummary,
    ) -> PlainEvent | None:
        """Revoke or warn one profile; returns the event to email, if any."""
        now = self.clock()
        async with self.session_factory() as db:
            ledger = NotificationLedger(db, self.feed)

            if expires_at < now:
                await db.execute(
                    update(UserProfile)
                    .where(UserProfile.user_id == user_id)
                    .values(is_premium=False)
                )
                await db.commit()
                summary.expired += 1
                await ledger.record(user_id, EXPIRED_EVENT, now, dedupe=False)
                return EXPIRED_EVENT

            if expires_at < now + WARNING_WINDOW:
                notification = await ledger.record(user_id, EXPIRING_EVENT, now)
                if notification is None:
                    return None
                summary.warnings += 1
                return EXPIRING_EVENT

        return None

    async def _record_failure(self, run_at: datetime, summary: PremiumSummary, error: Exception) -> None:
        """Best-effort error audit row; a failure here is logged and swallowed."""
        logger.error("Premium expiry run failed: %s", str(error))
        try:
            await write_cron_log(
                self.session_factory,
                job=CronJob.CHECK_PREMIUM_EXPIRY.value,
                run_at=run_at,
                status=CronStatus.ERROR,
                users_processed=summary.processed,
                notifications_created=summary.expired + summary.warnings,
                emails_sent=summary.emails_sent,
                error_message=str(error) or error.__class__.__name__,
            )
        except Exception:
            logger.exception("Error logging cron run")
