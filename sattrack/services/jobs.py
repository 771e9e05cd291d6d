"""Shared pieces of the batch jobs: email decisions, concurrent sends, audit log."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sattrack.db.models import CronLog, CronStatus, UserActivity
from sattrack.services.email import EmailSender
from sattrack.services.timeutils import coerce_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEmail:
    """An email decided during a run, sent once all users are processed."""

    to: str | None
    subject: str
    message: str
    action_path: str = ""
    action_label: str = "Open SAT Tracker"


async def get_last_seen_at(db: AsyncSession, user_id: UUID) -> datetime | None:
    """Return the user's last foreground timestamp, if any."""
    result = await db.execute(
        select(UserActivity.last_seen_at).where(UserActivity.user_id == user_id)
    )
    return result.scalar_one_or_none()


def should_email(last_seen_at: datetime | None, created_at: datetime) -> bool:
    """
    Decide whether an email adds anything over the in-app notification.

    Without activity on record the user is always emailed; otherwise only when
    they have not opened the app since the notification was created.
    """
    if last_seen_at is None:
        return True
    return coerce_utc(last_seen_at) < coerce_utc(created_at)


async def send_emails(
    sender: EmailSender,
    emails: list[PendingEmail],
    *,
    max_concurrency: int = 10,
) -> int:
    """Send all emails concurrently (bounded) and return how many succeeded."""
    if not emails:
        return 0

    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _send(email: PendingEmail) -> bool:
        async with semaphore:
            return await sender.send(
                email.to,
                email.subject,
                email.message,
                action_path=email.action_path,
                action_label=email.action_label,
            )

    results = await asyncio.gather(*(_send(email) for email in emails), return_exceptions=True)
    sent = 0
    for email, result in zip(emails, results):
        if isinstance(result, BaseException):
            logger.error("Email %r to %s failed: %s", email.subject, email.to, result)
        elif result:
            sent += 1
    return sent


async def write_cron_log(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    job: str,
    run_at: datetime,
    status: CronStatus,
    users_processed: int,
    notifications_created: int,
    emails_sent: int,
    error_message: str | None = None,
) -> None:
    """Append one audit row for a finished run."""
    async with session_factory() as db:
        db.add(
            CronLog(
                job=job,
                run_at=run_at.astimezone(timezone.utc),
                status=status.value,
                users_processed=users_processed,
                notifications_created=notifications_created,
                emails_sent=emails_sent,
                error_message=error_message,
            )
        )
        await db.commit()
