"""
Idempotency ledger over the notifications table.

The exact message text is the idempotency key: a notification is a duplicate
when the same user already has a row with the same message created since UTC
midnight of the current day. Each inserted row also carries
`dedup_key = sha256(user_id, day, message)` under a unique index, so two
producers racing past the existence check cannot both insert.
"""

import hashlib
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sattrack.db.models import Notification, NotificationKind
from sattrack.schemas.notifications import NotificationRead
from sattrack.services.events import NotificationEvent
from sattrack.services.feed import NotificationFeed
from sattrack.services.timeutils import day_window_start, local_date

logger = logging.getLogger(__name__)


def dedup_key(user_id: UUID, day: str, message: str) -> str:
    """Stable hashed key for one message to one user on one day."""
    raw = f"{user_id}|{day}|{message}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


class NotificationLedger:
    """Guards every notification insert against same-day duplicates."""

    def __init__(self, db: AsyncSession, feed: NotificationFeed | None = None):
        self.db = db
        self.feed = feed

    async def already_notified(self, user_id: UUID, message: str, since: datetime) -> bool:
        """Check for a row with this exact message created at or after `since`."""
        result = await self.db.execute(
            select(Notification.id)
            .where(
                Notification.user_id == user_id,
                Notification.message == message,
                Notification.created_at >= since,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def has_tomorrow_reminder(self, user_id: UUID, since: datetime) -> bool:
        """Check for a tomorrow reminder in either wording created at or after `since`.

        Untyped rows written before the kind column existed are matched on the
        word "tomorrow" in the message.
        """
        result = await self.db.execute(
            select(Notification.id)
            .where(
                Notification.user_id == user_id,
                Notification.created_at >= since,
                or_(
                    Notification.kind == NotificationKind.TOMORROW_REMINDER.value,
                    and_(
                        Notification.kind == NotificationKind.GENERIC.value,
                        Notification.message.ilike("%tomorrow%"),
                    ),
                ),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def record(
        self,
        user_id: UUID,
        event: NotificationEvent,
        now: datetime,
        *,
        dedupe: bool = True,
    ) -> Notification | None:
        """
        Persist a notification for `event` unless it was already sent today.

        The insert is committed before returning so that later side effects
        (email, subscribers) never run for a row that does not exist.

        Args:
            user_id: Recipient.
            event: The event to persist.
            now: Current instant; its local date defines "today".
            dedupe: When False the row is inserted unconditionally.

        Returns:
            The new Notification, or None when an equivalent row exists.
        """
        day = local_date(now)
        if dedupe and await self.already_notified(user_id, event.message, day_window_start(day)):
            return None

        notification = Notification(
            user_id=user_id,
            message=event.message,
            kind=event.kind.value,
            plan_id=event.plan_id,
            end_time=event.end_time,
            go_to_plan=event.go_to_plan,
            dedup_key=dedup_key(user_id, day, event.message) if dedupe else None,
            created_at=now.astimezone(timezone.utc),
            dismissed_at=None,
        )
        self.db.add(notification)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("Concurrent insert already recorded %r for user %s", event.message, user_id)
            return None

        if self.feed is not None:
            self.feed.publish(NotificationRead.model_validate(notification))
        return notification
