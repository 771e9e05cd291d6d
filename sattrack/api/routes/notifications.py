"""Notification inbox routes."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Query
from sqlalchemy import select, update

from sattrack.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from sattrack.db.models import Notification
from sattrack.schemas.notifications import NotificationRead
from sattrack.services.legacy import normalize_notification

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
async def list_notifications(
    current_user: CurrentUser,
    db: DbSession,
    unread: bool = False,
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationRead]:
    """List the current user's notifications, newest first."""
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread:
        query = query.where(Notification.dismissed_at.is_(None))
    query = query.order_by(Notification.created_at.desc()).limit(limit)

    result = await db.execute(query)
    return [normalize_notification(NotificationRead.model_validate(n)) for n in result.scalars()]


@router.post("/{notification_id}/dismiss", response_model=NotificationRead)
async def dismiss_notification(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> NotificationRead:
    """Mark one notification as read. Dismissing twice keeps the first timestamp."""
    notification = await get_user_resource_or_404(db, Notification, notification_id, current_user.id)
    if notification.dismissed_at is None:
        notification.dismissed_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(notification)
    return normalize_notification(NotificationRead.model_validate(notification))


@router.post("/dismiss-all")
async def dismiss_all_notifications(
    current_user: CurrentUser,
    db: DbSession,
) -> dict[str, int]:
    """Mark every unread notification of the current user as read."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.dismissed_at.is_(None))
        .values(dismissed_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return {"dismissed": result.rowcount or 0}
