"""App-open heartbeat route."""

from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import select

from sattrack.api.deps import CurrentUser, DbSession
from sattrack.db.models import UserActivity
from sattrack.schemas.activity import UserActivityRead

router = APIRouter(prefix="/activity", tags=["activity"])


@router.post("/", response_model=UserActivityRead)
async def record_activity(
    current_user: CurrentUser,
    db: DbSession,
) -> UserActivityRead:
    """
    Record that the user opened the app.

    Called once per launch. Email reminders are only sent for notifications
    created after the last recorded visit.
    """
    result = await db.execute(select(UserActivity).where(UserActivity.user_id == current_user.id))
    activity = result.scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if activity is None:
        activity = UserActivity(user_id=current_user.id, last_seen_at=now)
        db.add(activity)
    else:
        activity.last_seen_at = now

    await db.commit()
    await db.refresh(activity)
    return UserActivityRead.model_validate(activity)
