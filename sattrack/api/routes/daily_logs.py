"""Daily log (check-in) routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from sattrack.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from sattrack.db.models import DailyLog, StudyPlan
from sattrack.schemas.daily_logs import DailyLogCreate, DailyLogRead

router = APIRouter(prefix="/daily-logs", tags=["daily-logs"])


@router.get("/", response_model=list[DailyLogRead])
async def list_daily_logs(
    current_user: CurrentUser,
    db: DbSession,
    date: str | None = None,
) -> list[DailyLogRead]:
    """List check-ins for the current user, optionally for one day."""
    query = select(DailyLog).where(DailyLog.user_id == current_user.id)
    if date:
        query = query.where(DailyLog.date == date)
    query = query.order_by(DailyLog.date.desc())

    result = await db.execute(query)
    return [DailyLogRead.model_validate(log) for log in result.scalars()]


@router.post("/", response_model=DailyLogRead, status_code=status.HTTP_201_CREATED)
async def create_daily_log(
    data: DailyLogCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> DailyLogRead:
    """
    Check in a plan.

    At most one log per plan: an existing log is a 409.
    """
    plan = await get_user_resource_or_404(db, StudyPlan, data.plan_id, current_user.id)

    result = await db.execute(select(DailyLog.id).where(DailyLog.plan_id == plan.id).limit(1))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Plan already checked in",
        )

    new_log = DailyLog(
        user_id=current_user.id,
        plan_id=plan.id,
        date=plan.date,
        status=data.status,
        checked_at=datetime.now(timezone.utc),
    )
    db.add(new_log)
    await db.commit()
    await db.refresh(new_log)
    return DailyLogRead.model_validate(new_log)
