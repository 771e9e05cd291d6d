"""Study plan CRUD routes."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete, select

from sattrack.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from sattrack.db.models import DailyLog, StudyPlan
from sattrack.schemas.study_plans import StudyPlanCreate, StudyPlanRead, StudyPlanUpdate

router = APIRouter(prefix="/study-plans", tags=["study-plans"])


@router.get("/", response_model=list[StudyPlanRead])
async def list_study_plans(
    current_user: CurrentUser,
    db: DbSession,
    date: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[StudyPlanRead]:
    """
    List study plans for the current user.

    Filters:
    - date: Plans on exactly this day (YYYY-MM-DD)
    - start_date / end_date: Inclusive day range
    """
    query = select(StudyPlan).where(StudyPlan.user_id == current_user.id)

    if date:
        query = query.where(StudyPlan.date == date)
    if start_date:
        query = query.where(StudyPlan.date >= start_date)
    if end_date:
        query = query.where(StudyPlan.date <= end_date)

    query = query.order_by(StudyPlan.date, StudyPlan.start_time)

    result = await db.execute(query)
    return [StudyPlanRead.model_validate(p) for p in result.scalars()]


@router.post("/", response_model=StudyPlanRead, status_code=status.HTTP_201_CREATED)
async def create_study_plan(
    data: StudyPlanCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyPlanRead:
    """Create a new study plan."""
    new_plan = StudyPlan(
        user_id=current_user.id,
        **data.model_dump(),
    )
    db.add(new_plan)
    await db.commit()
    await db.refresh(new_plan)
    return StudyPlanRead.model_validate(new_plan)


@router.get("/{plan_id}", response_model=StudyPlanRead)
async def get_study_plan(
    plan_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyPlanRead:
    """Get a specific study plan by ID."""
    plan = await get_user_resource_or_404(db, StudyPlan, plan_id, current_user.id)
    return StudyPlanRead.model_validate(plan)


@router.patch("/{plan_id}", response_model=StudyPlanRead)
async def update_study_plan(
    plan_id: UUID,
    data: StudyPlanUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyPlanRead:
    """
    Update a study plan.

    Changing the times produces new reminder messages, so an edited plan is
    notified again on the same day.
    """
    plan = await get_user_resource_or_404(db, StudyPlan, plan_id, current_user.id)
    updates = data.model_dump(exclude_unset=True, exclude_none=True)

    start_time = updates.get("start_time", plan.start_time)
    end_time = updates.get("end_time", plan.end_time)
    if start_time == end_time:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_time must differ from start_time",
        )

    for key, value in updates.items():
        setattr(plan, key, value)
    await db.commit()
    await db.refresh(plan)
    return StudyPlanRead.model_validate(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_study_plan(
    plan_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a study plan and its check-ins."""
    plan = await get_user_resource_or_404(db, StudyPlan, plan_id, current_user.id)
    # daily_log references study_plan without ON DELETE CASCADE
    await db.execute(delete(DailyLog).where(DailyLog.plan_id == plan.id))
    await db.delete(plan)
    await db.commit()
