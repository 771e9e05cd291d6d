"""Daily log (check-in) schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from sattrack.schemas.base import BaseSchema

LogStatusType = Literal["done", "missed"]


class DailyLogCreate(BaseSchema):
    """Schema for checking in a plan. The date is taken from the plan."""

    plan_id: UUID
    status: LogStatusType = "done"


class DailyLogRead(BaseSchema):
    """Schema for reading a daily log."""

    id: UUID
    user_id: UUID
    plan_id: UUID
    date: str
    status: LogStatusType
    checked_at: datetime | None = None
