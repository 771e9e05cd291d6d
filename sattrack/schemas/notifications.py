"""Notification schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from sattrack.schemas.base import BaseSchema

NotificationKindType = Literal[
    "plan_start",
    "plan_missed",
    "tomorrow_reminder",
    "premium_expired",
    "premium_expiring",
    "generic",
]


class NotificationRead(BaseSchema):
    """Schema for reading a notification with its typed payload."""

    id: UUID
    user_id: UUID
    message: str
    kind: NotificationKindType = "generic"
    plan_id: UUID | None = None
    end_time: str | None = None
    go_to_plan: bool = False
    created_at: datetime
    dismissed_at: datetime | None = None


class NotificationCreate(BaseSchema):
    """Request body for the create-notification endpoint.

    Both fields are optional at the schema level so a missing field can be
    answered with a 400 and the endpoint's own error body.
    """

    user_id: UUID | None = None
    message: str | None = Field(None, max_length=2000)


class NotificationCreateResponse(BaseSchema):
    """Response of the create-notification endpoint."""

    success: bool = True
    exists: bool | None = None
    data: NotificationRead | None = None
