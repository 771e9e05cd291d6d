"""Batch job response schemas."""

from pydantic import ConfigDict, Field

from sattrack.schemas.base import BaseSchema


class DispatchResponse(BaseSchema):
    """Summary returned by the notification dispatch endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    processed: int
    notifications_created: int = Field(alias="notificationsCreated")
    emails_sent: int


class PremiumExpiryResponse(BaseSchema):
    """Summary returned by the premium expiry endpoint."""

    success: bool = True
    processed: int
    expired: int
    warnings: int
    emails: int
