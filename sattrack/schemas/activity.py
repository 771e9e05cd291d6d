"""User activity schemas."""

from datetime import datetime
from uuid import UUID

from sattrack.schemas.base import BaseSchema


class UserActivityRead(BaseSchema):
    """Last-seen heartbeat for a user."""

    user_id: UUID
    last_seen_at: datetime
