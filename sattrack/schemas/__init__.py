"""Pydantic schemas for API request/response validation."""

from sattrack.schemas.activity import UserActivityRead
from sattrack.schemas.cron import DispatchResponse, PremiumExpiryResponse
from sattrack.schemas.daily_logs import DailyLogCreate, DailyLogRead
from sattrack.schemas.notifications import (
    NotificationCreate,
    NotificationCreateResponse,
    NotificationRead,
)
from sattrack.schemas.study_plans import StudyPlanCreate, StudyPlanRead, StudyPlanUpdate

__all__ = [
    # Activity
    "UserActivityRead",
    # Cron
    "DispatchResponse",
    "PremiumExpiryResponse",
    # Daily logs
    "DailyLogCreate",
    "DailyLogRead",
    # Notifications
    "NotificationCreate",
    "NotificationCreateResponse",
    "NotificationRead",
    # Study plans
    "StudyPlanCreate",
    "StudyPlanRead",
    "StudyPlanUpdate",
]
