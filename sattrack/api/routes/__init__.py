"""API routes package."""

from sattrack.api.routes import (
    activity,
    cron,
    daily_logs,
    notifications,
    study_plans,
)

__all__ = [
    "activity",
    "cron",
    "daily_logs",
    "notifications",
    "study_plans",
]
