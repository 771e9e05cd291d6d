"""
SAT Tracker FastAPI Application Entry Point.

Run with: uvicorn sattrack.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sattrack.api.routes import (
    activity,
    cron,
    daily_logs,
    notifications,
    study_plans,
)
from sattrack.config import get_settings
from sattrack.services.feed import NotificationFeed

settings = get_settings()

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    configure_logging(settings.log_level)
    app.state.notification_feed = NotificationFeed()
    logger.info("%s starting (%s)", settings.app_name, settings.environment)
    yield
    # Shutdown
    app.state.notification_feed = None


app = FastAPI(
    title=settings.app_name,
    description="SAT study planner: reminders, check-ins and notifications API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(cron.router)
app.include_router(study_plans.router)
app.include_router(daily_logs.router)
app.include_router(notifications.router)
app.include_router(activity.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
