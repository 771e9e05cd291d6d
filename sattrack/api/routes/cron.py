"""
Scheduled job endpoints.

Called by an external scheduler. When CRON_SECRET is set the caller must send
`Authorization: Bearer <CRON_SECRET>`. Errors are answered with an
`{"error": ...}` body rather than FastAPI's `detail`, which is what the
scheduler logs.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Header, status
from fastapi.responses import JSONResponse

from sattrack.api.deps import Directory, Feed, Mailer, SessionFactory, is_cron_authorized
from sattrack.config import get_settings, sanitize_error
from sattrack.schemas.cron import DispatchResponse, PremiumExpiryResponse
from sattrack.schemas.notifications import (
    NotificationCreate,
    NotificationCreateResponse,
    NotificationRead,
)
from sattrack.services.dispatch import NotificationDispatcher
from sattrack.services.events import PlainEvent
from sattrack.services.ledger import NotificationLedger
from sattrack.services.premium import PremiumExpiryChecker
from sattrack.services.timeutils import local_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["cron"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _unauthorized() -> JSONResponse:
    return _error(status.HTTP_401_UNAUTHORIZED, "Unauthorized")


@router.post("/dispatch_notifications", response_model=DispatchResponse)
async def dispatch_notifications(
    session_factory: SessionFactory,
    directory: Directory,
    email_sender: Mailer,
    feed: Feed,
    authorization: Annotated[str | None, Header()] = None,
):
    """Run one notification dispatch over all users."""
    if not is_cron_authorized(authorization):
        return _unauthorized()

    dispatcher = NotificationDispatcher(
        session_factory,
        directory,
        email_sender,
        feed=feed,
        max_email_concurrency=get_settings().email_max_concurrency,
    )
    try:
        summary = await dispatcher.run()
    except Exception as e:
        logger.error("Dispatch endpoint failed: %s", str(e))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or e.__class__.__name__)

    return DispatchResponse(
        processed=summary.users_processed,
        notifications_created=summary.notifications_created,
        emails_sent=summary.emails_sent,
    )


@router.post("/check_premium_expiry", response_model=PremiumExpiryResponse)
async def check_premium_expiry(
    session_factory: SessionFactory,
    directory: Directory,
    email_sender: Mailer,
    feed: Feed,
    authorization: Annotated[str | None, Header()] = None,
):
    """Revoke expired subscriptions and warn the ones about to expire."""
    if not is_cron_authorized(authorization):
        return _unauthorized()

    checker = PremiumExpiryChecker(
        session_factory,
        directory,
        email_sender,
        feed=feed,
        max_email_concurrency=get_settings().email_max_concurrency,
    )
    try:
        summary = await checker.run()
    except Exception as e:
        logger.error("Premium expiry endpoint failed: %s", str(e))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or e.__class__.__name__)

    return PremiumExpiryResponse(
        processed=summary.processed,
        expired=summary.expired,
        warnings=summary.warnings,
        emails=summary.emails_sent,
    )


@router.post(
    "/create_notification",
    response_model=NotificationCreateResponse,
    response_model_exclude_none=True,
)
async def create_notification(
    data: NotificationCreate,
    session_factory: SessionFactory,
    feed: Feed,
):
    """Insert a free-form notification, at most once per user, message and day."""
    if data.user_id is None or not data.message:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing user_id or message")

    try:
        async with session_factory() as db:
            ledger = NotificationLedger(db, feed)
            notification = await ledger.record(data.user_id, PlainEvent(message=data.message), local_now())
            if notification is None:
                return NotificationCreateResponse(exists=True)
            created = NotificationRead.model_validate(notification)
    except Exception as e:
        logger.exception("Error creating notification for user %s", data.user_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, sanitize_error(e))

    return NotificationCreateResponse(data=created)
