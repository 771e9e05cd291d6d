"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_user: Verifies the provider-issued JWT, returns User object
2. User-scoped queries: All lookups filter on user_id at the SQL level
3. Batch jobs get their collaborators (session factory, directory, email
   sender, change feed) through dependencies so tests can override them

Security model:
- Tokens are issued and signed by the hosted auth provider; we only verify them
- Cron endpoints are guarded by a shared secret when one is configured
"""

import hmac
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sattrack.config import Settings, get_settings
from sattrack.db.models import User
from sattrack.db.session import get_db, get_session_factory
from sattrack.services.directory import UserDirectory, build_user_directory
from sattrack.services.email import EmailSender
from sattrack.services.feed import NotificationFeed


# =============================================================================
# JWT UTILITIES
# =============================================================================


def decode_access_token(token: str, settings: Settings | None = None) -> tuple[UUID, str | None] | None:
    """
    Decode and validate an access token issued by the auth provider.

    Returns (user_id, email) if valid, None if invalid/expired.
    """
    settings = settings or get_settings()
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return UUID(user_id_str), payload.get("email")
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the bearer token from the Authorization header."""
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Validate the JWT and return the current authenticated user.

    The auth provider owns identities; the first request of a new user
    creates their local row.

    Raises 401 if the token is missing, invalid, or expired.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    claims = decode_access_token(token)
    if claims is None:
        raise credentials_exception
    user_id, email = claims

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(id=user_id, email=email)
        db.add(user)
        await db.commit()
        await db.refresh(user)

    return user


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# CRON DEPENDENCIES
# =============================================================================


def is_cron_authorized(authorization: str | None, settings: Settings | None = None) -> bool:
    """Check `Authorization: Bearer <CRON_SECRET>`. Without a configured secret every caller passes."""
    settings = settings or get_settings()
    if not settings.cron_secret:
        return True
    expected = f"Bearer {settings.cron_secret}"
    return hmac.compare_digest((authorization or "").encode("utf-8"), expected.encode("utf-8"))


def get_feed(request: Request) -> NotificationFeed:
    """The process-wide change feed created in the app lifespan."""
    feed = getattr(request.app.state, "notification_feed", None)
    if feed is None:
        feed = NotificationFeed()
        request.app.state.notification_feed = feed
    return feed


def get_email_sender() -> EmailSender:
    return EmailSender(get_settings())


def get_user_directory(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> UserDirectory:
    return build_user_directory(session_factory, get_settings())


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Feed = Annotated[NotificationFeed, Depends(get_feed)]
Mailer = Annotated[EmailSender, Depends(get_email_sender)]
Directory = Annotated[UserDirectory, Depends(get_user_directory)]


# =============================================================================
# QUERY HELPERS (enforce user scoping at query level)
# =============================================================================


async def get_user_resource_or_404(
    db: AsyncSession,
    model: type,
    resource_id: UUID,
    user_id: UUID,
):
    """
    Generic helper to fetch a user-owned resource by ID.

    Usage:
        plan = await get_user_resource_or_404(
            db, StudyPlan, plan_id, current_user.id
        )

    This enforces user scoping at the SQL level (WHERE user_id = ...).
    Not-found and not-owned both return 404.
    """
    result = await db.execute(
        select(model).where(model.id == resource_id, model.user_id == user_id)
    )
    resource = result.scalar_one_or_none()

    if resource is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")

    return resource
