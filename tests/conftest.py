"""Pytest configuration and fixtures."""

import os

os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["ENVIRONMENT"] = "development"
os.environ["USER_DIRECTORY"] = "database"
os.environ.pop("RESEND_API_KEY", None)

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sattrack.db.base import Base
from sattrack.db.models import DailyLog, StudyPlan, User, UserActivity, UserProfile
from sattrack.db.session import get_db, get_session_factory
from sattrack.main import app
from sattrack.services.feed import NotificationFeed

# Users in these tests live at UTC+5
LOCAL_TZ = timezone(timedelta(hours=5))
CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}


def local_dt(year, month, day, hour, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=LOCAL_TZ)


class FakeClock:
    """Settable clock for time-dependent code."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_token(user_id: UUID, email: str | None = "student@example.com", **claims) -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, "test-jwt-secret", algorithm="HS256")


@pytest.fixture
async def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def feed() -> NotificationFeed:
    return NotificationFeed()


@pytest.fixture
def make_user(session_factory):
    async def _make_user(email: str | None = "student@example.com", *, user_id: UUID | None = None) -> User:
        async with session_factory() as session:
            user = User(id=user_id or uuid4(), email=email, created_at=datetime.now(timezone.utc))
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest.fixture
def make_plan(session_factory):
    async def _make_plan(user_id: UUID, date: str, start: str, end: str, section: str = "Math") -> StudyPlan:
        async with session_factory() as session:
            plan = StudyPlan(
                user_id=user_id,
                date=date,
                section=section,
                start_time=start,
                end_time=end,
                created_at=datetime.now(timezone.utc),
            )
            session.add(plan)
            await session.commit()
            return plan

    return _make_plan


@pytest.fixture
def make_log(session_factory):
    async def _make_log(plan: StudyPlan, status: str = "done") -> DailyLog:
        async with session_factory() as session:
            log = DailyLog(user_id=plan.user_id, plan_id=plan.id, date=plan.date, status=status)
            session.add(log)
            await session.commit()
            return log

    return _make_log


@pytest.fixture
def set_last_seen(session_factory):
    async def _set_last_seen(user_id: UUID, last_seen_at: datetime) -> None:
        async with session_factory() as session:
            session.add(UserActivity(user_id=user_id, last_seen_at=last_seen_at.astimezone(timezone.utc)))
            await session.commit()

    return _set_last_seen


@pytest.fixture
def make_profile(session_factory):
    async def _make_profile(user_id: UUID, *, is_premium: bool = True, expires_at: datetime | None = None) -> None:
        async with session_factory() as session:
            session.add(
                UserProfile(
                    user_id=user_id,
                    is_premium=is_premium,
                    premium_expires_at=expires_at.astimezone(timezone.utc) if expires_at else None,
                )
            )
            await session.commit()

    return _make_profile


@pytest.fixture
async def client(session_factory, feed) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.notification_feed = feed

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.notification_feed = None
