"""Tests for the premium expiry batch job."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from sattrack.db.models import CronLog, Notification, UserProfile
from sattrack.services.directory import DatabaseUserDirectory
from sattrack.services.premium import PremiumExpiryChecker
from tests.conftest import FakeClock, local_dt
from tests.fakes import BrokenDirectory, RecordingSender


@pytest.fixture
def clock():
    return FakeClock(local_dt(2026, 3, 10, 9, 15))


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def checker(session_factory, sender, clock):
    return PremiumExpiryChecker(
        session_factory,
        DatabaseUserDirectory(session_factory),
        sender,
        clock=clock,
    )


async def get_profile(session_factory, user_id) -> UserProfile:
    async with session_factory() as session:
        result = await session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
        return result.scalar_one()


async def notifications_for(session_factory, user_id) -> list[Notification]:
    async with session_factory() as session:
        result = await session.execute(select(Notification).where(Notification.user_id == user_id))
        return list(result.scalars())


async def test_expired_subscription_is_revoked(checker, session_factory, make_user, make_profile, clock, sender):
    user = await make_user("lapsed@example.com")
    await make_profile(user.id, expires_at=clock.now - timedelta(days=1))

    summary = await checker.run()

    assert summary.expired == 1
    assert (await get_profile(session_factory, user.id)).is_premium is False
    notifications = await notifications_for(session_factory, user.id)
    assert [n.kind for n in notifications] == ["premium_expired"]
    assert notifications[0].message.startswith("Your Premium subscription has expired.")
    assert sender.sent[0]["subject"] == "Premium Expired"
    assert sender.sent[0]["action_path"] == "/premium"
    assert sender.sent[0]["action_label"] == "Renew Premium"


async def test_expiring_subscription_warned_once_per_day(checker, session_factory, make_user, make_profile, clock):
    user = await make_user()
    await make_profile(user.id, expires_at=clock.now + timedelta(hours=3))

    first = await checker.run()
    clock.advance(hours=1)
    second = await checker.run()

    assert first.warnings == 1
    assert second.warnings == 0
    notifications = await notifications_for(session_factory, user.id)
    assert [n.message for n in notifications] == ["Your Premium subscription will expire in less than 24 hours."]
    assert (await get_profile(session_factory, user.id)).is_premium is True


async def test_distant_and_free_profiles_untouched(checker, session_factory, make_user, make_profile, clock, sender):
    distant = await make_user("distant@example.com")
    free = await make_user("free@example.com")
    await make_profile(distant.id, expires_at=clock.now + timedelta(days=10))
    await make_profile(free.id, is_premium=False, expires_at=clock.now - timedelta(days=3))

    summary = await checker.run()

    assert summary.processed == 1
    assert summary.expired == summary.warnings == 0
    assert sender.sent == []
    assert await notifications_for(session_factory, free.id) == []


async def test_run_writes_audit_row(checker, session_factory, make_user, make_profile, clock):
    expired = await make_user("a@example.com")
    expiring = await make_user("b@example.com")
    await make_profile(expired.id, expires_at=clock.now - timedelta(minutes=5))
    await make_profile(expiring.id, expires_at=clock.now + timedelta(hours=12))

    summary = await checker.run()

    assert (summary.processed, summary.expired, summary.warnings, summary.emails_sent) == (2, 1, 1, 2)
    async with session_factory() as session:
        log = (await session.execute(select(CronLog))).scalar_one()
    assert log.job == "check_premium_expiry"
    assert log.status == "success"
    assert log.error_message == "Expired: 1, Warnings: 1"
    assert log.notifications_created == 2


async def test_directory_failure_is_recorded_and_raised(session_factory, sender, clock):
    checker = PremiumExpiryChecker(session_factory, BrokenDirectory(), sender, clock=clock)

    with pytest.raises(RuntimeError):
        await checker.run()

    async with session_factory() as session:
        log = (await session.execute(select(CronLog))).scalar_one()
    assert log.status == "error"
    assert log.job == "check_premium_expiry"
