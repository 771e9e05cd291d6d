"""Tests for the client-side realtime notification mirror."""

import asyncio
from datetime import timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from sattrack.client.mirror import NotificationMirror
from sattrack.config import Settings
from sattrack.db.models import Notification
from sattrack.schemas.notifications import NotificationRead
from sattrack.services.events import PlanStartEvent, TomorrowReminderEvent
from sattrack.services.ledger import NotificationLedger
from tests.conftest import FakeClock, local_dt

TODAY = "2026-03-10"
TOMORROW = "2026-03-11"


class RecordingPresenter:
    def __init__(self):
        self.shown = []
        self.hidden = []

    def show(self, toast):
        self.shown.append(toast)

    def hide(self, toast):
        self.hidden.append(toast)


@pytest.fixture
def settings():
    return Settings(
        supabase_jwt_secret="test-jwt-secret",
        mirror_poll_interval_seconds=3600,
        toast_duration_seconds=0.01,
        toast_fresh_seconds=60,
        mirror_tomorrow_reminder_hour=18,
    )


@pytest.fixture
def clock():
    return FakeClock(local_dt(2026, 3, 10, 9, 15))


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
async def user(make_user):
    return await make_user()


@pytest.fixture
def mirror(user, session_factory, feed, presenter, clock, settings):
    return NotificationMirror(user.id, session_factory, feed, presenter, clock=clock, settings=settings)


async def stored_notifications(session_factory) -> list[Notification]:
    async with session_factory() as session:
        result = await session.execute(select(Notification).order_by(Notification.created_at))
        return list(result.scalars())


async def test_enter_creates_and_shows_in_app_reminder(mirror, user, make_plan, presenter, session_factory):
    plan = await make_plan(user.id, TODAY, "09:00", "10:00")
    await make_plan(user.id, TOMORROW, "09:00", "10:00")

    async with mirror:
        pass

    notifications = await stored_notifications(session_factory)
    assert [n.message for n in notifications] == ["Your Math plan has started (at 09:00)."]
    assert notifications[0].kind == "plan_start"
    assert [t.plan_id for t in presenter.shown] == [plan.id]


async def test_tomorrow_reminder_waits_for_evening(mirror, user, make_plan, clock, session_factory):
    async with mirror:
        assert await stored_notifications(session_factory) == []

        clock.now = local_dt(2026, 3, 10, 18, 30)
        await mirror.run_cycle()

    notifications = await stored_notifications(session_factory)
    assert [n.kind for n in notifications] == ["tomorrow_reminder"]
    assert notifications[0].go_to_plan is True


async def test_same_notification_is_shown_once(mirror, user, make_plan, presenter):
    await make_plan(user.id, TODAY, "09:00", "10:00")
    await make_plan(user.id, TOMORROW, "09:00", "10:00")

    async with mirror:
        await mirror.run_cycle()
        await mirror.run_cycle()

    assert len(presenter.shown) == 1


async def test_feed_insert_from_server_is_presented(mirror, user, session_factory, feed, clock, presenter):
    async with mirror:
        async with session_factory() as db:
            notification = await NotificationLedger(db, feed).record(
                user.id,
                PlanStartEvent(plan_id=uuid4(), section="Math", start_time="09:00", end_time="10:00"),
                clock(),
            )
            assert notification is not None

    assert [t.notification_id for t in presenter.shown] == [notification.id]


async def test_feed_insert_for_other_user_is_ignored(mirror, make_user, session_factory, feed, clock, presenter):
    other = await make_user("other@example.com")

    async with mirror:
        async with session_factory() as db:
            await NotificationLedger(db, feed).record(
                other.id,
                PlanStartEvent(plan_id=uuid4(), section="Math", start_time="09:00", end_time="10:00"),
                clock(),
            )

    assert presenter.shown == []


def make_read(user_id, created_at, **fields) -> NotificationRead:
    values = {
        "id": uuid4(),
        "user_id": user_id,
        "message": "Your Math plan has started (at 09:00).",
        "kind": "plan_start",
        "end_time": "10:00",
        "created_at": created_at,
    }
    values.update(fields)
    return NotificationRead(**values)


async def test_stale_start_notification_is_suppressed(mirror, user, clock, presenter):
    clock.now = local_dt(2026, 3, 10, 10, 30)

    assert mirror.present(make_read(user.id, clock.now)) is None
    assert presenter.shown == []


async def test_legacy_start_notification_is_checked_for_staleness(mirror, user, clock, presenter):
    clock.now = local_dt(2026, 3, 10, 10, 30)
    legacy = make_read(
        user.id,
        clock.now,
        kind="generic",
        end_time=None,
        message="Your Math plan has started (at 09:00). {{type:plan_start}} {{endTime:10:00}}",
    )

    assert mirror.present(legacy) is None


async def test_check_latest_ignores_old_notifications(mirror, user, session_factory, clock, presenter):
    async with session_factory() as db:
        db.add(
            Notification(
                user_id=user.id,
                message="Old news",
                created_at=(clock.now - timedelta(minutes=5)).astimezone(timezone.utc),
            )
        )
        await db.commit()

    assert await mirror.check_latest() is None
    clock.now = clock.now - timedelta(minutes=4, seconds=30)
    toast = await mirror.check_latest()
    assert toast is not None
    assert toast.message == "Old news"


async def test_toast_auto_hides_without_dismissing(mirror, user, make_plan, presenter, session_factory):
    await make_plan(user.id, TODAY, "09:00", "10:00")
    await make_plan(user.id, TOMORROW, "09:00", "10:00")

    async with mirror:
        await asyncio.sleep(0.05)

    assert len(presenter.hidden) == 1
    notifications = await stored_notifications(session_factory)
    assert notifications[0].dismissed_at is None


async def test_exit_releases_everything(mirror, feed, presenter, user, make_plan):
    await make_plan(user.id, TODAY, "09:00", "10:00")
    await make_plan(user.id, TOMORROW, "09:00", "10:00")
    mirror.toast_duration = 3600

    async with mirror:
        assert feed.subscriber_count == 1
        assert len(presenter.shown) == 1

    assert feed.subscriber_count == 0
    assert mirror._poll_task is None
    assert mirror._hide_handles == {}
    assert presenter.hidden == []


async def test_exit_releases_on_error(mirror, feed):
    with pytest.raises(ValueError):
        async with mirror:
            raise ValueError("boom")

    assert feed.subscriber_count == 0
    assert mirror._poll_task is None


async def test_overlapping_cycle_is_skipped(mirror, user, make_plan, session_factory):
    await make_plan(user.id, TODAY, "09:00", "10:00")
    mirror._checking = True

    await mirror.run_cycle()

    assert await stored_notifications(session_factory) == []


async def test_cycle_errors_are_contained(user, feed, presenter, clock, settings):
    def broken_factory():
        raise RuntimeError("database unreachable")

    mirror = NotificationMirror(user.id, broken_factory, feed, presenter, clock=clock, settings=settings)

    async with mirror:
        await mirror.run_cycle()

    assert presenter.shown == []


async def test_tomorrow_reminder_skipped_after_server_reminder(
    mirror, user, session_factory, feed, clock, presenter
):
    clock.now = local_dt(2026, 3, 10, 19, 0)
    async with session_factory() as db:
        await NotificationLedger(db, feed).record(user.id, TomorrowReminderEvent(tomorrow=TOMORROW), clock())

    async with mirror:
        await mirror.run_cycle()

    notifications = await stored_notifications(session_factory)
    assert [n.message for n in notifications] == ["You have not created a SAT study plan for tomorrow."]


async def test_tomorrow_reminder_skipped_after_untyped_server_reminder(mirror, user, session_factory, clock):
    clock.now = local_dt(2026, 3, 10, 19, 0)
    async with session_factory() as db:
        db.add(
            Notification(
                user_id=user.id,
                message="You have not created a SAT study plan for tomorrow.",
                created_at=clock.now.astimezone(timezone.utc),
            )
        )
        await db.commit()

    async with mirror:
        pass

    assert len(await stored_notifications(session_factory)) == 1


class FlakyPresenter(RecordingPresenter):
    def __init__(self):
        super().__init__()
        self.failures = 1

    def show(self, toast):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("renderer not ready")
        super().show(toast)


async def test_failed_show_is_retried(user, session_factory, feed, clock, settings):
    presenter = FlakyPresenter()
    mirror = NotificationMirror(user.id, session_factory, feed, presenter, clock=clock, settings=settings)
    notification = make_read(user.id, clock.now)

    async with mirror:
        assert mirror.present(notification) is None
        assert notification.id not in mirror.shown_ids

        toast = mirror.present(notification)

    assert toast is not None
    assert [t.notification_id for t in presenter.shown] == [notification.id]
