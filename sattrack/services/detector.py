"""
Reminder event detection.

Pure with respect to its inputs: it takes one user's plans and logs plus the
current instant and returns the events that are due. Ledger checks,
persistence and email decisions belong to the callers (the dispatcher and the
client mirror).
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sattrack.services.events import (
    Phrasing,
    PlanMissedEvent,
    PlanStartEvent,
    ReminderEvent,
    TomorrowReminderEvent,
)
from sattrack.services.timeutils import has_time_passed, local_date, tomorrow_date


class PlanLike(Protocol):
    id: UUID
    date: str
    section: str
    start_time: str
    end_time: str


class LogLike(Protocol):
    plan_id: UUID


def detect_plan_events(
    plan: PlanLike,
    has_log: bool,
    now: datetime,
    *,
    phrasing: Phrasing = Phrasing.SERVER,
) -> list[ReminderEvent]:
    """Events for a single plan on its own date."""
    if has_log:
        return []

    events: list[ReminderEvent] = []
    start_passed = has_time_passed(plan.start_time, plan.date, now)
    end_passed = has_time_passed(plan.end_time, plan.date, now)

    if start_passed and not end_passed:
        events.append(
            PlanStartEvent(
                plan_id=plan.id,
                section=plan.section,
                start_time=plan.start_time,
                end_time=plan.end_time,
                phrasing=phrasing,
            )
        )
    if end_passed:
        events.append(
            PlanMissedEvent(
                plan_id=plan.id,
                section=plan.section,
                end_time=plan.end_time,
                phrasing=phrasing,
            )
        )
    return events


def detect_today_events(
    today_plans: Iterable[PlanLike],
    today_logs: Iterable[LogLike],
    now: datetime,
    *,
    phrasing: Phrasing = Phrasing.SERVER,
) -> list[ReminderEvent]:
    """Plan events for today's plans, in start-time order."""
    today = local_date(now)
    logged_plan_ids = {log.plan_id for log in today_logs}

    events: list[ReminderEvent] = []
    for plan in sorted(today_plans, key=lambda p: p.start_time):
        if plan.date != today:
            continue
        events.extend(
            detect_plan_events(plan, plan.id in logged_plan_ids, now, phrasing=phrasing)
        )
    return events


def detect_tomorrow_reminder(
    tomorrow_plans: Iterable[PlanLike],
    now: datetime,
    *,
    phrasing: Phrasing = Phrasing.SERVER,
    after_hour: int | None = None,
) -> TomorrowReminderEvent | None:
    """The no-plan-tomorrow event, computed once per user."""
    tomorrow = tomorrow_date(now)
    if any(plan.date == tomorrow for plan in tomorrow_plans):
        return None
    if after_hour is not None and now.hour < after_hour:
        return None
    return TomorrowReminderEvent(tomorrow=tomorrow, phrasing=phrasing)


def detect_events(
    today_plans: Iterable[PlanLike],
    tomorrow_plans: Iterable[PlanLike],
    today_logs: Iterable[LogLike],
    now: datetime,
    *,
    phrasing: Phrasing = Phrasing.SERVER,
    tomorrow_reminder_hour: int | None = None,
) -> list[ReminderEvent]:
    """
    Compute the reminder events due for one user at `now`.

    Args:
        today_plans: The user's plans; only those dated today are considered.
        tomorrow_plans: The user's plans; only those dated tomorrow count.
        today_logs: The user's daily logs for today.
        now: Current instant; its wall-clock components define "today".
        phrasing: Server (email) or in-app wording.
        tomorrow_reminder_hour: If set, the tomorrow reminder is only produced
            from this local hour onwards.

    Returns:
        Plan events in start-time order, followed by the tomorrow reminder.
    """
    events = detect_today_events(today_plans, today_logs, now, phrasing=phrasing)
    reminder = detect_tomorrow_reminder(
        tomorrow_plans, now, phrasing=phrasing, after_hour=tomorrow_reminder_hour
    )
    if reminder is not None:
        events.append(reminder)
    return events
