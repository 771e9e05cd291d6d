"""Tests for reminder event detection."""

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from sattrack.db.models import NotificationKind
from sattrack.services.detector import detect_events, detect_tomorrow_reminder
from sattrack.services.events import (
    Phrasing,
    PlanMissedEvent,
    PlanStartEvent,
    TomorrowReminderEvent,
)
from tests.conftest import local_dt


@dataclass
class Plan:
    date: str
    start_time: str
    end_time: str
    section: str = "Math"
    id: UUID = None

    def __post_init__(self):
        if self.id is None:
            self.id = uuid4()


@dataclass
class Log:
    plan_id: UUID


TODAY = "2026-03-10"
TOMORROW = "2026-03-11"


def test_plan_start_between_start_and_end():
    plan = Plan(TODAY, "09:00", "10:00")
    events = detect_events([plan], [Plan(TOMORROW, "09:00", "10:00")], [], local_dt(2026, 3, 10, 9, 15))

    assert len(events) == 1
    event = events[0]
    assert isinstance(event, PlanStartEvent)
    assert event.kind is NotificationKind.PLAN_START
    assert event.plan_id == plan.id
    assert event.end_time == "10:00"
    assert event.message == "Your Math plan is starting at 09:00."
    assert event.subject == "SAT Plan Starting"


def test_plan_missed_after_end():
    plan = Plan(TODAY, "09:00", "10:00", section="Reading")
    events = detect_events([plan], [Plan(TOMORROW, "09:00", "10:00")], [], local_dt(2026, 3, 10, 10, 5))

    assert events == [
        PlanMissedEvent(plan_id=plan.id, section="Reading", end_time="10:00")
    ]
    assert events[0].message == "Your Reading plan ending at 10:00 has no check-in."
    assert events[0].subject == "SAT Plan Not Checked In"


def test_no_events_before_start():
    plan = Plan(TODAY, "09:00", "10:00")
    assert detect_events([plan], [Plan(TOMORROW, "09:00", "10:00")], [], local_dt(2026, 3, 10, 8, 59)) == []


def test_logged_plan_is_never_a_candidate():
    plan = Plan(TODAY, "09:00", "10:00")
    tomorrow = [Plan(TOMORROW, "09:00", "10:00")]
    for hour, minute in [(9, 15), (10, 5), (23, 0)]:
        assert detect_events([plan], tomorrow, [Log(plan.id)], local_dt(2026, 3, 10, hour, minute)) == []


def test_tomorrow_reminder_once_per_user():
    plans = [Plan(TODAY, "09:00", "10:00"), Plan(TODAY, "11:00", "12:00")]
    events = detect_events(plans, [], [Log(plans[0].id), Log(plans[1].id)], local_dt(2026, 3, 10, 12, 30))

    assert events == [TomorrowReminderEvent(tomorrow=TOMORROW)]
    assert events[0].message == "You have not created a SAT study plan for tomorrow."
    assert events[0].plan_id is None
    assert events[0].go_to_plan is False


def test_plans_on_other_days_are_ignored():
    yesterday = Plan("2026-03-09", "09:00", "10:00")
    events = detect_events([yesterday], [], [], local_dt(2026, 3, 10, 12))
    assert [type(e) for e in events] == [TomorrowReminderEvent]


def test_events_follow_start_time_order():
    late = Plan(TODAY, "14:00", "15:00", section="Writing")
    early = Plan(TODAY, "08:00", "09:00", section="Math")
    events = detect_events([late, early], [], [], local_dt(2026, 3, 10, 14, 30))

    assert [type(e) for e in events] == [PlanMissedEvent, PlanStartEvent, TomorrowReminderEvent]
    assert events[0].section == "Math"
    assert events[1].section == "Writing"


def test_in_app_phrasing():
    plan = Plan(TODAY, "09:00", "10:00")
    events = detect_events([plan], [], [], local_dt(2026, 3, 10, 9, 15), phrasing=Phrasing.IN_APP)

    assert events[0].message == "Your Math plan has started (at 09:00)."
    assert events[1].message == "You haven't created a plan for tomorrow. Stay organized to succeed!"
    assert events[1].go_to_plan is True


@pytest.mark.parametrize("hour, expected", [(17, None), (18, TomorrowReminderEvent(tomorrow=TOMORROW))])
def test_tomorrow_reminder_hour_gate(hour, expected):
    assert detect_tomorrow_reminder([], local_dt(2026, 3, 10, hour, 0), after_hour=18) == expected


def test_malformed_times_produce_no_plan_events():
    plan = Plan(TODAY, "xx:yy", "10:00")
    events = detect_events([plan], [Plan(TOMORROW, "09:00", "10:00")], [], local_dt(2026, 3, 10, 9, 30))
    assert events == []


def test_event_values_are_immutable():
    event = TomorrowReminderEvent(tomorrow=TOMORROW)
    with pytest.raises(AttributeError):
        event.tomorrow = "2026-03-12"
