"""Tests for parsing token-encoded legacy notification messages."""

from datetime import datetime, timezone
from uuid import uuid4

from sattrack.schemas.notifications import NotificationRead
from sattrack.services.legacy import normalize_notification, parse_legacy_message, strip_tokens


def test_parse_plan_start_tokens():
    plan_id = uuid4()
    message = (
        f"Your Math plan has started (at 09:00). {{{{planId:{plan_id}}}}} "
        "{{type:plan_start}} {{endTime:10:00}}"
    )

    payload = parse_legacy_message(message)

    assert payload.message == "Your Math plan has started (at 09:00)."
    assert payload.kind == "plan_start"
    assert payload.plan_id == plan_id
    assert payload.end_time == "10:00"
    assert payload.go_to_plan is False


def test_parse_go_to_plan():
    payload = parse_legacy_message(
        "You haven't created a plan for tomorrow. Stay organized to succeed! {{goToPlan:true}}"
    )
    assert payload.go_to_plan is True
    assert payload.kind is None
    assert payload.message == "You haven't created a plan for tomorrow. Stay organized to succeed!"


def test_malformed_tokens_are_dropped():
    payload = parse_legacy_message("Hi {{planId:not-a-uuid}} {{type:mystery}} there")
    assert payload.plan_id is None
    assert payload.kind is None
    assert payload.message == "Hi there"


def test_strip_tokens_plain_message_unchanged():
    assert strip_tokens("Plain message.") == "Plain message."


def test_normalize_moves_tokens_into_fields():
    plan_id = uuid4()
    notification = NotificationRead(
        id=uuid4(),
        user_id=uuid4(),
        message=f"Your Math plan ending at 10:00 has no check-in. {{{{planId:{plan_id}}}}} {{{{type:plan_missed}}}}",
        created_at=datetime(2026, 3, 10, tzinfo=timezone.utc),
    )

    normalized = normalize_notification(notification)

    assert normalized.message == "Your Math plan ending at 10:00 has no check-in."
    assert normalized.kind == "plan_missed"
    assert normalized.plan_id == plan_id


def test_normalize_leaves_typed_rows_alone():
    notification = NotificationRead(
        id=uuid4(),
        user_id=uuid4(),
        message="Your Premium subscription will expire in less than 24 hours.",
        kind="premium_expiring",
        created_at=datetime(2026, 3, 10, tzinfo=timezone.utc),
    )
    assert normalize_notification(notification) is notification
