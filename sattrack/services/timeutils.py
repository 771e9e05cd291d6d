"""
Local date/time helpers for the reminder engine.

Plans store a local calendar day ("YYYY-MM-DD") and local wall-clock times
("HH:MM") without a timezone. Everything here works on the wall-clock
components of the `now` it is given, so two users in different timezones with
the same wall-clock time get the same strings.
"""

from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current instant as an aware datetime in the host's local timezone."""
    return datetime.now().astimezone()


def local_date(now: datetime) -> str:
    """Return `now` as a local YYYY-MM-DD string."""
    return f"{now.year:04d}-{now.month:02d}-{now.day:02d}"


def local_time(now: datetime) -> str:
    """Return `now` as a local HH:MM string."""
    return f"{now.hour:02d}:{now.minute:02d}"


def tomorrow_date(now: datetime) -> str:
    """Return the local calendar day after `now` as YYYY-MM-DD."""
    return local_date(now + timedelta(days=1))


def parse_hhmm(hhmm: str) -> tuple[int, int] | None:
    """Parse "HH:MM" into (hours, minutes), or None when malformed."""
    parts = (hhmm or "").split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours, minutes


def has_time_passed(hhmm: str, date_string: str, now: datetime) -> bool:
    """
    Check whether the local instant `date_string` + `hhmm` is at or before `now`.

    Malformed input returns False instead of raising.
    """
    parsed = parse_hhmm(hhmm)
    if parsed is None:
        return False
    try:
        day = date.fromisoformat(date_string)
    except (TypeError, ValueError):
        return False
    target = datetime.combine(day, time(*parsed), tzinfo=now.tzinfo)
    return now >= target


def day_window_start(date_string: str) -> datetime:
    """UTC midnight of the given calendar day, the start of the dedup window."""
    return datetime.combine(date.fromisoformat(date_string), time(0, 0), tzinfo=timezone.utc)


def minutes_between(start: str, end: str) -> int:
    """Minutes from `start` to `end` (HH:MM), wrapping past midnight."""
    start_parsed = parse_hhmm(start)
    end_parsed = parse_hhmm(end)
    if start_parsed is None or end_parsed is None:
        return 0
    diff = (end_parsed[0] * 60 + end_parsed[1]) - (start_parsed[0] * 60 + start_parsed[1])
    if diff < 0:
        diff += 24 * 60
    return diff


def coerce_utc(value: datetime) -> datetime:
    """Make a stored timestamp comparable; naive values are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
