"""
Typed notification events.

Each event kind is its own frozen dataclass carrying the fields it needs; the
`kind` class attribute is the discriminator stored in the notification row.
The display `message` is derived from the fields and is also the ledger's
idempotency key, so its wording must stay stable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar
from uuid import UUID

from sattrack.db.models import NotificationKind


class Phrasing(str, Enum):
    """Which producer worded the message. The two wordings never dedupe each other."""

    SERVER = "server"
    IN_APP = "in_app"


@dataclass(frozen=True)
class PlanStartEvent:
    """A plan's start time has passed and its end time has not."""

    kind: ClassVar[NotificationKind] = NotificationKind.PLAN_START
    subject: ClassVar[str] = "SAT Plan Starting"

    plan_id: UUID
    section: str
    start_time: str
    end_time: str
    phrasing: Phrasing = Phrasing.SERVER

    @property
    def message(self) -> str:
        if self.phrasing is Phrasing.IN_APP:
            return f"Your {self.section} plan has started (at {self.start_time})."
        return f"Your {self.section} plan is starting at {self.start_time}."

    @property
    def go_to_plan(self) -> bool:
        return False


@dataclass(frozen=True)
class PlanMissedEvent:
    """A plan's end time has passed without a check-in."""

    kind: ClassVar[NotificationKind] = NotificationKind.PLAN_MISSED
    subject: ClassVar[str] = "SAT Plan Not Checked In"

    plan_id: UUID
    section: str
    end_time: str
    phrasing: Phrasing = Phrasing.SERVER

    @property
    def message(self) -> str:
        if self.phrasing is Phrasing.IN_APP:
            return f"Your {self.section} plan ended at {self.end_time} without a check-in."
        return f"Your {self.section} plan ending at {self.end_time} has no check-in."

    @property
    def go_to_plan(self) -> bool:
        return False


@dataclass(frozen=True)
class TomorrowReminderEvent:
    """The user has no plan dated tomorrow."""

    kind: ClassVar[NotificationKind] = NotificationKind.TOMORROW_REMINDER
    subject: ClassVar[str] = "No SAT Plan for Tomorrow"

    tomorrow: str
    phrasing: Phrasing = Phrasing.SERVER

    plan_id: ClassVar[None] = None
    end_time: ClassVar[None] = None

    @property
    def message(self) -> str:
        if self.phrasing is Phrasing.IN_APP:
            return "You haven't created a plan for tomorrow. Stay organized to succeed!"
        return "You have not created a SAT study plan for tomorrow."

    @property
    def go_to_plan(self) -> bool:
        return self.phrasing is Phrasing.IN_APP


@dataclass(frozen=True)
class PlainEvent:
    """Free-form notification (premium notices, externally requested messages)."""

    message: str
    kind: NotificationKind = NotificationKind.GENERIC
    subject: str = "SAT Tracker"
    plan_id: UUID | None = None
    end_time: str | None = None
    go_to_plan: bool = False


ReminderEvent = PlanStartEvent | PlanMissedEvent | TomorrowReminderEvent
NotificationEvent = ReminderEvent | PlainEvent
