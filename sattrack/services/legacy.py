"""
Legacy notification messages.

Older rows carried their payload inline in the message text as
`{{planId:..}}`, `{{type:..}}`, `{{endTime:..}}` and `{{goToPlan:true}}`
tokens. These helpers lift the tokens into the typed payload fields and strip
them from the display text.
"""

import re
from dataclasses import dataclass
from uuid import UUID

from sattrack.schemas.notifications import NotificationRead

TOKEN_RE = re.compile(r"\{\{(\w+):(.*?)\}\}")

KNOWN_KINDS = {
    "plan_start",
    "plan_missed",
    "tomorrow_reminder",
    "premium_expired",
    "premium_expiring",
    "generic",
}


@dataclass(frozen=True)
class LegacyPayload:
    message: str
    kind: str | None = None
    plan_id: UUID | None = None
    end_time: str | None = None
    go_to_plan: bool = False


def has_tokens(message: str) -> bool:
    return TOKEN_RE.search(message or "") is not None


def strip_tokens(message: str) -> str:
    """Remove every `{{name:value}}` token and collapse leftover whitespace."""
    return " ".join(TOKEN_RE.sub("", message or "").split())


def parse_legacy_message(message: str) -> LegacyPayload:
    """Parse inline tokens into a typed payload. Unknown or malformed tokens are ignored."""
    kind = None
    plan_id = None
    end_time = None
    go_to_plan = False

    for name, value in TOKEN_RE.findall(message or ""):
        value = value.strip()
        if name == "planId":
            try:
                plan_id = UUID(value)
            except ValueError:
                continue
        elif name == "type" and value in KNOWN_KINDS:
            kind = value
        elif name == "endTime":
            end_time = value or None
        elif name == "goToPlan":
            go_to_plan = value.lower() == "true"

    return LegacyPayload(
        message=strip_tokens(message),
        kind=kind,
        plan_id=plan_id,
        end_time=end_time,
        go_to_plan=go_to_plan,
    )


def normalize_notification(notification: NotificationRead) -> NotificationRead:
    """Return `notification` with any inline tokens moved into its typed fields."""
    if not has_tokens(notification.message):
        return notification

    payload = parse_legacy_message(notification.message)
    return notification.model_copy(
        update={
            "message": payload.message,
            "kind": payload.kind or notification.kind,
            "plan_id": notification.plan_id or payload.plan_id,
            "end_time": notification.end_time or payload.end_time,
            "go_to_plan": notification.go_to_plan or payload.go_to_plan,
        }
    )
