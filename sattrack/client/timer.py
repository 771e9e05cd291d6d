"""
Interval timer: focus/break cycling for study sessions.

The countdown is driven by wall-clock deltas rather than a fixed tick size, so
a late or throttled tick (backgrounded app, sleeping laptop) still subtracts
the real elapsed time. Settings are immutable; changing them mid-session goes
through `reconfigure`, which keeps the time already spent in the phase.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from sattrack.client.storage import CLASSIC_FOCUS_STATE_KEY, LocalStorage, study_room_key
from sattrack.services.timeutils import minutes_between

logger = logging.getLogger(__name__)


class TimerMode(str, Enum):
    IDLE = "idle"
    FOCUS = "focus"
    BREAK = "break"


@dataclass(frozen=True)
class TimerSettings:
    """Focus and break lengths in minutes, and the number of focus sessions."""

    focus: int = 25
    break_minutes: int = 5
    sessions: int = 4

    def __post_init__(self):
        if self.focus < 1 or self.break_minutes < 1 or self.sessions < 1:
            raise ValueError("Timer settings must all be at least 1")

    def duration(self, mode: TimerMode) -> int:
        """Length of a phase in seconds; idle has no duration."""
        if mode is TimerMode.FOCUS:
            return self.focus * 60
        if mode is TimerMode.BREAK:
            return self.break_minutes * 60
        return 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSettings":
        return cls(
            focus=int(data.get("focus", 25)),
            break_minutes=int(data.get("break_minutes", data.get("breakMin", 5))),
            sessions=int(data.get("sessions", 4)),
        )


@dataclass(frozen=True)
class TimerSnapshot:
    """Persisted state of a plan-bound timer."""

    time_left: int
    mode: TimerMode
    current_session: int
    settings: TimerSettings = field(default_factory=TimerSettings)
    is_completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_left": self.time_left,
            "mode": self.mode.value,
            "current_session": self.current_session,
            "settings": self.settings.to_dict(),
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSnapshot":
        """Build a snapshot; camelCase keys written by older clients are accepted."""
        return cls(
            time_left=max(0, int(data.get("time_left", data.get("timeLeft", 0)))),
            mode=TimerMode(data.get("mode", TimerMode.IDLE.value)),
            current_session=max(1, int(data.get("current_session", data.get("currentSession", 1)))),
            settings=TimerSettings.from_dict(data.get("settings") or {}),
            is_completed=bool(data.get("is_completed", data.get("isCompleted", False))),
        )


def focus_minutes_for_plan(start_time: str, end_time: str, sessions: int) -> int:
    """Split a plan's duration into `sessions` focus blocks, rounded to 5 minutes (minimum 5)."""
    if sessions < 1:
        raise ValueError("sessions must be at least 1")
    raw = minutes_between(start_time, end_time) / sessions
    rounded = int(math.floor(raw / 5 + 0.5)) * 5
    return max(5, rounded)


def format_time(seconds: int) -> str:
    """Render seconds as M:SS, or H:MM:SS from one hour up."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class IntervalTimer:
    """
    Focus/break state machine.

    Transitions when `time_left` reaches 0: focus -> break (session complete),
    last focus -> idle (all complete), break -> focus with the next session.
    A tick fires at most one transition; time left over past zero is not
    carried into the next phase.

    A timer bound to a plan persists its snapshot under
    `study_room_state_<plan_id>` on every state change. An unbound timer only
    remembers its last settings under `classic_focus_state`.
    """

    def __init__(
        self,
        settings: TimerSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_session_complete: Callable[[int], None] | None = None,
        on_all_complete: Callable[[], None] | None = None,
        store: LocalStorage | None = None,
        plan_id: str | None = None,
    ):
        self.settings = settings or TimerSettings()
        self.clock = clock
        self.on_session_complete = on_session_complete
        self.on_all_complete = on_all_complete
        self.store = store
        self.plan_id = str(plan_id) if plan_id is not None else None

        self.mode = TimerMode.IDLE
        self.time_left = 0
        self.current_session = 1
        self.is_running = False
        self.is_completed = False
        self._last_tick: float | None = None

    @classmethod
    def resume(
        cls,
        plan_id: str,
        store: LocalStorage,
        **kwargs: Any,
    ) -> "IntervalTimer":
        """Restore a plan-bound timer from storage, paused. Without a snapshot it starts idle."""
        timer = cls(store=store, plan_id=plan_id, **kwargs)
        data = store.get_item(study_room_key(timer.plan_id))
        if not data:
            return timer

        try:
            snapshot = TimerSnapshot.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding unreadable timer state for plan %s: %s", plan_id, str(e))
            store.remove_item(study_room_key(timer.plan_id))
            return timer

        timer.settings = snapshot.settings
        timer.mode = snapshot.mode
        timer.time_left = snapshot.time_left
        timer.current_session = min(snapshot.current_session, snapshot.settings.sessions)
        timer.is_completed = snapshot.is_completed
        return timer

    @classmethod
    def classic(cls, store: LocalStorage, **kwargs: Any) -> "IntervalTimer":
        """An unbound timer preloaded with the last settings it was used with."""
        timer = cls(store=store, **kwargs)
        data = store.get_item(CLASSIC_FOCUS_STATE_KEY) or {}
        if data.get("settings"):
            try:
                timer.settings = TimerSettings.from_dict(data["settings"])
            except (TypeError, ValueError) as e:
                logger.warning("Ignoring unreadable classic timer settings: %s", str(e))
        return timer

    @property
    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            time_left=self.time_left,
            mode=self.mode,
            current_session=self.current_session,
            settings=self.settings,
            is_completed=self.is_completed,
        )

    @property
    def formatted(self) -> str:
        return format_time(self.time_left)

    def start(self, settings: TimerSettings | None = None) -> None:
        """Begin the first focus session."""
        if settings is not None:
            self.settings = settings
        self.mode = TimerMode.FOCUS
        self.time_left = self.settings.duration(TimerMode.FOCUS)
        self.current_session = 1
        self.is_running = True
        self.is_completed = False
        self._last_tick = self.clock()
        self._persist()

    def tick(self) -> int:
        """
        Advance by the whole seconds elapsed since the previous tick.

        The fractional remainder stays on the clock for the next tick.

        Returns:
            The number of seconds subtracted.
        """
        if not self.is_running:
            return 0

        now = self.clock()
        if self._last_tick is None:
            self._last_tick = now
        elapsed = int(now - self._last_tick)
        if elapsed >= 1:
            self.time_left = max(0, self.time_left - elapsed)
            self._last_tick += elapsed

        if self.time_left == 0:
            self._transition()
            self._last_tick = now

        if elapsed >= 1 or self.time_left == 0:
            self._persist()
        return max(0, elapsed)

    def toggle(self) -> bool:
        """Pause or resume; returns the new running state."""
        if self.mode is TimerMode.IDLE:
            return self.is_running

        if self.is_running:
            self.tick()
            self.is_running = False
        else:
            self.is_running = True
            self._last_tick = self.clock()
        self._persist()
        return self.is_running

    def reset(self, target_mode: TimerMode = TimerMode.IDLE) -> None:
        self.is_running = False
        self.time_left = self.settings.duration(TimerMode.FOCUS)
        self.mode = target_mode
        self.current_session = 1
        self.is_completed = False
        self._last_tick = None
        self._persist()

    def reconfigure(self, settings: TimerSettings) -> None:
        """
        Replace the settings without losing progress in the current phase.

        The time already spent in the phase carries over to the new phase
        length. If the new session count is below the current session, the
        current session becomes the last one.
        """
        if self.is_running:
            self.tick()

        if self.mode is TimerMode.IDLE:
            self.settings = settings
            self.time_left = settings.duration(TimerMode.FOCUS)
        else:
            elapsed = max(0, self.settings.duration(self.mode) - self.time_left)
            self.settings = settings
            self.time_left = max(0, settings.duration(self.mode) - elapsed)

        if settings.sessions < self.current_session:
            self.current_session = settings.sessions
        self._persist()

    def mark_completed(self) -> None:
        """The plan was checked in; the saved state is no longer needed."""
        self.is_running = False
        self.is_completed = True
        self._clear()

    def discard(self) -> None:
        """Abandon the session and forget its saved state."""
        self.is_running = False
        self.mode = TimerMode.IDLE
        self.time_left = 0
        self.current_session = 1
        self.is_completed = False
        self._last_tick = None
        self._clear()

    def _transition(self) -> None:
        if self.mode is TimerMode.FOCUS:
            if self.current_session < self.settings.sessions:
                self.mode = TimerMode.BREAK
                self.time_left = self.settings.duration(TimerMode.BREAK)
                if self.on_session_complete is not None:
                    self.on_session_complete(self.current_session)
            else:
                self.mode = TimerMode.IDLE
                self.is_running = False
                self.is_completed = True
                if self.on_all_complete is not None:
                    self.on_all_complete()
        elif self.mode is TimerMode.BREAK:
            self.mode = TimerMode.FOCUS
            self.current_session += 1
            self.time_left = self.settings.duration(TimerMode.FOCUS)

    def _persist(self) -> None:
        if self.store is None:
            return
        if self.plan_id is not None:
            self.store.set_item(study_room_key(self.plan_id), self.snapshot.to_dict())
        else:
            self.store.set_item(CLASSIC_FOCUS_STATE_KEY, {"settings": self.settings.to_dict()})

    def _clear(self) -> None:
        if self.store is not None and self.plan_id is not None:
            self.store.remove_item(study_room_key(self.plan_id))
