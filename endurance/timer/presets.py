"""Timer configurations ("presets") and the built-in set shipped with the app.

A configuration describes one Pomodoro cycle: ``number_of_sessions`` focus
segments with breaks between them.  Every ``long_break_interval`` focus
segments the break is a long one.  Leaving the long-break fields unset
gives the plain focus/break cycle.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum

from .phases import Phase


class PresetIcon(Enum):
    TIMER = "timer"
    FOCUS = "eye"
    BRAIN = "brain.head.profile"
    BOLT = "bolt.fill"
    FLAME = "flame.fill"
    MOON = "moon.fill"
    SUN = "sun.max.fill"
    STAR = "star.fill"
    HEART = "heart.fill"
    LEAF = "leaf.fill"
    DROP = "drop.fill"
    MOUNTAIN = "mountain.2.fill"


def _new_id() -> str:
    return str(uuid.uuid4())


def format_duration(seconds: int) -> str:
    """5400 → '1h 30m', 270 → '4m 30s', 1500 → '25m'."""
    minutes, secs = divmod(int(seconds), 60)
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    if secs and minutes < 10:
        return f"{minutes}m {secs}s"
    return f"{minutes}m"


@dataclass(frozen=True)
class TimerConfiguration:
    """Named bundle of focus duration, break duration and session count.

    All durations are whole seconds.
    """

    name: str
    focus_duration: int
    break_duration: int
    number_of_sessions: int = 1
    icon: PresetIcon = PresetIcon.TIMER
    is_default: bool = False
    long_break_duration: int | None = None
    long_break_interval: int | None = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        for name in ("focus_duration", "break_duration", "number_of_sessions"):
            object.__setattr__(self, name, int(getattr(self, name)))
        if self.focus_duration <= 0:
            raise ValueError("focus_duration must be positive")
        if self.break_duration < 0:
            raise ValueError("break_duration must not be negative")
        if self.number_of_sessions < 1:
            raise ValueError("number_of_sessions must be at least 1")
        if self.long_break_duration is not None:
            object.__setattr__(self, "long_break_duration", int(self.long_break_duration))
            if self.long_break_duration < 0:
                raise ValueError("long_break_duration must not be negative")
        if self.long_break_interval is not None:
            object.__setattr__(self, "long_break_interval", int(self.long_break_interval))
            if self.long_break_interval < 1:
                raise ValueError("long_break_interval must be at least 1")
        if not isinstance(self.icon, PresetIcon):
            object.__setattr__(self, "icon", PresetIcon(self.icon))

    # ── derived ───────────────────────────────────────────────────────

    @property
    def effective_long_break_duration(self) -> int:
        if self.long_break_duration is None:
            return self.break_duration
        return self.long_break_duration

    @property
    def effective_long_break_interval(self) -> int:
        return self.long_break_interval or self.number_of_sessions

    def break_after(self, completed_sessions: int) -> Phase:
        """Which break follows the *completed_sessions*-th focus segment."""
        if completed_sessions % self.effective_long_break_interval == 0:
            return Phase.LONG_BREAK
        return Phase.SHORT_BREAK

    def duration_for(self, phase: Phase) -> int:
        if phase is Phase.FOCUS:
            return self.focus_duration
        if phase is Phase.LONG_BREAK:
            return self.effective_long_break_duration
        return self.break_duration

    @property
    def total_focus_time(self) -> int:
        return self.focus_duration * self.number_of_sessions

    @property
    def total_break_time(self) -> int:
        return sum(
            self.duration_for(self.break_after(k))
            for k in range(1, self.number_of_sessions)
        )

    @property
    def total_duration(self) -> int:
        return self.total_focus_time + self.total_break_time

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.focus_duration)

    @property
    def short_duration(self) -> str:
        return str(self.focus_duration // 60)

    # ── serialization ─────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon.value,
            "is_default": self.is_default,
            "focus_duration": self.focus_duration,
            "break_duration": self.break_duration,
            "number_of_sessions": self.number_of_sessions,
            "long_break_duration": self.long_break_duration,
            "long_break_interval": self.long_break_interval,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TimerConfiguration:
        """Rebuild from :meth:`to_dict` output.

        Raises ``KeyError``/``ValueError``/``TypeError`` on malformed data.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            icon=PresetIcon(data.get("icon", PresetIcon.TIMER.value)),
            is_default=bool(data.get("is_default", False)),
            focus_duration=data["focus_duration"],
            break_duration=data["break_duration"],
            number_of_sessions=data["number_of_sessions"],
            long_break_duration=data.get("long_break_duration"),
            long_break_interval=data.get("long_break_interval"),
        )

    def with_changes(self, **changes) -> TimerConfiguration:
        return replace(self, **changes)


# ── built-ins ─────────────────────────────────────────────────────────────
# Ids are fixed so customizations survive restarts and upgrades.

FOCUS = TimerConfiguration(
    id="6f1c2d8e-25a0-4c3e-9b1a-000000000001",
    name="Focus",
    icon=PresetIcon.FOCUS,
    is_default=True,
    focus_duration=25 * 60,
    break_duration=5 * 60,
    number_of_sessions=4,
)

DEEP_WORK = TimerConfiguration(
    id="6f1c2d8e-25a0-4c3e-9b1a-000000000002",
    name="Deep",
    icon=PresetIcon.BRAIN,
    is_default=True,
    focus_duration=50 * 60,
    break_duration=10 * 60,
    number_of_sessions=2,
)

SPRINT = TimerConfiguration(
    id="6f1c2d8e-25a0-4c3e-9b1a-000000000003",
    name="Sprint",
    icon=PresetIcon.BOLT,
    is_default=True,
    focus_duration=15 * 60,
    break_duration=3 * 60,
    number_of_sessions=4,
)

MARATHON = TimerConfiguration(
    id="6f1c2d8e-25a0-4c3e-9b1a-000000000004",
    name="Marathon",
    icon=PresetIcon.MOUNTAIN,
    is_default=True,
    focus_duration=25 * 60,
    break_duration=5 * 60,
    number_of_sessions=8,
    long_break_duration=15 * 60,
    long_break_interval=4,
)

BUILTIN_PRESETS: tuple[TimerConfiguration, ...] = (FOCUS, DEEP_WORK, SPRINT, MARATHON)
DEFAULT_PRESET = FOCUS
