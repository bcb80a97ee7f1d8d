"""Enumerations shared by the timer engine and the preset catalog."""

from __future__ import annotations

from enum import Enum


class TimerMode(Enum):
    POMODORO = "pomodoro"
    QUICK_TIMER = "quick_timer"


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Phase(Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    @property
    def is_break(self) -> bool:
        return self is not Phase.FOCUS
