"""Timer package."""

from .catalog import PresetCatalog
from .clock_gap import ClockGapWatcher
from .engine import (
    TimerEngine,
    Segment,
    TICK_INTERVAL_MS,
    MIN_QUICK_TIMER_SECONDS,
    QUICK_TIMER_PRESET_NAME,
)
from .phases import Phase, RunState, TimerMode
from .presets import BUILTIN_PRESETS, DEFAULT_PRESET, PresetIcon, TimerConfiguration

__all__ = [
    "PresetCatalog",
    "ClockGapWatcher",
    "TimerEngine",
    "Segment",
    "TICK_INTERVAL_MS",
    "MIN_QUICK_TIMER_SECONDS",
    "QUICK_TIMER_PRESET_NAME",
    "Phase",
    "RunState",
    "TimerMode",
    "BUILTIN_PRESETS",
    "DEFAULT_PRESET",
    "PresetIcon",
    "TimerConfiguration",
]
