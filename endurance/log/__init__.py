"""Session log package."""

from .periods import TimePeriod, period_range
from .session_log import DayTotal, PeriodStats, SessionLog, StatsSnapshot

__all__ = [
    "TimePeriod",
    "period_range",
    "DayTotal",
    "PeriodStats",
    "SessionLog",
    "StatsSnapshot",
]
