"""Calendar periods used by the statistics view.

All ranges are half-open ``[start, end)`` in local naive time.  Weeks
start on Monday.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum


class TimePeriod(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def period_range(
    period: TimePeriod, offset: int = 0, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Start and end of *period*, *offset* periods away from the one
    containing *now* (0 = current, -1 = previous)."""
    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period is TimePeriod.DAY:
        start = midnight + timedelta(days=offset)
        return start, start + timedelta(days=1)

    if period is TimePeriod.WEEK:
        start = midnight - timedelta(days=midnight.weekday()) + timedelta(weeks=offset)
        return start, start + timedelta(weeks=1)

    if period is TimePeriod.MONTH:
        year, month = _shift_month(now.year, now.month, offset)
        start = midnight.replace(year=year, month=month, day=1)
        end_year, end_month = _shift_month(year, month, 1)
        return start, start.replace(year=end_year, month=end_month)

    start = midnight.replace(year=now.year + offset, month=1, day=1)
    return start, start.replace(year=start.year + 1)
