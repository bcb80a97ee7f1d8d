"""Session log: persisted focus records and the statistics built from them.

The log never talks to the timer directly; ``attach(engine)`` wires it to
the engine's signals and keeps track of the record that is currently
open.  Only ``completed`` records count toward statistics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal
from sqlalchemy.exc import SQLAlchemyError

from ..database.db import get_session
from ..database.models import SessionRecord
from ..settings import Settings
from ..timer.phases import RunState
from .periods import TimePeriod, period_range

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10


@dataclass(frozen=True)
class PeriodStats:
    period: TimePeriod
    start: datetime
    end: datetime
    total_focus_seconds: int = 0
    sessions_completed: int = 0

    @property
    def average_session_seconds(self) -> float:
        if self.sessions_completed == 0:
            return 0.0
        return self.total_focus_seconds / self.sessions_completed


@dataclass(frozen=True)
class DayTotal:
    day: date
    total_focus_seconds: int
    sessions_completed: int

    @property
    def formatted_time(self) -> str:
        """'1h 5m' or '25m'."""
        hours, rest = divmod(self.total_focus_seconds, 3600)
        minutes = rest // 60
        if hours:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"


@dataclass
class StatsSnapshot:
    """Everything the statistics view reads, computed in one pass."""

    today: DayTotal
    last_seven_days: list[DayTotal] = field(default_factory=list)
    total_sessions: int = 0
    total_focus_seconds: int = 0
    completion_rate: float = 0.0
    daily_progress: float = 0.0


def _daily_progress(focus_seconds: float, goal_minutes: int) -> float:
    if goal_minutes <= 0:
        return 0.0
    return min(1.0, focus_seconds / (goal_minutes * 60))


class SessionLog(QObject):
    """Records segment lifecycle events and aggregates them.

    Signals
    -------
    stats_changed(snapshot: StatsSnapshot)
        Emitted after every finalize/delete and on ``refresh_stats()``.
    """

    stats_changed = pyqtSignal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(parent)
        self._settings = settings if settings is not None else Settings()
        self._clock = clock
        self._open_handle: int | None = None
        self._stats: StatsSnapshot | None = None

        # Run-time bookkeeping for the open record
        self._opened_at: datetime | None = None
        self._paused_since: datetime | None = None
        self._paused_seconds = 0.0
        self._abandoned: tuple[datetime, float] | None = None

    # ══════════════════════════════════════════════════════════════════
    #  ENGINE WIRING
    # ══════════════════════════════════════════════════════════════════

    def attach(self, engine) -> None:
        """Subscribe to a ``TimerEngine``'s segment and state signals.

        A segment the engine drops without completing or cancelling it
        (reset, skip, reconfigure) is noticed when the engine goes idle or
        changes phase.  The record stays open, but the moment and the
        running time at that point are remembered and used when it is
        finally closed.
        """
        engine.segment_started.connect(self._on_engine_started)
        engine.segment_completed.connect(self._on_engine_completed)
        engine.segment_cancelled.connect(self._on_engine_cancelled)
        engine.state_changed.connect(self._on_engine_state_changed)
        engine.phase_changed.connect(self._on_engine_phase_changed)

    @property
    def open_handle(self) -> int | None:
        return self._open_handle

    def close_open_record(self) -> None:
        """Finalize a record abandoned by a silent reset or skip."""
        handle, abandoned = self._take_open()
        if handle is None:
            return
        if abandoned is None:
            self.on_segment_cancelled(handle)
        else:
            end_time, elapsed = abandoned
            self._finalize(handle, completed=False, elapsed=elapsed, end_time=end_time)

    def _on_engine_started(self, segment) -> None:
        self.close_open_record()
        self._open_handle = self.on_segment_started(
            segment.target_duration, segment.preset_name
        )
        if self._open_handle is not None:
            self._opened_at = self._clock()

    def _on_engine_completed(self, _segment) -> None:
        handle, _ = self._take_open()
        if handle is not None:
            self.on_segment_complete(handle)

    def _on_engine_cancelled(self, elapsed: float) -> None:
        handle, _ = self._take_open()
        if handle is not None:
            self.on_segment_cancelled(handle, elapsed)

    def _on_engine_state_changed(self, state: RunState) -> None:
        if self._open_handle is None or self._abandoned is not None:
            return
        now = self._clock()
        if state is RunState.PAUSED:
            self._paused_since = now
        elif state is RunState.RUNNING:
            if self._paused_since is not None:
                self._paused_seconds += (now - self._paused_since).total_seconds()
                self._paused_since = None
        else:
            self._mark_abandoned(now)

    def _on_engine_phase_changed(self, _phase) -> None:
        if self._open_handle is not None and self._abandoned is None:
            self._mark_abandoned(self._clock())

    def _mark_abandoned(self, now: datetime) -> None:
        if self._opened_at is None:
            return
        running_until = self._paused_since or now
        elapsed = (running_until - self._opened_at).total_seconds() - self._paused_seconds
        self._abandoned = (now, max(0.0, elapsed))

    def _take_open(self) -> tuple[int | None, tuple[datetime, float] | None]:
        handle, abandoned = self._open_handle, self._abandoned
        self._open_handle = None
        self._opened_at = None
        self._paused_since = None
        self._paused_seconds = 0.0
        self._abandoned = None
        return handle, abandoned

    # ══════════════════════════════════════════════════════════════════
    #  RECORD LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    def on_segment_started(self, target_duration: int, preset_name: str) -> int | None:
        """Open a record.  Returns its id, or None if it could not be saved."""
        try:
            with get_session() as db:
                record = SessionRecord(
                    start_time=self._clock(),
                    target_duration_seconds=int(target_duration),
                    preset_name=preset_name,
                    completed=False,
                )
                db.add(record)
                db.flush()
                return record.id
        except SQLAlchemyError as exc:
            logger.warning("Could not open session record: %s", exc)
            return None

    def on_segment_complete(self, handle: int) -> None:
        self._finalize(handle, completed=True)

    def on_segment_cancelled(self, handle: int, elapsed: float | None = None) -> None:
        self._finalize(handle, completed=False, elapsed=elapsed)

    def delete(self, handle: int) -> bool:
        try:
            with get_session() as db:
                record = db.get(SessionRecord, handle)
                if record is None:
                    return False
                db.delete(record)
        except SQLAlchemyError as exc:
            logger.warning("Could not delete session record %s: %s", handle, exc)
            return False
        if handle == self._open_handle:
            self._take_open()
        self.refresh_stats()
        return True

    def _finalize(
        self,
        handle: int,
        *,
        completed: bool,
        elapsed: float | None = None,
        end_time: datetime | None = None,
    ) -> None:
        if end_time is None:
            end_time = self._clock()
        try:
            with get_session() as db:
                record = db.get(SessionRecord, handle)
                if record is None or not record.is_open:
                    return
                record.end_time = end_time
                record.completed = completed
                if elapsed is None:
                    elapsed = (end_time - record.start_time).total_seconds()
                record.actual_duration_seconds = max(0.0, float(elapsed))
        except SQLAlchemyError as exc:
            logger.warning("Could not finalize session record %s: %s", handle, exc)
            return
        self.refresh_stats()

    # ══════════════════════════════════════════════════════════════════
    #  QUERIES
    # ══════════════════════════════════════════════════════════════════

    # Read failures are logged and answered with empty results, so a
    # broken database shows up as "no history" rather than an exception.

    def recent(self, limit: int = RECENT_LIMIT) -> list[SessionRecord]:
        """Most recent records, newest first."""
        try:
            with get_session() as db:
                return (
                    db.query(SessionRecord)
                    .order_by(SessionRecord.start_time.desc(), SessionRecord.id.desc())
                    .limit(limit)
                    .all()
                )
        except SQLAlchemyError as exc:
            logger.warning("Could not read recent sessions: %s", exc)
            return []

    def records_for(self, period: TimePeriod, offset: int = 0) -> list[SessionRecord]:
        """All records started inside the period, newest first."""
        start, end = period_range(period, offset, self._clock())
        return self._records_between(start, end)

    def statistics_for(self, period: TimePeriod, offset: int = 0) -> PeriodStats:
        start, end = period_range(period, offset, self._clock())
        total, count = self._completed_totals(start, end)
        return PeriodStats(
            period=period,
            start=start,
            end=end,
            total_focus_seconds=total,
            sessions_completed=count,
        )

    def daily_progress(self) -> float:
        """Today's completed focus time against the daily goal, capped at 1."""
        today = self.statistics_for(TimePeriod.DAY)
        return _daily_progress(today.total_focus_seconds, self._settings.daily_goal_minutes)

    def last_seven_days(self) -> list[DayTotal]:
        """Per-day totals, oldest first, ending today."""
        today, _ = period_range(TimePeriod.DAY, 0, self._clock())
        days: list[DayTotal] = []
        for offset in range(6, -1, -1):
            start = today - timedelta(days=offset)
            total, count = self._completed_totals(start, start + timedelta(days=1))
            days.append(DayTotal(start.date(), total, count))
        return days

    @property
    def stats(self) -> StatsSnapshot:
        if self._stats is None:
            self.refresh_stats()
        return self._stats

    def refresh_stats(self) -> StatsSnapshot:
        """Recompute the snapshot and emit ``stats_changed``."""
        try:
            with get_session() as db:
                total_sessions = db.query(SessionRecord).count()
                completed = db.query(SessionRecord).filter(SessionRecord.completed.is_(True)).all()
            week = self.last_seven_days()
        except SQLAlchemyError as exc:
            logger.warning("Could not compute statistics: %s", exc)
            if self._stats is None:
                self._stats = self._empty_snapshot()
            return self._stats

        total_focus = sum(r.target_duration_seconds for r in completed)
        today = week[-1]
        self._stats = StatsSnapshot(
            today=today,
            last_seven_days=week,
            total_sessions=total_sessions,
            total_focus_seconds=total_focus,
            completion_rate=len(completed) / total_sessions if total_sessions else 0.0,
            daily_progress=_daily_progress(
                today.total_focus_seconds, self._settings.daily_goal_minutes
            ),
        )
        self.stats_changed.emit(self._stats)
        return self._stats

    # ── internal ──────────────────────────────────────────────────────

    def _empty_snapshot(self) -> StatsSnapshot:
        today, _ = period_range(TimePeriod.DAY, 0, self._clock())
        week = [
            DayTotal((today - timedelta(days=offset)).date(), 0, 0)
            for offset in range(6, -1, -1)
        ]
        return StatsSnapshot(today=week[-1], last_seven_days=week)

    def _records_between(self, start: datetime, end: datetime) -> list[SessionRecord]:
        try:
            with get_session() as db:
                return (
                    db.query(SessionRecord)
                    .filter(SessionRecord.start_time >= start)
                    .filter(SessionRecord.start_time < end)
                    .order_by(SessionRecord.start_time.desc(), SessionRecord.id.desc())
                    .all()
                )
        except SQLAlchemyError as exc:
            logger.warning("Could not read sessions between %s and %s: %s", start, end, exc)
            return []

    def _completed_totals(self, start: datetime, end: datetime) -> tuple[int, int]:
        records = [r for r in self._records_between(start, end) if r.completed]
        return sum(r.target_duration_seconds for r in records), len(records)
