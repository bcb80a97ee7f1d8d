"""Timer state machine for Endurance.

Run states
----------
IDLE      Not counting.  ``remaining`` is frozen (full duration, or the
          next phase's duration after a completion).
RUNNING   Counting down against the wall clock.
PAUSED    Frozen mid-segment; ``resume()`` continues where it left off.

The run state is orthogonal to the *mode* (Pomodoro vs quick timer) and
to the *phase* (focus, short break, long break).  Phases only cycle in
Pomodoro mode.

Transitions
-----------
IDLE → RUNNING                  (start / start_break)
RUNNING → PAUSED                (pause)
PAUSED → RUNNING                (resume)
RUNNING | PAUSED → IDLE         (reset: silent, stop: logged as cancelled)
RUNNING → IDLE | RUNNING        (countdown reaches 0; next phase may auto-start)
any → IDLE, next phase          (skip_to_next_phase, Pomodoro only)

Time keeping
------------
``remaining`` is never decremented per tick.  Starting or resuming sets an
*anchor* (wall-clock time + remaining at that moment) and every tick
recomputes ``remaining = remaining_at_anchor - (now - anchor)``.  Missed
ticks therefore cost nothing, and a sleep/wake gap is handled by
``handle_sleep`` / ``handle_wake`` or ``apply_clock_gap``.

Invalid commands are silent no-ops.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..settings import Settings
from .phases import Phase, RunState, TimerMode
from .presets import DEFAULT_PRESET, TimerConfiguration

logger = logging.getLogger(__name__)


# ── constants ─────────────────────────────────────────────────────────────

TICK_INTERVAL_MS = 100
MIN_QUICK_TIMER_SECONDS = 60
QUICK_TIMER_PRESET_NAME = "Quick Timer"


@dataclass(frozen=True)
class Segment:
    """Payload of ``segment_started`` / ``segment_completed``."""

    target_duration: int
    preset_name: str
    mode: TimerMode
    phase: Phase


# ── engine ────────────────────────────────────────────────────────────────


class TimerEngine(QObject):
    """Qt-based focus timer with Pomodoro phase cycling.

    Signals
    -------
    tick(remaining_seconds: float)
        Emitted on every 100 ms tick while running, and whenever
        ``remaining`` jumps (wake, quick-timer duration change).
    state_changed(new_state: RunState)
        Emitted on every run-state transition.
    phase_changed(new_phase: Phase)
        Emitted when the phase (or the cycle position) changes.
    segment_started(segment: Segment)
        A countable segment (focus, or any quick-timer run) began.
    segment_completed(segment: Segment)
        A countable segment ran down to zero.
    segment_cancelled(elapsed_seconds: float)
        A countable segment was stopped after running for a while.
    timer_finished(phase: Phase)
        Any natural completion, breaks included.  Sound and
        notifications hang off this one.
    settings_changed(settings: Settings)
        The engine wrote a "last used" value into its settings.
    """

    tick = pyqtSignal(float)
    state_changed = pyqtSignal(object)
    phase_changed = pyqtSignal(object)
    segment_started = pyqtSignal(object)
    segment_completed = pyqtSignal(object)
    segment_cancelled = pyqtSignal(float)
    timer_finished = pyqtSignal(object)
    settings_changed = pyqtSignal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        settings: Settings | None = None,
        configuration: TimerConfiguration | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(parent)

        # ── configuration ─────────────────────────────────────────────
        self._settings: Settings = settings if settings is not None else Settings()
        self._clock = clock
        self._config: TimerConfiguration = (
            configuration or _restore_configuration(self._settings)
        )
        self._mode: TimerMode = _restore_mode(self._settings)

        # ── cycle state ───────────────────────────────────────────────
        self._run_state: RunState = RunState.IDLE
        self._phase: Phase = Phase.FOCUS
        self._session_index: int = 0
        self._awaiting_break_start: bool = False

        # ── countdown state ───────────────────────────────────────────
        self._segment_total: int = self._duration_for_current()
        self._remaining: float = float(self._segment_total)
        self._anchor_time: float | None = None
        self._remaining_at_anchor: float = self._remaining
        self._sleep_time: float | None = None

        # ── Qt timer ──────────────────────────────────────────────────
        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(TICK_INTERVAL_MS)
        self._qt_timer.timeout.connect(self._on_tick)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def phase(self) -> Phase:
        """Current phase (or the next one, when IDLE after a completion)."""
        return self._phase

    @property
    def configuration(self) -> TimerConfiguration:
        return self._config

    @property
    def session_index(self) -> int:
        """Focus segments completed in the current cycle (0-based)."""
        return self._session_index

    @property
    def awaiting_break_start(self) -> bool:
        return self._awaiting_break_start

    @property
    def remaining(self) -> float:
        """Seconds left on the clock, as of the last tick."""
        return self._remaining

    @property
    def total_duration(self) -> int:
        """Full length of the current segment."""
        return self._segment_total

    @property
    def progress(self) -> float:
        """0.0 → 1.0 progress through the current segment."""
        if self._segment_total <= 0:
            return 0.0
        return max(0.0, min(1.0, 1 - self._remaining / self._segment_total))

    @property
    def is_running(self) -> bool:
        return self._run_state is RunState.RUNNING

    @property
    def is_paused(self) -> bool:
        return self._run_state is RunState.PAUSED

    @property
    def is_idle(self) -> bool:
        return self._run_state is RunState.IDLE

    @property
    def is_sleeping(self) -> bool:
        return self._sleep_time is not None

    @property
    def quick_timer_duration(self) -> int:
        return max(MIN_QUICK_TIMER_SECONDS, int(self._settings.quick_timer_duration))

    @property
    def formatted_time(self) -> str:
        """'MM:SS' (minutes may exceed 59)."""
        minutes, seconds = divmod(int(self._remaining), 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def menu_bar_time(self) -> str:
        minutes, seconds = divmod(int(self._remaining), 60)
        return f"{minutes}:{seconds:02d}"

    def duration_for(self, phase: Phase) -> int:
        return self._config.duration_for(phase)

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Start a fresh segment from IDLE, or continue from PAUSED."""
        if self._run_state is RunState.RUNNING:
            return
        if self._run_state is RunState.IDLE:
            self._segment_total = self._duration_for_current()
            self._remaining = float(self._segment_total)
            self._awaiting_break_start = False
            if self._is_countable():
                self.segment_started.emit(self._current_segment())
        self._set_anchor(self._clock())
        self._set_state(RunState.RUNNING)
        self._qt_timer.start()

    def pause(self) -> None:
        if self._run_state is not RunState.RUNNING:
            return
        self._stop_ticking()
        self._remaining = self._compute_remaining()
        self._clear_anchor()
        self._sleep_time = None
        self._set_state(RunState.PAUSED)

    def resume(self) -> None:
        if self._run_state is not RunState.PAUSED:
            return
        self.start()

    def toggle(self) -> None:
        if self._run_state is RunState.RUNNING:
            self.pause()
        elif self._run_state is RunState.PAUSED:
            self.resume()
        else:
            self.start()

    def reset(self) -> None:
        """Rewind the current phase to its full duration.  Nothing is logged."""
        self._stop_ticking()
        self._clear_anchor()
        self._sleep_time = None
        self._awaiting_break_start = False
        self._rewind()
        self._set_state(RunState.IDLE)

    def stop(self) -> None:
        """Cancel the current segment, logging how long it ran."""
        was_active = self._run_state is not RunState.IDLE
        if self._run_state is RunState.RUNNING:
            self._remaining = self._compute_remaining()
        elapsed = self._segment_total - self._remaining
        countable = self._is_countable()

        self._stop_ticking()
        self._clear_anchor()
        self._sleep_time = None
        self._rewind()
        self._set_state(RunState.IDLE)

        if was_active and countable and elapsed > 0:
            self.segment_cancelled.emit(elapsed)

    def skip_to_next_phase(self) -> None:
        """Jump straight to the next phase.  Pomodoro mode only.

        The skipped remainder is neither completed nor cancelled.
        """
        if self._mode is not TimerMode.POMODORO:
            return
        self._stop_ticking()
        self._finish(natural=False)

    def start_break(self) -> None:
        """Confirm a break that was not auto-started."""
        if not self._awaiting_break_start:
            return
        self._awaiting_break_start = False
        self.start()

    def set_configuration(self, config: TimerConfiguration) -> None:
        if self._run_state is RunState.RUNNING:
            self.pause()
        self._stop_ticking()
        self._clear_anchor()
        self._sleep_time = None
        self._config = config
        self._restart_cycle()
        self._set_state(RunState.IDLE)

        self._settings.last_used_configuration = config.to_dict()
        self.settings_changed.emit(self._settings)

    def set_mode(self, mode: TimerMode) -> None:
        """Switch between Pomodoro and quick timer.  IDLE only."""
        if self._run_state is not RunState.IDLE:
            return
        self._mode = mode
        self._restart_cycle()
        self._set_state(RunState.IDLE)

        self._settings.last_used_mode = mode.value
        self.settings_changed.emit(self._settings)

    def set_quick_timer_duration(self, seconds: int) -> None:
        seconds = max(MIN_QUICK_TIMER_SECONDS, int(seconds))
        self._settings.quick_timer_duration = seconds
        self.settings_changed.emit(self._settings)
        if self._mode is TimerMode.QUICK_TIMER and self._run_state is RunState.IDLE:
            self._rewind()
            self.tick.emit(self._remaining)

    def adjust_quick_timer_duration(self, delta_seconds: int) -> None:
        self.set_quick_timer_duration(self.quick_timer_duration + int(delta_seconds))

    # ══════════════════════════════════════════════════════════════════
    #  SLEEP / WAKE
    # ══════════════════════════════════════════════════════════════════

    def handle_sleep(self, at: float | None = None) -> None:
        """The host is about to suspend.  Stop ticking, remember when."""
        if self._run_state is not RunState.RUNNING or self._sleep_time is not None:
            return
        now = self._clock() if at is None else at
        self._stop_ticking()
        self._remaining = self._compute_remaining(now)
        self._clear_anchor()
        self._sleep_time = now
        logger.debug("Sleeping with %.1fs remaining", self._remaining)

    def handle_wake(self, at: float | None = None) -> None:
        """The host resumed.  Charge the real time spent asleep."""
        sleep_time, self._sleep_time = self._sleep_time, None
        if sleep_time is None or self._run_state is not RunState.RUNNING:
            return
        now = self._clock() if at is None else at
        slept = max(0.0, now - sleep_time)
        self._remaining = max(0.0, self._remaining - slept)
        self._set_anchor(now)
        logger.debug("Woke after %.1fs, %.1fs remaining", slept, self._remaining)
        self.tick.emit(self._remaining)
        if self._remaining <= 0:
            self._finish(natural=True)
        else:
            self._qt_timer.start()

    def apply_clock_gap(self, slept_from: float, slept_until: float) -> None:
        """Feed a wall-clock discontinuity detected by the host."""
        if self._run_state is not RunState.RUNNING:
            return
        if self._anchor_time is not None:
            slept_from = max(slept_from, self._anchor_time)
        self.handle_sleep(at=slept_from)
        self.handle_wake(at=slept_until)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: timer mechanics
    # ══════════════════════════════════════════════════════════════════

    def _on_tick(self) -> None:
        if self._run_state is not RunState.RUNNING or self._anchor_time is None:
            return
        self._remaining = self._compute_remaining()
        self.tick.emit(self._remaining)
        if self._remaining <= 0:
            self._finish(natural=True)

    def _compute_remaining(self, now: float | None = None) -> float:
        if self._anchor_time is None:
            return self._remaining
        if now is None:
            now = self._clock()
        # A clock moved backwards must not add time
        elapsed = max(0.0, now - self._anchor_time)
        return max(0.0, self._remaining_at_anchor - elapsed)

    def _set_anchor(self, now: float) -> None:
        self._anchor_time = now
        self._remaining_at_anchor = self._remaining

    def _clear_anchor(self) -> None:
        self._anchor_time = None
        self._remaining_at_anchor = self._remaining

    def _stop_ticking(self) -> None:
        self._qt_timer.stop()

    def _finish(self, *, natural: bool) -> None:
        self._stop_ticking()
        self._clear_anchor()
        self._sleep_time = None
        completed_phase = self._phase
        segment = self._current_segment()
        countable = self._is_countable()

        self._run_state = RunState.IDLE
        self._remaining = 0.0

        if natural:
            logger.debug("Segment finished: %s", completed_phase.value)
            if countable:
                self.segment_completed.emit(segment)
            self.timer_finished.emit(completed_phase)

        if self._advance(completed_phase):
            self.phase_changed.emit(self._phase)
            self.start()
        else:
            self.phase_changed.emit(self._phase)
            self._set_state(RunState.IDLE)

    def _advance(self, completed_phase: Phase) -> bool:
        """Move to the next phase.  Returns True when it should auto-start."""
        if self._mode is TimerMode.QUICK_TIMER:
            self._rewind()
            return False

        if completed_phase is Phase.FOCUS:
            self._session_index += 1
            if self._session_index >= self._config.number_of_sessions:
                # Cycle complete, no forced break
                self._session_index = 0
                self._phase = Phase.FOCUS
                self._awaiting_break_start = False
                self._rewind()
                return False
            self._phase = self._config.break_after(self._session_index)
            self._rewind()
            if self._settings.auto_start_breaks:
                return True
            self._awaiting_break_start = True
            return False

        self._phase = Phase.FOCUS
        self._awaiting_break_start = False
        self._rewind()
        return bool(self._settings.auto_start_focus)

    def _restart_cycle(self) -> None:
        self._phase = Phase.FOCUS
        self._session_index = 0
        self._awaiting_break_start = False
        self._rewind()
        self.phase_changed.emit(self._phase)

    def _rewind(self) -> None:
        self._segment_total = self._duration_for_current()
        self._remaining = float(self._segment_total)
        self._remaining_at_anchor = self._remaining

    def _duration_for_current(self) -> int:
        if self._mode is TimerMode.QUICK_TIMER:
            return self.quick_timer_duration
        return self._config.duration_for(self._phase)

    def _is_countable(self) -> bool:
        return self._mode is TimerMode.QUICK_TIMER or self._phase is Phase.FOCUS

    def _current_segment(self) -> Segment:
        name = (
            QUICK_TIMER_PRESET_NAME
            if self._mode is TimerMode.QUICK_TIMER
            else self._config.name
        )
        return Segment(
            target_duration=self._segment_total,
            preset_name=name,
            mode=self._mode,
            phase=self._phase,
        )

    def _set_state(self, new_state: RunState) -> None:
        self._run_state = new_state
        self.state_changed.emit(new_state)


# ── restore helpers ───────────────────────────────────────────────────────


def _restore_configuration(settings: Settings) -> TimerConfiguration:
    blob = settings.last_used_configuration
    if not blob:
        return DEFAULT_PRESET
    try:
        return TimerConfiguration.from_dict(blob)
    except (KeyError, ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable last-used configuration: %s", exc)
        return DEFAULT_PRESET


def _restore_mode(settings: Settings) -> TimerMode:
    try:
        return TimerMode(settings.last_used_mode)
    except ValueError:
        return TimerMode.POMODORO
