"""Detect system sleep as a jump in wall-clock time.

Qt has no portable sleep/wake notification.  Instead a slow heartbeat
records the wall clock; when two heartbeats are much further apart than
the interval, the process was suspended in between and the watcher emits
``gap_detected(slept_from, slept_until)``.  Connect it to
``TimerEngine.apply_clock_gap``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

logger = logging.getLogger(__name__)

HEARTBEAT_MS = 1000
GAP_THRESHOLD_SECONDS = 5.0


class ClockGapWatcher(QObject):
    """Heartbeat-based suspension detector."""

    gap_detected = pyqtSignal(float, float)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        threshold: float = GAP_THRESHOLD_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(parent)
        self._threshold = threshold
        self._clock = clock
        self._last_seen: float | None = None

        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(HEARTBEAT_MS)
        self._qt_timer.timeout.connect(self.check)

    @property
    def active(self) -> bool:
        return self._qt_timer.isActive()

    def start(self) -> None:
        self._last_seen = self._clock()
        self._qt_timer.start()

    def stop(self) -> None:
        self._qt_timer.stop()
        self._last_seen = None

    def check(self) -> None:
        now = self._clock()
        last, self._last_seen = self._last_seen, now
        if last is None:
            return
        expected = HEARTBEAT_MS / 1000
        if now - last > expected + self._threshold:
            logger.info("Wall clock jumped %.1fs, treating as sleep", now - last)
            self.gap_detected.emit(last, now)
