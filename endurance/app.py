"""Application root: owns the settings and wires every component together."""

from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import QObject, Qt
from PyQt6.QtGui import QColor, QIcon, QImage, QPainter, QPen, QPixmap
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from .alerts import CompletionAlerts, Notifier
from .log.session_log import SessionLog
from .settings import Settings, load_settings, save_settings
from .timer.catalog import PresetCatalog
from .timer.clock_gap import ClockGapWatcher
from .timer.engine import QUICK_TIMER_PRESET_NAME, TimerEngine
from .timer.phases import Phase, RunState, TimerMode

logger = logging.getLogger(__name__)

_PHASE_LABELS = {
    Phase.FOCUS: "Focus",
    Phase.SHORT_BREAK: "Break",
    Phase.LONG_BREAK: "Long Break",
}


class EnduranceApp(QObject):
    """Builds the object graph and owns the save boundary for settings.

    Components never reach for a global: the ``Settings`` instance created
    here is handed to the engine and the log, and written back to disk
    whenever the engine reports a change.
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        settings: Settings | None = None,
        settings_path: Path | None = None,
        sound_manager=None,
        notifier: Notifier | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings_path = settings_path
        self.settings = settings if settings is not None else load_settings(settings_path)

        self.catalog = PresetCatalog(self)
        self.session_log = SessionLog(self, settings=self.settings)
        self.engine = TimerEngine(self, settings=self.settings)
        self.session_log.attach(self.engine)
        self.engine.settings_changed.connect(self.save_settings)

        self.alerts = CompletionAlerts(
            self.engine,
            self.settings,
            sound_manager=sound_manager,
            notifier=notifier,
            parent=self,
        )

        self.clock_gap = ClockGapWatcher(self)
        self.clock_gap.gap_detected.connect(self.engine.apply_clock_gap)

    def start(self) -> None:
        self.clock_gap.start()
        self.session_log.refresh_stats()

    def shutdown(self) -> None:
        """Stop background timers and close any half-open record."""
        self.clock_gap.stop()
        self.engine.stop()
        self.session_log.close_open_record()
        self.save_settings()
        logger.info("Shut down")

    def save_settings(self, *_args) -> None:
        save_settings(self.settings, self._settings_path)


# ── tray ──────────────────────────────────────────────────────────────────


def _make_tray_icon(state: RunState) -> QIcon:
    """32×32 template icon: outline when idle, filled when running,
    pause bars when paused."""
    size = 64  # draw at 2× for Retina
    img = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(Qt.GlobalColor.transparent)
    p = QPainter(img)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    colour = QColor(0, 0, 0, 220)
    cx, cy, r = size // 2, size // 2, size // 2 - 4

    if state is RunState.RUNNING:
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(colour)
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
    elif state is RunState.PAUSED:
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(colour)
        bar_w, bar_h, gap = 8, 28, 6
        y = cy - bar_h // 2
        p.drawRoundedRect(cx - gap - bar_w, y, bar_w, bar_h, 3, 3)
        p.drawRoundedRect(cx + gap, y, bar_w, bar_h, 3, 3)
    else:
        p.setPen(QPen(colour, 4))
        p.setBrush(Qt.BrushStyle.NoBrush)
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)

    p.end()
    img.setDevicePixelRatio(2.0)
    return QIcon(QPixmap.fromImage(img))


class TrayController(QObject):
    """Menu-bar presence: live time in the tooltip, commands in the menu."""

    def __init__(self, app: EnduranceApp, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._app = app
        engine = app.engine

        self.icon = QSystemTrayIcon(_make_tray_icon(engine.run_state), self)
        menu = QMenu()
        self._menu = menu

        self._toggle_action = menu.addAction("Start")
        self._toggle_action.triggered.connect(engine.toggle)
        self._break_action = menu.addAction("Start Break")
        self._break_action.triggered.connect(engine.start_break)
        menu.addAction("Skip").triggered.connect(engine.skip_to_next_phase)
        menu.addAction("Stop").triggered.connect(engine.stop)
        menu.addAction("Reset").triggered.connect(engine.reset)
        menu.addSeparator()
        menu.addAction("Quit").triggered.connect(self._quit)
        self.icon.setContextMenu(menu)
        app.alerts.notifier = self.show_message

        engine.state_changed.connect(self._on_state_changed)
        engine.tick.connect(self._refresh_tooltip)
        self._on_state_changed(engine.run_state)

    def show_message(self, title: str, body: str) -> None:
        self.icon.showMessage(title, body)

    def _on_state_changed(self, state: RunState) -> None:
        self.icon.setIcon(_make_tray_icon(state))
        labels = {
            RunState.IDLE: "Start",
            RunState.RUNNING: "Pause",
            RunState.PAUSED: "Resume",
        }
        self._toggle_action.setText(labels[state])
        self._break_action.setEnabled(self._app.engine.awaiting_break_start)
        self._refresh_tooltip()

    def _refresh_tooltip(self, *_args) -> None:
        engine = self._app.engine
        if engine.mode is TimerMode.QUICK_TIMER:
            label = QUICK_TIMER_PRESET_NAME
        else:
            label = _PHASE_LABELS[engine.phase]
        self.icon.setToolTip(f"{label} {engine.menu_bar_time}")

    def _quit(self) -> None:
        self._app.shutdown()
        self.icon.hide()
        QApplication.instance().quit()
