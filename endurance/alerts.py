"""Sound and desktop-notification cues for finished timers.

Both are best effort: a missing audio device or a tray that cannot show
messages is logged and otherwise ignored.
"""

from __future__ import annotations

import logging
from typing import Callable

from PyQt6.QtCore import QObject

from .settings import Settings
from .timer.phases import Phase, TimerMode

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]

_MESSAGES: dict[Phase, tuple[str, str]] = {
    Phase.FOCUS: ("Focus complete", "Nice work. Time for a break."),
    Phase.SHORT_BREAK: ("Break over", "Ready for the next focus session?"),
    Phase.LONG_BREAK: ("Long break over", "Recharged. Back to it."),
}
_QUICK_TIMER_MESSAGE = ("Timer complete", "Your timer has finished.")


class CompletionAlerts(QObject):
    """Fires one sound and one notification per natural completion."""

    def __init__(
        self,
        engine,
        settings: Settings,
        *,
        sound_manager=None,
        notifier: Notifier | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._settings = settings
        self._sound_manager = sound_manager
        self._notifier = notifier
        engine.timer_finished.connect(self.on_timer_finished)

    @property
    def notifier(self) -> Notifier | None:
        return self._notifier

    @notifier.setter
    def notifier(self, value: Notifier | None) -> None:
        self._notifier = value

    def on_timer_finished(self, phase: Phase) -> None:
        quick = self._engine.mode is TimerMode.QUICK_TIMER
        if self._settings.sound_enabled:
            self._play(_sound_for(phase, quick))
        if self._settings.notifications_enabled:
            title, body = _QUICK_TIMER_MESSAGE if quick else _MESSAGES[phase]
            self._notify(title, body)

    def _play(self, name: str) -> None:
        if self._sound_manager is None:
            return
        try:
            self._sound_manager.set_volume(self._settings.sound_volume)
            self._sound_manager.play(name)
        except Exception:
            logger.warning("Could not play %s", name, exc_info=True)

    def _notify(self, title: str, body: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(title, body)
        except Exception:
            logger.warning("Could not show notification %r", title, exc_info=True)


def _sound_for(phase: Phase, quick: bool) -> str:
    if quick:
        return "timer_complete"
    if phase is Phase.FOCUS:
        return "focus_complete"
    return "break_complete"
