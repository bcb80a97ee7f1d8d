"""Application settings with JSON persistence.

Settings are stored at:
    ~/Library/Application Support/Endurance/settings.json

The ``Settings`` object is owned by the application root and handed to
the timer engine and the session log at construction.  Nothing reads the
file behind their backs.

Usage::

    settings = load_settings()
    settings.daily_goal_minutes = 90
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path

logger = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "Endurance"
SETTINGS_PATH = APP_SUPPORT_DIR / "settings.json"


@dataclass
class Settings:
    """All user-configurable preferences."""

    # ── timer ─────────────────────────────────────────────────────────
    auto_start_breaks: bool = True
    auto_start_focus: bool = True
    last_used_mode: str = "pomodoro"
    last_used_configuration: dict | None = None
    quick_timer_duration: int = 25 * 60    # seconds

    # ── goals ─────────────────────────────────────────────────────────
    daily_goal_minutes: int = 120

    # ── audio ─────────────────────────────────────────────────────────
    sound_enabled: bool = True
    sound_volume: int = 70                 # 0-100

    # ── notifications ─────────────────────────────────────────────────
    notifications_enabled: bool = True


def _matches_default(value, default) -> bool:
    """True when *value* has the same JSON shape as the field's default."""
    if default is None:
        return value is None or isinstance(value, dict)
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, type(default))


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from disk, falling back to defaults.

    Unknown keys are dropped, and a value whose type does not match the
    field's default keeps the default.
    """
    path = path or SETTINGS_PATH
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            defaults = Settings()
            filtered = {}
            for f in fields(Settings):
                if f.name not in data:
                    continue
                value = data[f.name]
                if _matches_default(value, getattr(defaults, f.name)):
                    filtered[f.name] = value
                else:
                    logger.warning("Ignoring settings value %s=%r", f.name, value)
            return Settings(**filtered)
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Could not read settings from %s: %s", path, exc)
    return Settings()


def save_settings(settings: Settings, path: Path | None = None) -> bool:
    """Write settings to disk as JSON.

    The file is replaced atomically.  Failures are logged, not raised;
    the in-memory settings stay authoritative until the next save.
    """
    path = path or SETTINGS_PATH
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(
            json.dumps(asdict(settings), indent=2) + "\n",
            encoding="utf-8",
        )
        tmp.replace(path)
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Could not save settings to %s: %s", path, exc)
        return False
    return True
