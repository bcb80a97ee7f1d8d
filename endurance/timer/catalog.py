"""Preset catalog: built-in and user-created timer configurations.

Both lists are stored as JSON blobs in the ``stored_values`` table under
versioned keys.  Bumping ``SCHEMA_VERSION`` makes old blobs invisible, so
the catalog re-seeds from the shipped built-ins instead of decoding a
shape it no longer understands.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime

from PyQt6.QtCore import QObject, pyqtSignal
from sqlalchemy.exc import SQLAlchemyError

from ..database.db import get_session
from ..database.models import StoredValue
from .presets import BUILTIN_PRESETS, TimerConfiguration

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2
BUILTIN_KEY = f"builtin_presets.v{SCHEMA_VERSION}"
CUSTOM_KEY = f"custom_presets.v{SCHEMA_VERSION}"

_SHIPPED: dict[str, TimerConfiguration] = {p.id: p for p in BUILTIN_PRESETS}


class PresetCatalog(QObject):
    """CRUD over timer configurations.

    Signals
    -------
    presets_changed(presets: list[TimerConfiguration])
        Emitted after every successful in-memory mutation.
    """

    presets_changed = pyqtSignal(object)

    def __init__(self, parent: QObject | None = None, *, persist: bool = True) -> None:
        super().__init__(parent)
        self._persist = persist
        self._builtins: list[TimerConfiguration] = list(BUILTIN_PRESETS)
        self._custom: list[TimerConfiguration] = []
        if persist:
            self._load()

    # ══════════════════════════════════════════════════════════════════
    #  QUERIES
    # ══════════════════════════════════════════════════════════════════

    def list(self) -> list[TimerConfiguration]:
        """Built-ins in shipped order, then custom presets in insertion order."""
        return self._builtins + self._custom

    @property
    def builtins(self) -> list[TimerConfiguration]:
        return list(self._builtins)

    @property
    def custom(self) -> list[TimerConfiguration]:
        return list(self._custom)

    def get(self, preset_id: str) -> TimerConfiguration | None:
        for preset in self.list():
            if preset.id == preset_id:
                return preset
        return None

    def is_customized(self, preset_id: str) -> bool:
        """True when a built-in no longer matches its shipped values."""
        shipped = _SHIPPED.get(preset_id)
        if shipped is None:
            return False
        return self.get(preset_id) != shipped

    # ══════════════════════════════════════════════════════════════════
    #  MUTATIONS
    # ══════════════════════════════════════════════════════════════════

    def add(self, config: TimerConfiguration) -> TimerConfiguration:
        """Append a user preset.  A fresh id is assigned when the given one
        is empty or already taken."""
        if not config.id or self.get(config.id) is not None:
            config = config.with_changes(id=str(uuid.uuid4()))
        if config.is_default:
            config = config.with_changes(is_default=False)
        self._custom.append(config)
        self._changed()
        return config

    def update(self, config: TimerConfiguration) -> bool:
        """Replace the preset with the same id.  Unknown ids are ignored."""
        for i, existing in enumerate(self._builtins):
            if existing.id == config.id:
                self._builtins[i] = config.with_changes(is_default=True)
                self._changed()
                return True
        for i, existing in enumerate(self._custom):
            if existing.id == config.id:
                self._custom[i] = config.with_changes(is_default=False)
                self._changed()
                return True
        return False

    def remove(self, config: TimerConfiguration) -> bool:
        """Delete a user preset.  Built-ins cannot be removed."""
        if config.id in _SHIPPED:
            return False
        before = len(self._custom)
        self._custom = [p for p in self._custom if p.id != config.id]
        if len(self._custom) == before:
            return False
        self._changed()
        return True

    def reset_to_factory(self, preset_id: str) -> bool:
        """Discard in-place customization of a built-in."""
        shipped = _SHIPPED.get(preset_id)
        if shipped is None:
            return False
        self._builtins = [shipped if p.id == preset_id else p for p in self._builtins]
        self._changed()
        return True

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: persistence
    # ══════════════════════════════════════════════════════════════════

    def _changed(self) -> None:
        if self._persist:
            self._save()
        self.presets_changed.emit(self.list())

    def _save(self) -> None:
        payload = {
            BUILTIN_KEY: json.dumps([p.to_dict() for p in self._builtins]),
            CUSTOM_KEY: json.dumps([p.to_dict() for p in self._custom]),
        }
        now = datetime.now()
        try:
            with get_session() as db:
                for key, value in payload.items():
                    row = db.get(StoredValue, key)
                    if row is None:
                        db.add(StoredValue(key=key, value=value, updated_at=now))
                    else:
                        row.value = value
                        row.updated_at = now
        except SQLAlchemyError as exc:
            logger.warning("Could not save preset catalog: %s", exc)

    def _load(self) -> None:
        try:
            with get_session() as db:
                builtin_row = db.get(StoredValue, BUILTIN_KEY)
                custom_row = db.get(StoredValue, CUSTOM_KEY)
                builtin_blob = builtin_row.value if builtin_row else None
                custom_blob = custom_row.value if custom_row else None
        except SQLAlchemyError as exc:
            logger.warning("Could not load preset catalog: %s", exc)
            return

        if builtin_blob is None or custom_blob is None:
            logger.info("No preset catalog v%d stored, seeding defaults", SCHEMA_VERSION)
            self._save()
            return

        try:
            stored_builtins = _decode(builtin_blob)
            custom = _decode(custom_blob)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Stored preset catalog is unreadable, re-seeding: %s", exc)
            self._builtins = list(BUILTIN_PRESETS)
            self._custom = []
            self._save()
            return

        by_id = {p.id: p for p in stored_builtins}
        # Shipped order wins; stale built-ins vanish, new ones appear
        self._builtins = [
            by_id.get(p.id, p).with_changes(is_default=True) for p in BUILTIN_PRESETS
        ]
        self._custom = [p.with_changes(is_default=False) for p in custom]


def _decode(blob: str) -> list[TimerConfiguration]:
    data = json.loads(blob)
    if not isinstance(data, list):
        raise ValueError("expected a list of presets")
    return [TimerConfiguration.from_dict(item) for item in data]
