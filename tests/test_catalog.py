"""Tests for timer configurations and the preset catalog.

Covers:
- TimerConfiguration validation, derived totals, serialization
- Catalog ordering and CRUD semantics
- Persistence under versioned keys and re-seeding on bad data
"""

from __future__ import annotations

import json

import pytest

from endurance.database.db import get_session
from endurance.database.models import StoredValue
from endurance.timer.catalog import BUILTIN_KEY, CUSTOM_KEY, PresetCatalog
from endurance.timer.phases import Phase
from endurance.timer.presets import (
    BUILTIN_PRESETS, DEEP_WORK, FOCUS, MARATHON, PresetIcon, TimerConfiguration,
    format_duration,
)

from helpers import SignalCollector


def _custom(name="Reading", focus=45 * 60, brk=10 * 60, sessions=2):
    return TimerConfiguration(
        name=name, focus_duration=focus, break_duration=brk,
        number_of_sessions=sessions, icon=PresetIcon.LEAF,
    )


# ═══════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════


class TestTimerConfiguration:

    def test_totals(self):
        cfg = TimerConfiguration(
            name="x", focus_duration=1500, break_duration=300, number_of_sessions=4,
        )
        assert cfg.total_focus_time == 6000
        assert cfg.total_break_time == 900
        assert cfg.total_duration == 6900

    def test_totals_single_session(self):
        cfg = TimerConfiguration(name="x", focus_duration=600, break_duration=300)
        assert cfg.total_break_time == 0
        assert cfg.total_duration == 600

    def test_totals_with_long_break(self):
        # 7 breaks, the 4th is long
        assert MARATHON.total_break_time == 6 * 300 + 900

    def test_default_long_break_falls_back(self):
        cfg = TimerConfiguration(name="x", focus_duration=1500, break_duration=300, number_of_sessions=4)
        assert cfg.duration_for(Phase.LONG_BREAK) == 300
        assert [cfg.break_after(k) for k in (1, 2, 3)] == [Phase.SHORT_BREAK] * 3

    def test_ids_are_unique(self):
        assert _custom().id != _custom().id

    def test_durations_coerced_to_int(self):
        cfg = TimerConfiguration(name="x", focus_duration=60.0, break_duration="30")
        assert cfg.focus_duration == 60
        assert cfg.break_duration == 30

    @pytest.mark.parametrize("kwargs", [
        {"focus_duration": 0, "break_duration": 0},
        {"focus_duration": 60, "break_duration": -1},
        {"focus_duration": 60, "break_duration": 0, "number_of_sessions": 0},
        {"focus_duration": 60, "break_duration": 0, "long_break_interval": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            TimerConfiguration(name="bad", **kwargs)

    def test_dict_round_trip(self):
        assert TimerConfiguration.from_dict(MARATHON.to_dict()) == MARATHON

    def test_from_dict_missing_field(self):
        with pytest.raises(KeyError):
            TimerConfiguration.from_dict({"id": "x", "name": "y"})

    def test_formatted_duration(self):
        assert format_duration(25 * 60) == "25m"
        assert format_duration(90 * 60) == "1h 30m"
        assert format_duration(120 * 60) == "2h"
        assert format_duration(4 * 60 + 30) == "4m 30s"
        assert DEEP_WORK.short_duration == "50"


# ═══════════════════════════════════════════════════════════════════════
#  CATALOG
# ═══════════════════════════════════════════════════════════════════════


class TestCatalogQueries:

    def test_builtins_first_in_shipped_order(self, qapp):
        catalog = PresetCatalog()
        a, b = _custom("A"), _custom("B")
        catalog.add(a)
        catalog.add(b)
        names = [p.name for p in catalog.list()]
        assert names == [p.name for p in BUILTIN_PRESETS] + ["A", "B"]

    def test_builtins_are_default(self, qapp):
        catalog = PresetCatalog()
        assert all(p.is_default for p in catalog.builtins)

    def test_get(self, qapp):
        catalog = PresetCatalog()
        assert catalog.get(FOCUS.id) == FOCUS
        assert catalog.get("nope") is None


class TestCatalogMutations:

    def test_add_keeps_id_and_clears_default_flag(self, qapp):
        catalog = PresetCatalog()
        cfg = _custom().with_changes(is_default=True)
        added = catalog.add(cfg)
        assert added.id == cfg.id
        assert added.is_default is False
        assert catalog.custom == [added]

    def test_add_assigns_fresh_id_on_collision(self, qapp):
        catalog = PresetCatalog()
        added = catalog.add(_custom().with_changes(id=FOCUS.id))
        assert added.id != FOCUS.id
        assert catalog.get(FOCUS.id) == FOCUS

    def test_add_assigns_id_when_empty(self, qapp):
        catalog = PresetCatalog()
        added = catalog.add(_custom().with_changes(id=""))
        assert added.id

    def test_update_custom(self, qapp):
        catalog = PresetCatalog()
        added = catalog.add(_custom())
        assert catalog.update(added.with_changes(name="Renamed")) is True
        assert catalog.get(added.id).name == "Renamed"

    def test_update_builtin_in_place(self, qapp):
        catalog = PresetCatalog()
        tuned = FOCUS.with_changes(focus_duration=30 * 60, is_default=False)
        assert catalog.update(tuned) is True
        stored = catalog.get(FOCUS.id)
        assert stored.focus_duration == 30 * 60
        assert stored.is_default is True
        assert catalog.list()[0].id == FOCUS.id
        assert catalog.is_customized(FOCUS.id)

    def test_update_unknown_is_ignored(self, qapp):
        catalog = PresetCatalog()
        c = SignalCollector()
        catalog.presets_changed.connect(c)
        assert catalog.update(_custom()) is False
        assert len(c) == 0

    def test_remove_custom(self, qapp):
        catalog = PresetCatalog()
        added = catalog.add(_custom())
        assert catalog.remove(added) is True
        assert catalog.custom == []

    def test_remove_builtin_refused(self, qapp):
        catalog = PresetCatalog()
        assert catalog.remove(FOCUS) is False
        assert catalog.get(FOCUS.id) is not None

    def test_reset_to_factory(self, qapp):
        catalog = PresetCatalog()
        catalog.update(FOCUS.with_changes(name="Mine"))
        assert catalog.reset_to_factory(FOCUS.id) is True
        assert catalog.get(FOCUS.id) == FOCUS
        assert not catalog.is_customized(FOCUS.id)

    def test_reset_to_factory_unknown(self, qapp):
        catalog = PresetCatalog()
        assert catalog.reset_to_factory("nope") is False

    def test_presets_changed_signal(self, qapp):
        catalog = PresetCatalog()
        c = SignalCollector()
        catalog.presets_changed.connect(c)
        catalog.add(_custom())
        assert len(c) == 1
        assert len(c.last) == len(BUILTIN_PRESETS) + 1


# ═══════════════════════════════════════════════════════════════════════
#  PERSISTENCE
# ═══════════════════════════════════════════════════════════════════════


def _stored(key):
    with get_session() as db:
        row = db.get(StoredValue, key)
        return None if row is None else json.loads(row.value)


class TestCatalogPersistence:

    def test_first_run_seeds_builtins(self, qapp):
        PresetCatalog()
        assert [p["id"] for p in _stored(BUILTIN_KEY)] == [p.id for p in BUILTIN_PRESETS]
        assert _stored(CUSTOM_KEY) == []

    def test_mutations_survive_reload(self, qapp):
        catalog = PresetCatalog()
        added = catalog.add(_custom())
        catalog.update(DEEP_WORK.with_changes(number_of_sessions=3))

        reloaded = PresetCatalog()
        assert reloaded.get(added.id) == added
        assert reloaded.get(DEEP_WORK.id).number_of_sessions == 3

    def test_custom_presets_keep_insertion_order(self, qapp):
        catalog = PresetCatalog()
        for name in ("C", "A", "B"):
            catalog.add(_custom(name))
        assert [p.name for p in PresetCatalog().custom] == ["C", "A", "B"]

    def test_corrupt_blob_reseeds(self, qapp):
        catalog = PresetCatalog()
        catalog.add(_custom())
        with get_session() as db:
            db.get(StoredValue, BUILTIN_KEY).value = "{not json"

        reloaded = PresetCatalog()
        assert reloaded.builtins == list(BUILTIN_PRESETS)
        assert reloaded.custom == []

    def test_invalid_record_reseeds(self, qapp):
        PresetCatalog()
        with get_session() as db:
            db.get(StoredValue, CUSTOM_KEY).value = json.dumps([{"id": "x"}])
        assert PresetCatalog().custom == []

    def test_old_schema_keys_are_ignored(self, qapp):
        with get_session() as db:
            db.add(StoredValue(key="custom_presets.v1", value=json.dumps([{"legacy": True}])))
        catalog = PresetCatalog()
        assert catalog.custom == []
        assert catalog.builtins == list(BUILTIN_PRESETS)

    def test_stale_builtins_dropped_and_new_ones_added(self, qapp):
        stored = [FOCUS.with_changes(name="Tuned").to_dict()]
        stored.append(_custom("Gone").with_changes(is_default=True).to_dict())
        with get_session() as db:
            db.add(StoredValue(key=BUILTIN_KEY, value=json.dumps(stored)))
            db.add(StoredValue(key=CUSTOM_KEY, value="[]"))

        catalog = PresetCatalog()
        assert [p.id for p in catalog.builtins] == [p.id for p in BUILTIN_PRESETS]
        assert catalog.get(FOCUS.id).name == "Tuned"

    def test_non_persistent_catalog_writes_nothing(self, qapp):
        catalog = PresetCatalog(persist=False)
        catalog.add(_custom())
        assert _stored(CUSTOM_KEY) is None


# ═══════════════════════════════════════════════════════════════════════
#  STORAGE FAILURES
# ═══════════════════════════════════════════════════════════════════════


class TestCatalogStorageFailures:

    def test_load_falls_back_to_builtins(self, qapp, broken_db):
        catalog = PresetCatalog()
        assert [p.id for p in catalog.builtins] == [p.id for p in BUILTIN_PRESETS]
        assert catalog.custom == []

    def test_mutations_still_apply_in_memory(self, qapp, broken_db):
        catalog = PresetCatalog()
        c = SignalCollector()
        catalog.presets_changed.connect(c)

        added = catalog.add(_custom())
        assert catalog.get(added.id) == added
        assert catalog.update(added.with_changes(name="Renamed")) is True
        assert catalog.get(added.id).name == "Renamed"
        assert catalog.remove(added) is True
        assert catalog.get(added.id) is None
        assert len(c) == 3
