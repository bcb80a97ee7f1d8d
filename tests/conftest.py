"""Shared pytest fixtures for Endurance tests."""

import os
import sys
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from endurance.database.db import configure_engine, init_db
from endurance.settings import Settings
from endurance.timer.engine import TimerEngine
from endurance.timer.presets import TimerConfiguration

from helpers import FakeClock


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def broken_db():
    """A database with no tables: every query raises ``OperationalError``."""
    configure_engine("sqlite:///:memory:")
    yield


@pytest.fixture
def clock():
    return FakeClock(start=1_000_000.0)


@pytest.fixture
def classic():
    """focus=1500s, break=300s, 4 sessions."""
    return TimerConfiguration(
        name="Classic",
        focus_duration=1500,
        break_duration=300,
        number_of_sessions=4,
    )


@pytest.fixture
def engine(qapp, clock, classic):
    """Fresh TimerEngine with auto-start OFF for breaks and focus."""
    settings = Settings(auto_start_breaks=False, auto_start_focus=False)
    return TimerEngine(settings=settings, configuration=classic, clock=clock)


@pytest.fixture
def engine_auto(qapp, clock, classic):
    """Fresh TimerEngine with the default settings (auto-start ON)."""
    return TimerEngine(settings=Settings(), configuration=classic, clock=clock)
