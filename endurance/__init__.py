"""Endurance: a focus timer with a session log."""

__version__ = "0.1.0"
