"""SQLAlchemy ORM models for Endurance."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class SessionRecord(Base):
    """One countable timed segment (a focus run or a quick-timer run).

    ``preset_name`` and ``target_duration_seconds`` are snapshots taken
    when the segment started, so editing or deleting the preset later
    never rewrites history.
    """

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    start_time = Column(DateTime, nullable=False, default=datetime.now, index=True)
    end_time = Column(DateTime, nullable=True)
    target_duration_seconds = Column(Integer, nullable=False, default=0)
    actual_duration_seconds = Column(Float, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    preset_name = Column(String(255), nullable=False, default="Focus")

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def __repr__(self) -> str:
        return (
            f"<SessionRecord id={self.id} preset={self.preset_name!r} "
            f"completed={self.completed}>"
        )


class StoredValue(Base):
    """Key → JSON blob store (preset catalog lives here)."""

    __tablename__ = "stored_values"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    def __repr__(self) -> str:
        return f"<StoredValue key={self.key}>"
