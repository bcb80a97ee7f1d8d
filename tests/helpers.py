"""Shared test helpers for Endurance."""

from endurance.timer.engine import TimerEngine


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Manually advanced wall clock (seconds since the epoch)."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def run_for(engine: TimerEngine, clock: FakeClock, seconds: float) -> None:
    """Let *seconds* of wall time pass, then deliver one tick."""
    clock.advance(seconds)
    engine._on_tick()


def complete_segment(engine: TimerEngine, clock: FakeClock) -> None:
    """Run the current segment down to zero with a single tick."""
    if engine.is_idle:
        engine.start()
    run_for(engine, clock, engine.remaining)
