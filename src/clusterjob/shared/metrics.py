"""Stage timing and counters for a workflow run."""

import time
from contextlib import contextmanager
from typing import Dict, Any, Iterator
from collections import defaultdict


class MetricsCollector:
    """
    Collects stage durations and counters for a run.
    Implements IMetricsCollector protocol.
    """

    def __init__(self):
        self._start_time = time.monotonic()
        self._timers: Dict[str, float] = {}
        self._durations: Dict[str, float] = {}
        self._counters: Dict[str, int] = defaultdict(int)

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        self._timers[name] = time.monotonic()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed time.

        Raises:
            KeyError: If timer was not started
        """
        if name not in self._timers:
            raise KeyError(f"Timer '{name}' was not started")

        elapsed = time.monotonic() - self._timers.pop(name)
        self._durations[name] = self._durations.get(name, 0.0) + elapsed
        return elapsed

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Time a block; the timer stops even if the block raises."""
        self.start_timer(name)
        try:
            yield
        finally:
            self.stop_timer(name)

    @property
    def running_timers(self) -> list:
        return sorted(self._timers)

    def increment_counter(self, name: str, amount: int = 1) -> None:
        self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_duration(self, name: str) -> float:
        return self._durations.get(name, 0.0)

    def elapsed_time(self) -> float:
        """Total time since the collector was created."""
        return time.monotonic() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_elapsed": self.elapsed_time(),
            "counters": dict(self._counters),
            "durations": dict(self._durations),
        }
