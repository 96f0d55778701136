"""In-process metrics for TaskTrack.

Counters track workflow events (tasks created, admissions refused, history
writes). Histograms bucket latencies in milliseconds for the /v1/metrics
snapshot.
"""

from bisect import bisect_left
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

LATENCY_BUCKETS_MS = (1.0, 5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 1000.0)


@dataclass
class Histogram:
    bounds: tuple[float, ...] = LATENCY_BUCKETS_MS
    buckets: list[int] = field(default_factory=list)
    count: int = 0
    total: float = 0.0
    peak: float = 0.0

    def __post_init__(self) -> None:
        # One slot per bound plus an overflow slot
        if not self.buckets:
            self.buckets = [0] * (len(self.bounds) + 1)

    def observe(self, value: float) -> None:
        self.buckets[bisect_left(self.bounds, value)] += 1
        self.count += 1
        self.total += value
        self.peak = max(self.peak, value)

    def snapshot(self) -> dict[str, Any]:
        labels = [f"le_{bound:g}" for bound in self.bounds] + ["overflow"]
        return {
            "count": self.count,
            "mean": self.total / self.count if self.count else 0.0,
            "max": self.peak,
            "buckets": dict(zip(labels, self.buckets)),
        }


class MetricsRegistry:
    """Named counters and histograms behind a single lock."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.counters: dict[str, float] = {}
        self.histograms: dict[str, Histogram] = {}

    def inc_counter(self, name: str, amount: float = 1.0) -> None:
        with self._lock:
            self.counters[name] = self.counters.get(name, 0.0) + amount

    def counter_value(self, name: str) -> float:
        with self._lock:
            return self.counters.get(name, 0.0)

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            self.histograms.setdefault(name, Histogram()).observe(value)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self.counters),
                "histograms": {name: hist.snapshot() for name, hist in self.histograms.items()},
            }

    def reset(self) -> None:
        """Drop every series. Used between test cases."""
        with self._lock:
            self.counters.clear()
            self.histograms.clear()


metrics = MetricsRegistry()
