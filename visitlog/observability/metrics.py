"""
Metrics Collector: Prometheus-Compatible Counters and Histograms

Provides:
- Labelled counters for captured events, snapshots and failures
- Latency histograms for compaction runs
- Prometheus text export

Thread-safe; a process-wide collector is available via get_instance().
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence


@dataclass(frozen=True)
class MetricLabels:
    """Immutable label set for metric dimensions."""
    labels: tuple[tuple[str, str], ...]

    @classmethod
    def from_dict(cls, d: dict[str, str]) -> MetricLabels:
        return cls(labels=tuple(sorted(d.items())))

    def to_dict(self) -> dict[str, str]:
        return dict(self.labels)


class Counter:
    """
    Monotonically increasing counter metric.

    Usage:
        recorded = Counter("visitlog_events_recorded_total", ["type"])
        recorded.inc(type="agenda_edit")
    """

    __slots__ = ("_name", "_help", "_label_names", "_values", "_lock")

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> None:
        self._name = name
        self._help = help_text
        self._label_names = tuple(label_names)
        self._values: dict[MetricLabels, float] = defaultdict(float)
        self._lock = threading.Lock()

    def inc(self, value: float = 1.0, **labels: str) -> None:
        """Increment counter."""
        if value < 0:
            raise ValueError("Counter can only increase")
        key = self._make_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, **labels: str) -> float:
        """Get current value."""
        key = self._make_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def _make_key(self, labels: dict[str, str]) -> MetricLabels:
        filtered = {k: labels.get(k, "") for k in self._label_names}
        return MetricLabels.from_dict(filtered)

    def collect(self) -> Iterator[tuple[dict[str, str], float]]:
        """Iterate all label combinations."""
        with self._lock:
            items = list(self._values.items())
        for key, value in items:
            yield (key.to_dict(), value)

    @property
    def name(self) -> str:
        return self._name


class Histogram:
    """
    Histogram with configurable buckets.

    Usage:
        duration = Histogram("visitlog_compaction_duration_seconds")

        with duration.time():
            await compactor.compact(entity_id)
    """

    __slots__ = (
        "_name", "_help", "_label_names", "_buckets",
        "_bucket_counts", "_sums", "_counts", "_lock",
    )

    DEFAULT_BUCKETS = (
        0.001, 0.005, 0.01, 0.025, 0.05, 0.1,
        0.25, 0.5, 1.0, 2.5, 5.0, float("inf"),
    )

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
        buckets: Optional[Sequence[float]] = None,
    ) -> None:
        self._name = name
        self._help = help_text
        self._label_names = tuple(label_names)
        self._buckets = tuple(sorted(buckets or self.DEFAULT_BUCKETS))

        # Ensure +Inf bucket
        if self._buckets[-1] != float("inf"):
            self._buckets = self._buckets + (float("inf"),)

        self._bucket_counts: dict[MetricLabels, list[int]] = {}
        self._sums: dict[MetricLabels, float] = defaultdict(float)
        self._counts: dict[MetricLabels, int] = defaultdict(int)
        self._lock = threading.Lock()

    def observe(self, value: float, **labels: str) -> None:
        """Record observation."""
        key = self._make_key(labels)

        with self._lock:
            if key not in self._bucket_counts:
                self._bucket_counts[key] = [0] * len(self._buckets)

            # Cumulative buckets
            for i, bound in enumerate(self._buckets):
                if value <= bound:
                    self._bucket_counts[key][i] += 1

            self._sums[key] += value
            self._counts[key] += 1

    def time(self, **labels: str) -> HistogramTimer:
        """Context manager for timing operations."""
        return HistogramTimer(self, labels)

    def count(self, **labels: str) -> int:
        key = self._make_key(labels)
        with self._lock:
            return self._counts.get(key, 0)

    def _make_key(self, labels: dict[str, str]) -> MetricLabels:
        filtered = {k: labels.get(k, "") for k in self._label_names}
        return MetricLabels.from_dict(filtered)

    def collect(self) -> Iterator[dict[str, Any]]:
        """Collect all histogram data."""
        with self._lock:
            snapshot = [
                (key, list(counts), self._sums.get(key, 0.0), self._counts.get(key, 0))
                for key, counts in self._bucket_counts.items()
            ]
        for key, counts, total, count in snapshot:
            yield {
                "labels": key.to_dict(),
                "buckets": list(zip(self._buckets, counts)),
                "sum": total,
                "count": count,
            }

    @property
    def name(self) -> str:
        return self._name


class HistogramTimer:
    """Context manager for histogram timing."""

    __slots__ = ("_histogram", "_labels", "_start")

    def __init__(self, histogram: Histogram, labels: dict[str, str]) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start = 0.0

    def __enter__(self) -> HistogramTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        elapsed = time.perf_counter() - self._start
        self._histogram.observe(elapsed, **self._labels)


class MetricsCollector:
    """
    Central registry for all metrics.

    Usage:
        collector = MetricsCollector.get_instance()
        snapshots = collector.counter("visitlog_snapshots_created_total")
        output = collector.export_prometheus()
    """

    __slots__ = ("_counters", "_histograms", "_lock")

    _instance: Optional[MetricsCollector] = None

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> MetricsCollector:
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def counter(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> Counter:
        """Get or create counter."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, label_names, help_text)
            return self._counters[name]

    def histogram(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
        buckets: Optional[Sequence[float]] = None,
    ) -> Histogram:
        """Get or create histogram."""
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name, label_names, help_text, buckets)
            return self._histograms[name]

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus text format."""
        lines: list[str] = []

        for name, counter in self._counters.items():
            lines.append(f"# TYPE {name} counter")
            for labels, value in counter.collect():
                lines.append(f"{name}{self._format_labels(labels)} {value}")

        for name, histogram in self._histograms.items():
            lines.append(f"# TYPE {name} histogram")
            for data in histogram.collect():
                label_str = self._format_labels(data["labels"])
                inner = label_str[1:-1]
                for bound, count in data["buckets"]:
                    bound_str = "+Inf" if bound == float("inf") else str(bound)
                    le = f'le="{bound_str}"' + (f",{inner}" if inner else "")
                    lines.append(f"{name}_bucket{{{le}}} {count}")
                lines.append(f'{name}_sum{label_str} {data["sum"]}')
                lines.append(f'{name}_count{label_str} {data["count"]}')

        return "\n".join(lines)

    def _format_labels(self, labels: dict[str, str]) -> str:
        """Format labels as Prometheus label string."""
        if not labels:
            return ""
        pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"


class HistoryMetrics:
    """Named metric handles used by the history components."""

    __slots__ = (
        "events_recorded", "capture_failures", "snapshots_created",
        "compaction_failures", "compaction_conflicts", "compaction_duration",
        "erasures",
    )

    def __init__(self, collector: Optional[MetricsCollector] = None) -> None:
        c = collector or MetricsCollector.get_instance()
        self.events_recorded = c.counter(
            "visitlog_events_recorded_total", ["type"], "History events appended",
        )
        self.capture_failures = c.counter(
            "visitlog_capture_failures_total", (), "Event batches that failed to persist",
        )
        self.snapshots_created = c.counter(
            "visitlog_snapshots_created_total", (), "Snapshots persisted by compaction",
        )
        self.compaction_failures = c.counter(
            "visitlog_compaction_failures_total", (), "Compaction runs that hit an error",
        )
        self.compaction_conflicts = c.counter(
            "visitlog_compaction_conflicts_total", (),
            "Compaction runs stopped by a concurrent run",
        )
        self.compaction_duration = c.histogram(
            "visitlog_compaction_duration_seconds", (), "Compaction run latency",
        )
        self.erasures = c.counter(
            "visitlog_erasures_total", ["outcome"], "History erasures by outcome",
        )
