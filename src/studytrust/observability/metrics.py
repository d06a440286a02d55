"""
StudyTrust Metrics

In-process metrics for monitoring pipeline operations.
"""

import time
from collections import defaultdict
from threading import Lock
from typing import Any


def _labels_key(labels: dict[str, str] | None) -> str:
    """Generate key from labels."""
    if not labels:
        return ""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


class Counter:
    """
    Monotonically increasing counter.

    Usage:
        counter = Counter("analyses_total", "Total analyses processed")
        counter.inc()
        counter.inc(labels={"input_type": "url"})
    """

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._values: dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        """Increment counter."""
        key = _labels_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get current value."""
        key = _labels_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def total(self) -> float:
        """Sum across all label combinations."""
        with self._lock:
            return sum(self._values.values())

    def values(self) -> dict[str, float]:
        """Get all values."""
        with self._lock:
            return dict(self._values)


class Gauge:
    """
    Value that can go up or down.

    Usage:
        gauge = Gauge("analyses_in_flight", "Analyses currently running")
        gauge.inc()
        gauge.dec()
    """

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._values: dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def set(self, value: float, labels: dict[str, str] | None = None) -> None:
        """Set gauge value."""
        key = _labels_key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        """Increment gauge."""
        key = _labels_key(labels)
        with self._lock:
            self._values[key] += value

    def dec(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        """Decrement gauge."""
        key = _labels_key(labels)
        with self._lock:
            self._values[key] -= value

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get current value."""
        key = _labels_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def values(self) -> dict[str, float]:
        """Get all values."""
        with self._lock:
            return dict(self._values)


class Histogram:
    """
    Distribution of values (latencies, sizes, etc.).

    Usage:
        hist = Histogram("provider_latency_seconds", "Provider latency")
        hist.observe(0.5)

        with hist.time(labels={"phase": "phase1"}):
            await call_provider()
    """

    DEFAULT_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 240.0, float("inf"))

    def __init__(
        self, name: str, description: str = "", buckets: tuple[float, ...] | None = None
    ) -> None:
        self.name = name
        self.description = description
        self._buckets = buckets or self.DEFAULT_BUCKETS
        self._bucket_counts: dict[str, dict[float, int]] = defaultdict(
            lambda: {b: 0 for b in self._buckets}
        )
        self._sums: dict[str, float] = defaultdict(float)
        self._counts: dict[str, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        """Record an observation."""
        key = _labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._counts[key] += 1
            for bucket in self._buckets:
                if value <= bucket:
                    self._bucket_counts[key][bucket] += 1

    def time(self, labels: dict[str, str] | None = None) -> "_HistogramTimer":
        """Context manager for timing operations."""
        return _HistogramTimer(self, labels)

    def get_count(self, labels: dict[str, str] | None = None) -> int:
        """Get observation count."""
        key = _labels_key(labels)
        with self._lock:
            return self._counts.get(key, 0)

    def get_sum(self, labels: dict[str, str] | None = None) -> float:
        """Get sum of observations."""
        key = _labels_key(labels)
        with self._lock:
            return self._sums.get(key, 0.0)

    def get_mean(self, labels: dict[str, str] | None = None) -> float:
        """Get mean of observations."""
        key = _labels_key(labels)
        with self._lock:
            count = self._counts.get(key, 0)
            if count == 0:
                return 0.0
            return self._sums[key] / count

    def summary(self) -> dict[str, dict[str, float]]:
        """Count, sum and mean per label combination."""
        with self._lock:
            return {
                key: {
                    "count": count,
                    "sum": self._sums[key],
                    "mean": self._sums[key] / count if count else 0.0,
                }
                for key, count in self._counts.items()
            }


class _HistogramTimer:
    """Context manager for timing with histogram."""

    def __init__(self, histogram: Histogram, labels: dict[str, str] | None) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start: float | None = None

    def __enter__(self) -> "_HistogramTimer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        if self._start is not None:
            duration = time.perf_counter() - self._start
            self._histogram.observe(duration, self._labels)


class MetricsRegistry:
    """
    Registry for all metrics.

    Usage:
        registry = MetricsRegistry()
        counter = registry.counter("analyses_total", "Total analyses")
        hist = registry.histogram("stage_latency_seconds", "Stage latency")
    """

    def __init__(self) -> None:
        self._metrics: dict[str, Counter | Gauge | Histogram] = {}
        self._lock = Lock()

    def counter(self, name: str, description: str = "") -> Counter:
        """Get or create counter."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = Counter(name, description)
            return self._metrics[name]  # type: ignore[return-value]

    def gauge(self, name: str, description: str = "") -> Gauge:
        """Get or create gauge."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = Gauge(name, description)
            return self._metrics[name]  # type: ignore[return-value]

    def histogram(
        self, name: str, description: str = "", buckets: tuple[float, ...] | None = None
    ) -> Histogram:
        """Get or create histogram."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = Histogram(name, description, buckets)
            return self._metrics[name]  # type: ignore[return-value]

    def get_all(self) -> dict[str, Any]:
        """Get all metric values."""
        with self._lock:
            metrics = dict(self._metrics)
        result: dict[str, Any] = {}
        for name, metric in metrics.items():
            if isinstance(metric, Histogram):
                result[name] = metric.summary()
            else:
                result[name] = metric.values()
        return result


# Global metrics registry
_registry: MetricsRegistry | None = None


def get_registry() -> MetricsRegistry:
    """Get global metrics registry."""
    global _registry
    if _registry is None:
        _registry = MetricsRegistry()
    return _registry


def reset_metrics() -> None:
    """Reset global metrics."""
    global _registry
    _registry = None


class PipelineMetrics:
    """Pre-defined pipeline metrics."""

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self._registry = registry or get_registry()

    @property
    def analyses_total(self) -> Counter:
        """Analyses started, by input type."""
        return self._registry.counter("studytrust_analyses_total", "Analyses started")

    @property
    def analyses_failed(self) -> Counter:
        """Failed analyses, by error kind."""
        return self._registry.counter("studytrust_analyses_failed_total", "Failed analyses")

    @property
    def analyses_in_flight(self) -> Gauge:
        """Analyses currently running."""
        return self._registry.gauge("studytrust_analyses_in_flight", "Analyses in flight")

    @property
    def cache_hits(self) -> Counter:
        return self._registry.counter("studytrust_cache_hits_total", "Analysis cache hits")

    @property
    def cache_misses(self) -> Counter:
        return self._registry.counter("studytrust_cache_misses_total", "Analysis cache misses")

    @property
    def provider_requests(self) -> Counter:
        """Provider calls, by phase."""
        return self._registry.counter("studytrust_provider_requests_total", "Provider requests")

    @property
    def provider_retries(self) -> Counter:
        """Provider retries, by error class."""
        return self._registry.counter("studytrust_provider_retries_total", "Provider retries")

    @property
    def provider_latency(self) -> Histogram:
        return self._registry.histogram(
            "studytrust_provider_latency_seconds", "Provider phase latency"
        )

    @property
    def stage_latency(self) -> Histogram:
        """Latency of each pipeline node."""
        return self._registry.histogram("studytrust_stage_latency_seconds", "Pipeline stage latency")


def get_pipeline_metrics() -> PipelineMetrics:
    """Get pipeline metrics bound to the global registry."""
    return PipelineMetrics()
