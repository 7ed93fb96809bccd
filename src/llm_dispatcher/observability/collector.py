# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metrics collector for the dispatcher.

Counters, gauges and histograms are always kept in plain dicts so they can be
exported as JSON. When prometheus_client is installed they are also mirrored
to Prometheus metrics, registered lazily on first use.

Usage:
    >>> collector = get_metrics_collector()
    >>> collector.inc_counter(REQUESTS_COMPLETED_TOTAL, labels={"tier": "pro"})
    >>> collector.get_metrics()["counters"]
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, ClassVar

from .constants import (
    ACTIVE_REQUESTS,
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    LATENCY_BUCKETS,
    QUEUE_DEPTH,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_COMPLETED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_SCHEDULED_TOTAL,
    RETRY_ATTEMPTS_TOTAL,
)

logger = logging.getLogger(__name__)

try:
    from prometheus_client import (
        REGISTRY as _REGISTRY,
        Counter as _Counter,
        Gauge as _Gauge,
        Histogram as _Histogram,
    )

    PROMETHEUS_AVAILABLE = True
except ImportError:
    _REGISTRY = None
    _Counter = None
    _Gauge = None
    _Histogram = None
    PROMETHEUS_AVAILABLE = False


@dataclass(frozen=True)
class MetricDefinition:
    """Schema of a pre-declared metric."""

    name: str
    metric_type: str  # counter, gauge or histogram
    description: str
    label_names: tuple[str, ...] = ()


METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    d.name: d
    for d in (
        MetricDefinition(
            REQUESTS_SCHEDULED_TOTAL, "counter", "Requests queued for dispatch"
        ),
        MetricDefinition(
            REQUESTS_COMPLETED_TOTAL,
            "counter",
            "Requests completed successfully",
            ("tier", "provider"),
        ),
        MetricDefinition(
            REQUESTS_FAILED_TOTAL, "counter", "Requests that failed", ("reason",)
        ),
        MetricDefinition(
            RETRY_ATTEMPTS_TOTAL,
            "counter",
            "Provider attempts made",
            ("provider",),
        ),
        MetricDefinition(CACHE_HITS_TOTAL, "counter", "Response cache hits"),
        MetricDefinition(CACHE_MISSES_TOTAL, "counter", "Response cache misses"),
        MetricDefinition(CACHE_EVICTIONS_TOTAL, "counter", "Response cache evictions"),
        MetricDefinition(QUEUE_DEPTH, "gauge", "Tasks waiting in the dispatch queue"),
        MetricDefinition(ACTIVE_REQUESTS, "gauge", "Requests holding a limiter slot"),
        MetricDefinition(
            REQUEST_LATENCY_SECONDS,
            "histogram",
            "Request execution latency",
            ("tier",),
        ),
    )
}


class MetricsCollector:
    """
    Thread-safe metric store with optional Prometheus mirroring.

    Label combinations per metric are capped at MAX_LABEL_COMBINATIONS;
    updates with new combinations beyond the cap are dropped with a warning.
    """

    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000
    MAX_OBSERVATIONS: ClassVar[int] = 10000

    def __init__(self, enable_prometheus: bool = True, registry: Any | None = None):
        self._enable_prometheus = enable_prometheus and PROMETHEUS_AVAILABLE
        self._registry = registry if registry is not None else _REGISTRY

        self._counters: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._gauges: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._label_keys: dict[str, set[str]] = defaultdict(set)
        self._prom_metrics: dict[str, Any] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _labels_to_key(labels: dict[str, str] | None) -> str:
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _admit_labels(self, name: str, label_key: str) -> bool:
        known = self._label_keys[name]
        if label_key in known:
            return True
        if len(known) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                f"Label limit reached for {name}, dropping combination {label_key}"
            )
            return False
        known.add(label_key)
        return True

    def _prom_metric(self, name: str, metric_type: str) -> Any | None:
        if not self._enable_prometheus:
            return None
        metric = self._prom_metrics.get(name)
        if metric is not None:
            return metric

        defn = METRIC_DEFINITIONS.get(name) or MetricDefinition(
            name, metric_type, f"Dynamic {metric_type}: {name}"
        )
        try:
            if metric_type == "counter":
                metric = _Counter(
                    name, defn.description, list(defn.label_names), registry=self._registry
                )
            elif metric_type == "gauge":
                metric = _Gauge(
                    name, defn.description, list(defn.label_names), registry=self._registry
                )
            else:
                metric = _Histogram(
                    name,
                    defn.description,
                    list(defn.label_names),
                    buckets=LATENCY_BUCKETS,
                    registry=self._registry,
                )
        except Exception as e:
            logger.warning(f"Failed to create Prometheus {metric_type} {name}: {e}")
            return None
        self._prom_metrics[name] = metric
        return metric

    def _mirror(
        self,
        name: str,
        metric_type: str,
        method: str,
        value: float,
        labels: dict[str, str] | None,
    ) -> None:
        metric = self._prom_metric(name, metric_type)
        if metric is None:
            return
        try:
            target = metric.labels(**labels) if labels else metric
            getattr(target, method)(value)
        except Exception as e:
            logger.debug(f"Prometheus {method} failed for {name}: {e}")

    def inc_counter(
        self, name: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        """
        Increment a counter.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")
        key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit_labels(name, key):
                return
            self._counters[name][key] += value
        self._mirror(name, "counter", "inc", value, labels)

    def set_gauge(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit_labels(name, key):
                return
            self._gauges[name][key] = value
        self._mirror(name, "gauge", "set", value, labels)

    def observe_histogram(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit_labels(name, key):
                return
            observations = self._histograms[name][key]
            observations.append(value)
            if len(observations) > self.MAX_OBSERVATIONS:
                del observations[: len(observations) - self.MAX_OBSERVATIONS // 2]
        self._mirror(name, "histogram", "observe", value, labels)

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_to_key(labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._gauges.get(name, {}).get(self._labels_to_key(labels), 0.0)

    def get_metrics(self) -> dict[str, Any]:
        """JSON-serializable snapshot: counters, gauges and histogram summaries."""
        with self._lock:
            counters = {n: dict(v) for n, v in self._counters.items()}
            gauges = {n: dict(v) for n, v in self._gauges.items()}
            histograms: dict[str, dict[str, dict[str, float]]] = {}
            for name, series in self._histograms.items():
                histograms[name] = {
                    key: {
                        "count": len(obs),
                        "sum": sum(obs),
                        "avg": sum(obs) / len(obs),
                        "min": min(obs),
                        "max": max(obs),
                    }
                    for key, obs in series.items()
                    if obs
                }
        return {"counters": counters, "gauges": gauges, "histograms": histograms}

    def reset(self) -> None:
        """Zero the dict-based metrics. Prometheus metrics keep their values."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._label_keys.clear()

    @property
    def prometheus_enabled(self) -> bool:
        return self._enable_prometheus


_global_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector(enable_prometheus: bool = True) -> MetricsCollector:
    """Return the process-wide collector, creating it on first use."""
    global _global_collector
    if _global_collector is None:
        with _collector_lock:
            if _global_collector is None:
                _global_collector = MetricsCollector(enable_prometheus=enable_prometheus)
    return _global_collector


def reset_metrics_collector() -> None:
    """Discard the process-wide collector. Intended for tests."""
    global _global_collector
    with _collector_lock:
        if _global_collector is not None:
            _global_collector.reset()
        _global_collector = None


__all__ = [
    "METRIC_DEFINITIONS",
    "PROMETHEUS_AVAILABLE",
    "MetricDefinition",
    "MetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
]
