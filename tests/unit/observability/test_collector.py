# SPDX-License-Identifier: Apache-2.0
"""
Unit tests for the observability collector module.

Tests cover:
- MetricsCollector: counters, gauges and histograms kept in dicts
- Label cardinality protection
- Singleton pattern: get_metrics_collector, reset_metrics_collector
- Prometheus mirroring when prometheus_client is installed
"""

from __future__ import annotations

import threading

import pytest

from llm_dispatcher.observability import (
    CACHE_HITS_TOTAL,
    METRIC_DEFINITIONS,
    METRIC_PREFIX,
    PROMETHEUS_AVAILABLE,
    QUEUE_DEPTH,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_COMPLETED_TOTAL,
    MetricsCollector,
    get_metrics_collector,
    reset_metrics_collector,
)


@pytest.fixture
def collector() -> MetricsCollector:
    return MetricsCollector(enable_prometheus=False)


class TestMetricDefinitions:
    """Test the pre-declared metric table."""

    def test_all_names_prefixed(self) -> None:
        for name in METRIC_DEFINITIONS:
            assert name.startswith(f"{METRIC_PREFIX}_")

    def test_counter_names_end_with_total(self) -> None:
        for name, defn in METRIC_DEFINITIONS.items():
            if defn.metric_type == "counter":
                assert name.endswith("_total")

    def test_completed_labels(self) -> None:
        defn = METRIC_DEFINITIONS[REQUESTS_COMPLETED_TOTAL]
        assert defn.label_names == ("tier", "provider")


class TestCounters:
    """Test counter operations."""

    def test_inc_default(self, collector: MetricsCollector) -> None:
        collector.inc_counter(CACHE_HITS_TOTAL)
        collector.inc_counter(CACHE_HITS_TOTAL)
        assert collector.get_counter(CACHE_HITS_TOTAL) == 2

    def test_inc_by_value_with_labels(self, collector: MetricsCollector) -> None:
        labels = {"tier": "pro", "provider": "secondary"}
        collector.inc_counter(REQUESTS_COMPLETED_TOTAL, 3, labels)
        assert collector.get_counter(REQUESTS_COMPLETED_TOTAL, labels) == 3
        assert collector.get_counter(REQUESTS_COMPLETED_TOTAL) == 0

    def test_label_order_irrelevant(self, collector: MetricsCollector) -> None:
        collector.inc_counter(
            REQUESTS_COMPLETED_TOTAL, labels={"tier": "free", "provider": "primary"}
        )
        assert (
            collector.get_counter(
                REQUESTS_COMPLETED_TOTAL, {"provider": "primary", "tier": "free"}
            )
            == 1
        )

    def test_negative_increment_rejected(self, collector: MetricsCollector) -> None:
        with pytest.raises(ValueError):
            collector.inc_counter(CACHE_HITS_TOTAL, -1)

    def test_unknown_counter_is_zero(self, collector: MetricsCollector) -> None:
        assert collector.get_counter("never_seen_total") == 0

    def test_concurrent_increments(self, collector: MetricsCollector) -> None:
        def work() -> None:
            for _ in range(1000):
                collector.inc_counter(CACHE_HITS_TOTAL)

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert collector.get_counter(CACHE_HITS_TOTAL) == 4000


class TestGaugesAndHistograms:
    """Test gauge and histogram operations."""

    def test_gauge_overwrites(self, collector: MetricsCollector) -> None:
        collector.set_gauge(QUEUE_DEPTH, 4)
        collector.set_gauge(QUEUE_DEPTH, 1)
        assert collector.get_gauge(QUEUE_DEPTH) == 1

    def test_histogram_summary(self, collector: MetricsCollector) -> None:
        for value in (0.1, 0.3, 0.2):
            collector.observe_histogram(REQUEST_LATENCY_SECONDS, value, {"tier": "pro"})

        summary = collector.get_metrics()["histograms"][REQUEST_LATENCY_SECONDS][
            "tier=pro"
        ]
        assert summary["count"] == 3
        assert summary["sum"] == pytest.approx(0.6)
        assert summary["avg"] == pytest.approx(0.2)
        assert summary["min"] == 0.1
        assert summary["max"] == 0.3

    def test_histogram_observations_bounded(self, collector: MetricsCollector) -> None:
        collector.MAX_OBSERVATIONS = 10
        for i in range(25):
            collector.observe_histogram(REQUEST_LATENCY_SECONDS, float(i))
        summary = collector.get_metrics()["histograms"][REQUEST_LATENCY_SECONDS][""]
        assert summary["count"] <= 10
        assert summary["max"] == 24.0


class TestLabelCardinality:
    """Test label combination limits."""

    def test_new_combinations_dropped_at_limit(self, collector: MetricsCollector) -> None:
        collector.MAX_LABEL_COMBINATIONS = 2
        for reason in ("a", "b", "c"):
            collector.inc_counter("failures_total", labels={"reason": reason})

        assert collector.get_counter("failures_total", {"reason": "a"}) == 1
        assert collector.get_counter("failures_total", {"reason": "b"}) == 1
        assert collector.get_counter("failures_total", {"reason": "c"}) == 0

    def test_known_combination_still_counted(self, collector: MetricsCollector) -> None:
        collector.MAX_LABEL_COMBINATIONS = 1
        collector.inc_counter("failures_total", labels={"reason": "a"})
        collector.inc_counter("failures_total", labels={"reason": "b"})
        collector.inc_counter("failures_total", labels={"reason": "a"})
        assert collector.get_counter("failures_total", {"reason": "a"}) == 2


class TestSnapshotAndReset:
    """Test get_metrics and reset."""

    def test_snapshot_shape(self, collector: MetricsCollector) -> None:
        collector.inc_counter(CACHE_HITS_TOTAL)
        collector.set_gauge(QUEUE_DEPTH, 2)
        metrics = collector.get_metrics()
        assert metrics["counters"] == {CACHE_HITS_TOTAL: {"": 1}}
        assert metrics["gauges"] == {QUEUE_DEPTH: {"": 2}}
        assert metrics["histograms"] == {}

    def test_reset(self, collector: MetricsCollector) -> None:
        collector.inc_counter(CACHE_HITS_TOTAL)
        collector.reset()
        assert collector.get_counter(CACHE_HITS_TOTAL) == 0
        assert collector.get_metrics()["counters"] == {}

    def test_prometheus_disabled(self, collector: MetricsCollector) -> None:
        assert not collector.prometheus_enabled


class TestSingleton:
    """Test the process-wide collector."""

    def setup_method(self) -> None:
        reset_metrics_collector()

    def teardown_method(self) -> None:
        reset_metrics_collector()

    def test_same_instance(self) -> None:
        assert get_metrics_collector() is get_metrics_collector()

    def test_reset_discards_instance(self) -> None:
        first = get_metrics_collector(enable_prometheus=False)
        first.inc_counter(CACHE_HITS_TOTAL)
        reset_metrics_collector()
        second = get_metrics_collector(enable_prometheus=False)
        assert second is not first
        assert second.get_counter(CACHE_HITS_TOTAL) == 0


@pytest.mark.skipif(not PROMETHEUS_AVAILABLE, reason="prometheus_client not installed")
class TestPrometheusMirroring:
    """Test that updates reach a Prometheus registry."""

    @pytest.fixture
    def registry(self):
        from prometheus_client import CollectorRegistry

        return CollectorRegistry()

    def test_counter_mirrored(self, registry) -> None:
        collector = MetricsCollector(registry=registry)
        labels = {"tier": "free", "provider": "primary"}
        collector.inc_counter(REQUESTS_COMPLETED_TOTAL, labels=labels)
        collector.inc_counter(REQUESTS_COMPLETED_TOTAL, labels=labels)

        assert registry.get_sample_value(REQUESTS_COMPLETED_TOTAL, labels) == 2.0

    def test_gauge_mirrored(self, registry) -> None:
        collector = MetricsCollector(registry=registry)
        collector.set_gauge(QUEUE_DEPTH, 7)
        assert registry.get_sample_value(QUEUE_DEPTH) == 7.0

    def test_histogram_mirrored(self, registry) -> None:
        collector = MetricsCollector(registry=registry)
        collector.observe_histogram(REQUEST_LATENCY_SECONDS, 0.3, {"tier": "pro"})
        count = registry.get_sample_value(
            f"{REQUEST_LATENCY_SECONDS}_count", {"tier": "pro"}
        )
        assert count == 1.0

    def test_wrong_labels_do_not_break_dict_metrics(self, registry) -> None:
        collector = MetricsCollector(registry=registry)
        collector.inc_counter(REQUESTS_COMPLETED_TOTAL, labels={"tier": "pro"})
        assert collector.get_counter(REQUESTS_COMPLETED_TOTAL, {"tier": "pro"}) == 1
