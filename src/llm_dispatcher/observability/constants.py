# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric names reported by the dispatcher.

All names carry the ``llm_dispatch_`` prefix. Counters end with ``_total``
and durations with ``_seconds``.

Labels are restricted to small closed sets: ``tier`` (pro, free, fallback),
``provider`` (primary, secondary, cache) and ``reason`` (rate_limit,
retries_exhausted, error). Never label by user id, model override or prompt.
"""

METRIC_PREFIX = "llm_dispatch"

# Requests
REQUESTS_SCHEDULED_TOTAL = f"{METRIC_PREFIX}_requests_scheduled_total"
"""Requests accepted onto the dispatch queue."""

REQUESTS_COMPLETED_TOTAL = f"{METRIC_PREFIX}_requests_completed_total"
"""Requests that produced a response."""

REQUESTS_FAILED_TOTAL = f"{METRIC_PREFIX}_requests_failed_total"
"""Requests that ended in an error delivered to the caller."""

RETRY_ATTEMPTS_TOTAL = f"{METRIC_PREFIX}_retry_attempts_total"
"""Provider attempts made, by provider side."""

# Cache
CACHE_HITS_TOTAL = f"{METRIC_PREFIX}_cache_hits_total"
CACHE_MISSES_TOTAL = f"{METRIC_PREFIX}_cache_misses_total"
CACHE_EVICTIONS_TOTAL = f"{METRIC_PREFIX}_cache_evictions_total"

# Gauges
QUEUE_DEPTH = f"{METRIC_PREFIX}_queue_depth"
"""Tasks waiting in the dispatch queue."""

ACTIVE_REQUESTS = f"{METRIC_PREFIX}_active_requests"
"""Requests holding a rate limiter slot."""

# Histograms
REQUEST_LATENCY_SECONDS = f"{METRIC_PREFIX}_request_latency_seconds"
"""Execution time of a request, excluding queue wait."""

LATENCY_BUCKETS = [0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]

__all__ = [
    "ACTIVE_REQUESTS",
    "CACHE_EVICTIONS_TOTAL",
    "CACHE_HITS_TOTAL",
    "CACHE_MISSES_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_PREFIX",
    "QUEUE_DEPTH",
    "REQUESTS_COMPLETED_TOTAL",
    "REQUESTS_FAILED_TOTAL",
    "REQUESTS_SCHEDULED_TOTAL",
    "REQUEST_LATENCY_SECONDS",
    "RETRY_ATTEMPTS_TOTAL",
]
