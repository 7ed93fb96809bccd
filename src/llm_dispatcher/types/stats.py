# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Aggregate usage statistics for the dispatcher.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class UsageStats:
    """Process-wide request counters, reset only by an explicit daily reset."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_latency: float = 0.0
    cost_today: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def cache_hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total > 0 else 0.0

    def record_success(self, duration: float, cost: float) -> None:
        """Count a success and fold its latency into the running average."""
        self.successful_requests += 1
        n = self.successful_requests
        self.average_latency = (self.average_latency * (n - 1) + duration) / n
        self.cost_today += cost

    def record_failure(self) -> None:
        self.failed_requests += 1

    def reset(self) -> None:
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.average_latency = 0.0
        self.cost_today = 0.0
        self.cache_hits = 0
        self.cache_misses = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["cache_hit_rate"] = self.cache_hit_rate
        return data


__all__ = ["UsageStats"]
