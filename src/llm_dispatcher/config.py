# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Configuration for the LLM dispatcher.

All durations are in seconds. Each config validates itself on construction
and raises ValueError for out-of-range values.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any

from .types.plan import UserPlan

# Response cache capacity per subscription plan
CACHE_LIMITS: dict[UserPlan, int] = {
    UserPlan.FREE: 50,
    UserPlan.PRO: 150,
    UserPlan.ENTERPRISE: 300,
}


@dataclass
class RateLimitConfig:
    """
    Configuration for the sliding-window rate limiter.

    A request is admitted when fewer than
    ``max_requests_per_second + burst_allowance`` requests were admitted in
    the last second and fewer than ``max_concurrent`` are in flight.
    """

    max_requests_per_second: int = 8
    """Steady-state requests admitted per rolling second."""

    max_concurrent: int = 6
    """Maximum requests in flight at once."""

    cooldown: float = 1.0
    """Cooldown period in seconds; admission is polled every cooldown / 10."""

    burst_allowance: int = 3
    """Extra requests tolerated inside one window on top of the steady rate."""

    admission_timeout: float = 30.0
    """Seconds a caller may wait for a slot before RateLimitTimeout."""

    def __post_init__(self) -> None:
        if self.max_requests_per_second < 1:
            raise ValueError("max_requests_per_second must be at least 1")
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.cooldown <= 0:
            raise ValueError("cooldown must be positive")
        if self.burst_allowance < 0:
            raise ValueError("burst_allowance must not be negative")
        if self.admission_timeout <= 0:
            raise ValueError("admission_timeout must be positive")

    @property
    def window_capacity(self) -> int:
        """Requests admissible within one rolling second."""
        return self.max_requests_per_second + self.burst_allowance

    @property
    def poll_interval(self) -> float:
        return self.cooldown / 10


@dataclass
class RetryConfig:
    """
    Configuration for the retry engine.

    delay(attempt) = min(initial_delay * backoff_multiplier ** (attempt - 1)
                         + uniform(0, jitter), max_delay)
    """

    max_retries: int = 3
    """Total attempts, including the first one."""

    initial_delay: float = 1.0
    """Delay after the first failed attempt, in seconds."""

    max_delay: float = 10.0
    """Upper bound for any single delay, in seconds."""

    backoff_multiplier: float = 2.0
    """Growth factor between consecutive delays."""

    jitter: float = 0.1
    """Maximum random addition to each delay, in seconds."""

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be at least 1.0")
        if self.jitter < 0:
            raise ValueError("jitter must not be negative")

    def worst_case_sleep(self) -> float:
        """Upper bound of total backoff sleep across all attempts.

        The engine bounds attempts, not elapsed time; callers should expect
        up to this much sleeping on top of the provider calls themselves.
        """
        total = 0.0
        for attempt in range(1, self.max_retries):
            base = self.initial_delay * self.backoff_multiplier ** (attempt - 1)
            total += min(base + self.jitter, self.max_delay)
        return total


@dataclass
class CacheConfig:
    """Configuration for the similarity response cache."""

    ttl: float = 1800.0
    """Entry lifetime in seconds, measured from insertion."""

    similarity_threshold: float = 0.7
    """Minimum Jaccard similarity for a near-duplicate hit."""

    plan: UserPlan = UserPlan.FREE
    """Plan whose capacity limit applies (see CACHE_LIMITS)."""

    max_size: int | None = None
    """Explicit capacity; overrides the plan limit when set."""

    cleanup_interval: float | None = None
    """Seconds between background purges of expired entries (None disables)."""

    def __post_init__(self) -> None:
        if self.ttl <= 0:
            raise ValueError("ttl must be positive")
        if not 0 < self.similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be between 0 and 1.0")
        if self.max_size is not None and self.max_size < 1:
            raise ValueError("max_size must be at least 1")
        if self.cleanup_interval is not None and self.cleanup_interval <= 0:
            raise ValueError("cleanup_interval must be positive")

    @property
    def capacity(self) -> int:
        if self.max_size is not None:
            return self.max_size
        return CACHE_LIMITS[UserPlan(self.plan)]


@dataclass
class DispatcherConfig:
    """
    Top-level dispatcher configuration.

    The defaults of the nested configs are the component defaults;
    ``DispatcherConfig.default()`` returns the tighter profile used by the
    dispatcher in production.
    """

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    enable_cache: bool = True
    """Consult and fill the response cache for requests with use_cache=True."""

    max_workers: int = 1
    """Dispatch workers draining the queue. One worker processes tasks strictly
    one after another in priority order."""

    metrics_enabled: bool = False
    """Report counters and gauges to the metrics collector."""

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.max_workers > self.rate_limit.max_concurrent:
            raise ValueError("max_workers must not exceed rate_limit.max_concurrent")

    @classmethod
    def default(cls, **overrides: Any) -> "DispatcherConfig":
        """Production profile: 5 rps + 2 burst, 3 concurrent, 3 attempts, 200ms jitter."""
        config = cls(
            rate_limit=RateLimitConfig(
                max_requests_per_second=5,
                max_concurrent=3,
                cooldown=1.0,
                burst_allowance=2,
            ),
            retry=RetryConfig(
                max_retries=3,
                initial_delay=1.0,
                max_delay=10.0,
                backoff_multiplier=2.0,
                jitter=0.2,
            ),
        )
        return replace(config, **overrides) if overrides else config


def apply_updates(config: Any, updates: dict[str, Any]) -> Any:
    """Return a validated copy of a config dataclass with ``updates`` applied.

    Raises:
        ValueError: If an update names an unknown field or fails validation
    """
    known = {f.name for f in fields(config)}
    unknown = set(updates) - known
    if unknown:
        raise ValueError(f"Unknown config fields: {', '.join(sorted(unknown))}")
    return replace(config, **updates)


__all__ = [
    "CACHE_LIMITS",
    "CacheConfig",
    "DispatcherConfig",
    "RateLimitConfig",
    "RetryConfig",
    "apply_updates",
]
