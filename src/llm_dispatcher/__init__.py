# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""LLM Dispatcher - rate-limited, tier-routed, retrying access to LLM providers.

The dispatcher sits between application code and text-generation providers.
It keeps callers inside provider rate limits, routes each request to a
cost-appropriate tier under subscription-plan policy, retries failed or
low-quality responses while alternating between a primary and a fallback
provider, and answers near-duplicate prompts from a similarity cache.

Key Features:
    - Sliding-window rate limiting with burst allowance and concurrency cap
    - Priority queue (FIFO within a priority)
    - Tier routing with per-tier daily quotas and smart model routing
    - Exponential backoff with jitter and primary/secondary alternation
    - Jaccard-similarity response cache with age-based eviction

Quick Start:
    >>> from llm_dispatcher import Dispatcher, UserPlan
    >>>
    >>> class Gateway:
    ...     name = "gateway"
    ...     async def invoke(self, messages, model_id, options) -> str:
    ...         ...
    >>>
    >>> async with Dispatcher(primary=Gateway()) as dispatcher:
    ...     response = await dispatcher.call("Draft a release note", plan=UserPlan.PRO)

Main Exports:
    - Dispatcher: Request dispatcher
    - DispatcherConfig, RateLimitConfig, RetryConfig, CacheConfig: Configuration
    - RateLimiter, RetryEngine, TierRouter, ResponseCache: Components
    - ProviderProtocol: Protocol for provider adapters

Prometheus export requires the 'metrics' extra:
    pip install llm-dispatcher[metrics]

Version: 1.0.0
"""

__version__ = "1.0.0"

from .cache import ResponseCache
from .config import CacheConfig, DispatcherConfig, RateLimitConfig, RetryConfig
from .dispatcher import Dispatcher, validate_response
from .exceptions import (
    ConfigurationError,
    DispatcherError,
    DispatcherNotRunningError,
    ProviderTransientError,
    QuotaExceeded,
    RateLimitTimeout,
    RetriesExhausted,
    TierUnavailableError,
    ValidationFailure,
)
from .limiter import RateLimiter
from .protocols import ProviderProtocol
from .retry import AlternatingCall, RetryEngine
from .routing import TierConfig, TierRouter, classify_task
from .types import (
    DispatchRequest,
    DispatchResponse,
    RequestPriority,
    TaskComplexity,
    TaskType,
    TierId,
    UserPlan,
)

__all__ = [
    "AlternatingCall",
    "CacheConfig",
    "ConfigurationError",
    "DispatchRequest",
    "DispatchResponse",
    "Dispatcher",
    "DispatcherConfig",
    "DispatcherError",
    "DispatcherNotRunningError",
    "ProviderProtocol",
    "ProviderTransientError",
    "QuotaExceeded",
    "RateLimitConfig",
    "RateLimitTimeout",
    "RateLimiter",
    "RequestPriority",
    "ResponseCache",
    "RetriesExhausted",
    "RetryConfig",
    "RetryEngine",
    "TaskComplexity",
    "TaskType",
    "TierConfig",
    "TierId",
    "TierRouter",
    "UserPlan",
    "ValidationFailure",
    "__version__",
    "classify_task",
    "validate_response",
]
