# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions and constants."""

from .plan import (
    SECONDARY_QUOTA_KEY,
    ComplexityClass,
    RequestPriority,
    TaskComplexity,
    TaskType,
    TierId,
    UserPlan,
)
from .queue import QueuedTask
from .request import DispatchRequest, DispatchResponse
from .stats import UsageStats

__all__ = [
    "SECONDARY_QUOTA_KEY",
    "ComplexityClass",
    # Requests
    "DispatchRequest",
    "DispatchResponse",
    # Queue
    "QueuedTask",
    "RequestPriority",
    "TaskComplexity",
    "TaskType",
    # Plans and tiers
    "TierId",
    # Stats
    "UsageStats",
    "UserPlan",
]
