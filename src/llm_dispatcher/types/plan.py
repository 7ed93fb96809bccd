# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Plan, tier and classification enums shared across the dispatcher.
"""

from enum import Enum


class UserPlan(str, Enum):
    """Subscription level of the caller, resolved before dispatch."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @property
    def level(self) -> int:
        """Ordering used for model access checks (free < pro < enterprise)."""
        return _PLAN_LEVELS[self]

    @property
    def is_paid(self) -> bool:
        return self is not UserPlan.FREE


_PLAN_LEVELS = {UserPlan.FREE: 0, UserPlan.PRO: 1, UserPlan.ENTERPRISE: 2}


class TaskComplexity(str, Enum):
    """Caller-declared weight of a request, used for tier escalation."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


class TierId(str, Enum):
    """Selectable backend tiers."""

    PRO = "pro"
    FREE = "free"
    FALLBACK = "fallback"


# Quota key for calls answered by the secondary (fallback) provider. It is
# tracked like a tier but never returned by tier selection.
SECONDARY_QUOTA_KEY = "secondary"


class TaskType(str, Enum):
    """Classified kind of work, used for smart routing on paid plans."""

    REASONING = "reasoning"
    DESIGN = "design"
    CODE = "code"
    RESEARCH = "research"
    CHAT = "chat"


class ComplexityClass(str, Enum):
    """Complexity label stored with cached responses."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class RequestPriority(int, Enum):
    """Queue priority (higher value = dispatched first)."""

    LOW = 1
    MEDIUM = 5
    HIGH = 10

    @classmethod
    def from_label(cls, label: "str | int | RequestPriority") -> "RequestPriority":
        """Resolve 'low' / 'medium' / 'high' (or an int value); unknown means MEDIUM."""
        if isinstance(label, RequestPriority):
            return label
        if isinstance(label, int):
            try:
                return cls(label)
            except ValueError:
                return cls.MEDIUM
        return cls.__members__.get(str(label).upper(), cls.MEDIUM)


__all__ = [
    "SECONDARY_QUOTA_KEY",
    "ComplexityClass",
    "RequestPriority",
    "TaskComplexity",
    "TaskType",
    "TierId",
    "UserPlan",
]
