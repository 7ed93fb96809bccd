# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Tier selection, model catalogue and task classification."""

from .classifier import classify_task
from .models import (
    DEFAULT_SECONDARY_MODEL,
    MODEL_COSTS,
    PAID_DEFAULT_MODELS,
    PAID_MODEL_TABLES,
    FallbackProviderConfig,
    ModelCost,
    ModelSelection,
    TierConfig,
    can_user_access_model,
    default_tier_table,
    get_fallback_chain,
    get_tier_model,
)
from .tier_router import QUOTA_KEYS, QuotaUsage, TierRouter

__all__ = [
    "DEFAULT_SECONDARY_MODEL",
    "MODEL_COSTS",
    "PAID_DEFAULT_MODELS",
    "PAID_MODEL_TABLES",
    "QUOTA_KEYS",
    "FallbackProviderConfig",
    "ModelCost",
    "ModelSelection",
    "QuotaUsage",
    "TierConfig",
    "TierRouter",
    "can_user_access_model",
    "classify_task",
    "default_tier_table",
    "get_fallback_chain",
    "get_tier_model",
]
