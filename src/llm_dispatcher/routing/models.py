# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Tier table, model catalogue and plan-based model access.

Tier entries are frozen pydantic models; runtime overrides produce a new
entry through ``model_copy(update=...)`` rather than mutating shared state.
"""

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from ..types.plan import TaskType, TierId, UserPlan

logger = logging.getLogger(__name__)

DEFAULT_SECONDARY_MODEL = "llama-3.3-70b-versatile"


class TierConfig(BaseModel):
    """
    A selectable backend configuration.

    Attributes:
        tier: Tier identifier
        endpoint: Opaque reference to the provider endpoint for this tier
        default_model: Model used when neither the caller nor smart routing chose one
        cost_per_request: Estimated cost in dollars per provider attempt
        max_requests_per_day: Daily request cap, None for uncapped
        enabled: Disabled tiers are never selected
    """

    model_config = ConfigDict(frozen=True)

    tier: TierId
    endpoint: str
    default_model: str
    cost_per_request: float = Field(default=0.0, ge=0.0)
    max_requests_per_day: int | None = Field(default=None, ge=0)
    enabled: bool = True


class FallbackProviderConfig(BaseModel):
    """Secondary provider used on even-numbered retry attempts."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = "https://api.groq.com/openai/v1/chat/completions"
    model: str = DEFAULT_SECONDARY_MODEL
    enabled: bool = True


def default_tier_table(
    primary_enabled: bool = True, fallback_enabled: bool = True
) -> dict[TierId, TierConfig]:
    """
    Build the standard tier table.

    Args:
        primary_enabled: Whether the primary gateway (pro and free tiers) is configured
        fallback_enabled: Whether the hosted fallback endpoint is configured
    """
    return {
        TierId.PRO: TierConfig(
            tier=TierId.PRO,
            endpoint="https://gen.pollinations.ai/v1/chat/completions",
            default_model="claude",
            cost_per_request=0.001,
            enabled=primary_enabled,
        ),
        TierId.FREE: TierConfig(
            tier=TierId.FREE,
            endpoint="https://gen.pollinations.ai/v1/chat/completions",
            default_model="gemini",
            cost_per_request=0.0005,
            max_requests_per_day=500,
            enabled=primary_enabled,
        ),
        TierId.FALLBACK: TierConfig(
            tier=TierId.FALLBACK,
            endpoint="https://api-inference.huggingface.co/models/mistralai/Mistral-7B-Instruct-v0.2",
            default_model="mistral-7b",
            cost_per_request=0.0,
            enabled=fallback_enabled,
        ),
    }


@dataclass(frozen=True)
class ModelCost:
    """Price per million tokens and the lowest plan allowed to use the model."""

    input: float
    output: float
    min_plan: UserPlan

    @property
    def total(self) -> float:
        return self.input + self.output


MODEL_COSTS: dict[str, ModelCost] = {
    # Free
    "qwen-coder": ModelCost(0.06, 0.22, UserPlan.FREE),
    "openai-fast": ModelCost(0.06, 0.44, UserPlan.FREE),
    "gemini-fast": ModelCost(0.10, 0.40, UserPlan.FREE),
    "mistral": ModelCost(0.15, 0.35, UserPlan.FREE),
    "openai": ModelCost(0.15, 0.60, UserPlan.FREE),
    "grok": ModelCost(0.20, 0.50, UserPlan.FREE),
    # Pro
    "gemini-search": ModelCost(0.50, 3.00, UserPlan.PRO),
    "deepseek": ModelCost(0.57, 1.68, UserPlan.PRO),
    "kimi-k2-thinking": ModelCost(0.60, 2.50, UserPlan.PRO),
    "claude-fast": ModelCost(1.00, 5.00, UserPlan.PRO),
    "perplexity-fast": ModelCost(1.00, 1.00, UserPlan.PRO),
    "perplexity-reasoning": ModelCost(2.00, 8.00, UserPlan.PRO),
    # Enterprise
    "openai-large": ModelCost(1.75, 14.00, UserPlan.ENTERPRISE),
    "gemini-large": ModelCost(2.00, 12.00, UserPlan.ENTERPRISE),
    "claude": ModelCost(3.00, 15.00, UserPlan.ENTERPRISE),
    "claude-large": ModelCost(5.00, 25.00, UserPlan.ENTERPRISE),
}

# Smart-routing tables for paid plans. Pro never maps to an enterprise model.
PAID_MODEL_TABLES: dict[UserPlan, dict[TaskType, str]] = {
    UserPlan.PRO: {
        TaskType.REASONING: "deepseek",
        TaskType.DESIGN: "gemini-fast",
        TaskType.CODE: "qwen-coder",
        TaskType.RESEARCH: "perplexity-fast",
        TaskType.CHAT: "openai",
    },
    UserPlan.ENTERPRISE: {
        TaskType.REASONING: "claude",
        TaskType.DESIGN: "gemini-large",
        TaskType.CODE: "qwen-coder",
        TaskType.RESEARCH: "perplexity-reasoning",
        TaskType.CHAT: "openai-large",
    },
}

PAID_DEFAULT_MODELS: dict[UserPlan, str] = {
    UserPlan.PRO: "deepseek",
    UserPlan.ENTERPRISE: "claude",
}


def can_user_access_model(plan: UserPlan, model: str) -> bool:
    """Return True if ``plan`` may use ``model``. Unknown models are denied."""
    cost = MODEL_COSTS.get(model)
    if cost is None:
        logger.warning(f"Unknown model: {model}")
        return False
    if UserPlan(plan).level < cost.min_plan.level:
        logger.warning(
            f"Access denied: {UserPlan(plan).value} plan cannot use {model} "
            f"(requires {cost.min_plan.value})"
        )
        return False
    return True


@dataclass
class ModelSelection:
    """
    Models chosen for a plan and kind of work.

    Attributes:
        primary: Model to try first
        fallbacks: Same-plan alternatives, in preference order
        secondary_fallback: Whether the secondary provider may be used
    """

    primary: str
    fallbacks: list[str] = field(default_factory=list)
    secondary_fallback: bool = True


def get_tier_model(plan: UserPlan, task_kind: str = "general") -> ModelSelection:
    """
    Pick the plan's model for a kind of work.

    ``task_kind`` is a free-form label; "code", "reasoning" and "creative"
    change the choice, anything else gets the plan default.
    """
    plan = UserPlan(plan)
    if plan is UserPlan.ENTERPRISE:
        return ModelSelection(
            primary="gemini-large" if task_kind == "creative" else "claude",
            fallbacks=["openai-large", "claude-fast", "gemini-search"],
        )
    if plan is UserPlan.PRO:
        return ModelSelection(
            primary="deepseek" if task_kind == "reasoning" else "claude-fast",
            fallbacks=["gemini-search", "qwen-coder", "gemini-fast"],
        )
    return ModelSelection(
        primary="qwen-coder" if task_kind == "code" else "gemini-fast",
        fallbacks=["openai-fast", "mistral"],
    )


def get_fallback_chain(model: str, plan: UserPlan) -> list[str]:
    """Other models ``plan`` may use, cheapest first. Empty for unknown models."""
    if model not in MODEL_COSTS:
        return []
    accessible = [
        name
        for name, cost in MODEL_COSTS.items()
        if name != model and UserPlan(plan).level >= cost.min_plan.level
    ]
    return sorted(accessible, key=lambda name: MODEL_COSTS[name].total)


__all__ = [
    "DEFAULT_SECONDARY_MODEL",
    "MODEL_COSTS",
    "PAID_DEFAULT_MODELS",
    "PAID_MODEL_TABLES",
    "FallbackProviderConfig",
    "ModelCost",
    "ModelSelection",
    "TierConfig",
    "can_user_access_model",
    "default_tier_table",
    "get_fallback_chain",
    "get_tier_model",
]
