# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request and response types for the dispatcher.

DispatchRequest is a pydantic model so that loosely-typed caller input
('high', 'pro', 'heavy') is validated and coerced once, at the edge.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .plan import (
    ComplexityClass,
    RequestPriority,
    TaskComplexity,
    TierId,
    UserPlan,
)


class DispatchRequest(BaseModel):
    """
    A single text-generation request submitted to the dispatcher.

    Attributes:
        prompt: User prompt text (must not be blank)
        system_prompt: Optional system message sent ahead of the prompt
        complexity: Declared weight; medium/heavy may escalate paid plans to pro
        preferred_tier: Tier the caller would like (ignored for free plans)
        preferred_model: Explicit model id, highest routing precedence
        model: Alias of preferred_model; preferred_model wins when both are set
        plan: Subscription plan of the caller
        user_id: Caller identifier, passed through to providers
        priority: Queue priority ('low' | 'medium' | 'high' or RequestPriority)
        validate_quality: Reject short/refusal responses and retry
        enable_thinking: Ask the provider for step-by-step reasoning
        use_cache: Look up and store the response in the similarity cache
        cache_complexity: Complexity label stored with the cached response
    """

    model_config = ConfigDict(use_enum_values=False, extra="forbid")

    prompt: str
    system_prompt: str | None = None
    complexity: TaskComplexity = TaskComplexity.MEDIUM
    preferred_tier: TierId | None = None
    preferred_model: str | None = None
    model: str | None = None
    plan: UserPlan = UserPlan.FREE
    user_id: str | None = None
    priority: RequestPriority = RequestPriority.MEDIUM
    validate_quality: bool = True
    enable_thinking: bool = False
    use_cache: bool = True
    cache_complexity: ComplexityClass = ComplexityClass.MEDIUM

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("prompt must not be blank")
        return value

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> RequestPriority:
        return RequestPriority.from_label(value)

    @property
    def override_model(self) -> str | None:
        """Explicit caller-supplied model, if any."""
        return self.preferred_model or self.model

    def messages(self) -> list[dict[str, str]]:
        """Chat messages for the provider: optional system message, then the prompt."""
        messages: list[dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.prompt})
        return messages


@dataclass
class DispatchResponse:
    """
    Result of a dispatched request.

    Attributes:
        result: Generated text
        tier: Tier the request was routed to
        model: Model id sent to the primary provider
        attempts: Retry attempts used (0 for cache hits)
        cost: cost_per_request of the tier multiplied by attempts
        duration: Seconds from start of execution to completion
        queue_time: Seconds spent waiting in the queue and for admission
        cached: True when served from the response cache
        provider: "primary", "secondary" or "cache"
    """

    result: str
    tier: TierId
    model: str
    attempts: int
    cost: float
    duration: float
    queue_time: float = 0.0
    cached: bool = False
    provider: str = "primary"
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result,
            "tier": self.tier.value,
            "model": self.model,
            "attempts": self.attempts,
            "cost": self.cost,
            "duration": self.duration,
            "queue_time": self.queue_time,
            "cached": self.cached,
            "provider": self.provider,
            "metadata": dict(self.metadata),
        }


__all__ = ["DispatchRequest", "DispatchResponse"]
