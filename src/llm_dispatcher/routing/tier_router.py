# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Tier routing under subscription-plan policy.

Free plans are pinned to the free tier. Paid plans get their preferred tier
when it is available, are escalated to pro for medium and heavy work, and
otherwise land on free. Daily quotas are counted per tier key and zeroed the
first time the router is consulted on a new UTC date.

Quota counters are in-memory and process-local; a restart starts the day
from zero.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from ..exceptions import QuotaExceeded, TierUnavailableError
from ..types.plan import (
    SECONDARY_QUOTA_KEY,
    TaskComplexity,
    TaskType,
    TierId,
    UserPlan,
)
from .classifier import classify_task
from .models import (
    MODEL_COSTS,
    PAID_DEFAULT_MODELS,
    PAID_MODEL_TABLES,
    FallbackProviderConfig,
    TierConfig,
    can_user_access_model,
    default_tier_table,
    get_tier_model,
)

logger = logging.getLogger(__name__)

QUOTA_KEYS = (
    TierId.PRO.value,
    TierId.FREE.value,
    TierId.FALLBACK.value,
    SECONDARY_QUOTA_KEY,
)


def _today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass
class QuotaUsage:
    """Requests counted per quota key since ``last_reset_date``."""

    counts: dict[str, int] = field(default_factory=lambda: dict.fromkeys(QUOTA_KEYS, 0))
    last_reset_date: date = field(default_factory=lambda: _today())

    def get(self, key: str) -> int:
        return self.counts.get(key, 0)

    def increment(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def zero(self) -> None:
        self.counts = dict.fromkeys(QUOTA_KEYS, 0)


def _quota_key(key: "TierId | str") -> str:
    return key.value if isinstance(key, TierId) else str(key)


class TierRouter:
    """
    Picks a tier and model for each request and tracks daily quota.

    Example:
        >>> router = TierRouter()
        >>> tier = router.select_tier(TaskComplexity.HEAVY, plan=UserPlan.PRO)
        >>> model = router.resolve_model(tier, UserPlan.PRO, "Refactor this function")
    """

    def __init__(
        self,
        tiers: dict[TierId, TierConfig] | None = None,
        fallback_provider: FallbackProviderConfig | None = None,
    ):
        self._tiers: dict[TierId, TierConfig] = dict(tiers or default_tier_table())
        self.fallback_provider = fallback_provider or FallbackProviderConfig()
        self._usage = QuotaUsage()

    def _check_daily_reset(self) -> None:
        today = _today()
        if today != self._usage.last_reset_date:
            logger.info(
                f"Daily quota reset ({self._usage.last_reset_date} -> {today})"
            )
            self._usage.zero()
            self._usage.last_reset_date = today

    def ensure_tier_available(self, tier: TierId) -> TierConfig:
        """
        Return the tier's config if it can take another request.

        Raises:
            TierUnavailableError: If the tier is unknown or disabled
            QuotaExceeded: If the tier's daily cap is used up
        """
        self._check_daily_reset()
        config = self._tiers.get(tier)
        if config is None or not config.enabled:
            raise TierUnavailableError(tier)
        limit = config.max_requests_per_day
        if limit:
            used = self._usage.get(_quota_key(tier))
            if used >= limit:
                raise QuotaExceeded(tier, used, limit)
        return config

    def is_tier_available(self, tier: TierId) -> bool:
        try:
            self.ensure_tier_available(tier)
        except TierUnavailableError:
            return False
        return True

    def select_tier(
        self,
        complexity: TaskComplexity = TaskComplexity.MEDIUM,
        preferred_tier: TierId | None = None,
        plan: UserPlan = UserPlan.FREE,
    ) -> TierId:
        """
        Choose the tier for a request. Never raises.

        Free plans always get the free tier, whatever they asked for.
        """
        if UserPlan(plan) is UserPlan.FREE:
            return TierId.FREE

        if preferred_tier is not None:
            try:
                self.ensure_tier_available(preferred_tier)
                return preferred_tier
            except TierUnavailableError as e:
                logger.warning(f"Preferred tier skipped: {e}")

        if complexity in (TaskComplexity.MEDIUM, TaskComplexity.HEAVY):
            try:
                self.ensure_tier_available(TierId.PRO)
                return TierId.PRO
            except TierUnavailableError as e:
                logger.warning(f"Falling back to free tier: {e}")

        return TierId.FREE

    def select_model_for_paid_user(
        self, task_type: TaskType, plan: UserPlan = UserPlan.PRO
    ) -> str:
        """Smart-routing model for a task type. Any plan below enterprise uses the pro table."""
        table_plan = (
            UserPlan.ENTERPRISE
            if UserPlan(plan) is UserPlan.ENTERPRISE
            else UserPlan.PRO
        )
        return PAID_MODEL_TABLES[table_plan].get(
            task_type, PAID_DEFAULT_MODELS[table_plan]
        )

    def resolve_model(
        self,
        tier: TierId,
        plan: UserPlan,
        prompt: str,
        override: str | None = None,
    ) -> str:
        """
        Model id for a request.

        Precedence: explicit override, then smart routing for paid plans,
        then the tier's default model.
        """
        if override:
            return override

        plan = UserPlan(plan)
        if plan.is_paid:
            task_type = classify_task(prompt)
            model = self.select_model_for_paid_user(task_type, plan)
            if model in MODEL_COSTS and not can_user_access_model(plan, model):
                model = get_tier_model(plan).primary
            logger.debug(f"Smart routing: {task_type.value} -> {model}")
            return model

        config = self._tiers.get(tier)
        if config is None:
            raise TierUnavailableError(tier)
        return config.default_model

    def track_usage(self, key: "TierId | str") -> int:
        """Count one provider call against ``key``. Returns the new count."""
        self._check_daily_reset()
        return self._usage.increment(_quota_key(key))

    def get_tier_config(self, tier: TierId) -> TierConfig | None:
        return self._tiers.get(tier)

    def update_tier_config(self, tier: TierId, **updates: Any) -> TierConfig:
        """
        Apply a runtime override to a tier.

        Raises:
            TierUnavailableError: If the tier is not in the table
        """
        existing = self._tiers.get(tier)
        if existing is None:
            raise TierUnavailableError(tier)
        updated = existing.model_validate(
            {**existing.model_dump(), **updates}
        )
        self._tiers[tier] = updated
        logger.info(f"Tier {tier.value} updated: {updates}")
        return updated

    def reset_quota(self) -> None:
        """Zero every quota counter without changing the reset date."""
        self._usage.zero()

    def get_usage_stats(self) -> dict[str, Any]:
        self._check_daily_reset()
        return {
            "date": self._usage.last_reset_date.isoformat(),
            "usage": dict(self._usage.counts),
            "tiers": {
                tier.value: config.model_dump(mode="json")
                for tier, config in self._tiers.items()
            },
        }


__all__ = ["QUOTA_KEYS", "QuotaUsage", "TierRouter"]
