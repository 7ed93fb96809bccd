"""Unit tests for the model catalogue and plan-based model access."""

import pytest

from llm_dispatcher.routing import (
    MODEL_COSTS,
    PAID_MODEL_TABLES,
    can_user_access_model,
    get_fallback_chain,
    get_tier_model,
)
from llm_dispatcher.types import UserPlan

FREE_MODELS = {"qwen-coder", "openai-fast", "gemini-fast", "mistral", "openai", "grok"}
ENTERPRISE_MODELS = {"openai-large", "gemini-large", "claude", "claude-large"}


class TestModelAccess:
    """Tests for can_user_access_model."""

    @pytest.mark.parametrize("model", sorted(FREE_MODELS))
    def test_free_models_open_to_all(self, model):
        for plan in UserPlan:
            assert can_user_access_model(plan, model)

    @pytest.mark.parametrize("model", sorted(ENTERPRISE_MODELS))
    def test_enterprise_models_restricted(self, model):
        assert not can_user_access_model(UserPlan.FREE, model)
        assert not can_user_access_model(UserPlan.PRO, model)
        assert can_user_access_model(UserPlan.ENTERPRISE, model)

    def test_pro_model(self):
        assert not can_user_access_model(UserPlan.FREE, "deepseek")
        assert can_user_access_model(UserPlan.PRO, "deepseek")

    def test_unknown_model_denied(self):
        assert not can_user_access_model(UserPlan.ENTERPRISE, "gpt-99")

    def test_free_plan_never_reaches_paid_models(self):
        for model, cost in MODEL_COSTS.items():
            if cost.min_plan is not UserPlan.FREE:
                assert not can_user_access_model(UserPlan.FREE, model)

    def test_pro_table_has_no_enterprise_models(self):
        for model in PAID_MODEL_TABLES[UserPlan.PRO].values():
            assert can_user_access_model(UserPlan.PRO, model)


class TestGetTierModel:
    """Tests for get_tier_model."""

    def test_free(self):
        assert get_tier_model(UserPlan.FREE).primary == "gemini-fast"
        selection = get_tier_model(UserPlan.FREE, "code")
        assert selection.primary == "qwen-coder"
        assert selection.fallbacks == ["openai-fast", "mistral"]
        assert selection.secondary_fallback

    def test_pro(self):
        assert get_tier_model(UserPlan.PRO).primary == "claude-fast"
        assert get_tier_model(UserPlan.PRO, "reasoning").primary == "deepseek"

    def test_enterprise(self):
        assert get_tier_model(UserPlan.ENTERPRISE).primary == "claude"
        assert get_tier_model(UserPlan.ENTERPRISE, "creative").primary == "gemini-large"

    @pytest.mark.parametrize("plan", list(UserPlan))
    def test_selection_accessible_to_plan(self, plan):
        selection = get_tier_model(plan)
        for model in [selection.primary, *selection.fallbacks]:
            assert can_user_access_model(plan, model)


class TestFallbackChain:
    """Tests for get_fallback_chain."""

    def test_sorted_cheapest_first(self):
        chain = get_fallback_chain("gemini-fast", UserPlan.FREE)
        totals = [MODEL_COSTS[m].total for m in chain]
        assert totals == sorted(totals)
        assert chain[0] == "qwen-coder"

    def test_excludes_primary_and_inaccessible(self):
        chain = get_fallback_chain("gemini-fast", UserPlan.FREE)
        assert "gemini-fast" not in chain
        assert set(chain) == FREE_MODELS - {"gemini-fast"}

    def test_enterprise_sees_everything_else(self):
        chain = get_fallback_chain("claude", UserPlan.ENTERPRISE)
        assert len(chain) == len(MODEL_COSTS) - 1

    def test_unknown_model(self):
        assert get_fallback_chain("gpt-99", UserPlan.PRO) == []
