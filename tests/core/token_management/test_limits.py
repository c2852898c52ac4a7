"""Tests for model limit resolution and effective context."""

import pytest

from docbudget.core.token_management import (
    DEFAULT_MODEL_LIMITS,
    BudgetingMode,
    ModelContextLimits,
    get_effective_context,
    get_model_limits,
)


class TestModelContextLimits:
    """Tests for ModelContextLimits validation."""

    def test_rejects_non_positive_window(self):
        """context_window must be positive."""
        with pytest.raises(ValueError, match="context_window"):
            ModelContextLimits(context_window=0, max_output_tokens=10)

    def test_rejects_reservation_beyond_window(self):
        """COMBINED reservations cannot exceed the window."""
        with pytest.raises(ValueError, match="output_reserved"):
            ModelContextLimits(
                context_window=100,
                max_output_tokens=10,
                budgeting_mode=BudgetingMode.COMBINED,
                output_reserved=200,
            )


class TestGetModelLimits:
    """Tests for get_model_limits resolution order."""

    def test_exact_model_match(self):
        """Known models resolve to their registry entry."""
        limits = get_model_limits("google-ai", "gemini-1.5-pro")
        assert limits == DEFAULT_MODEL_LIMITS["google-ai"]["gemini-1.5-pro"]
        assert limits.context_window == 2_097_152

    def test_case_insensitive(self):
        """Provider and model lookups ignore case."""
        assert get_model_limits("Google-AI", "Gemini-1.5-Pro").context_window == 2_097_152

    def test_provider_default(self):
        """Unknown models use the provider default."""
        limits = get_model_limits("azure-openai", "some-new-model")
        assert limits == DEFAULT_MODEL_LIMITS["azure-openai"]["_default"]

    def test_global_fallback(self):
        """Unknown providers use the global fallback."""
        limits = get_model_limits("mystery-provider")
        assert limits.context_window == 128_000

    def test_overrides_applied(self):
        """Config overrides replace registry values."""
        limits = get_model_limits("ollama", "mistral", config_overrides={"context_window": 32_768})
        assert limits.context_window == 32_768
        assert limits.budgeting_mode == BudgetingMode.COMBINED

    def test_budgeting_mode_override_from_string(self):
        """budgeting_mode overrides accept the enum value string."""
        limits = get_model_limits("openai", config_overrides={"budgeting_mode": "combined"})
        assert limits.budgeting_mode == BudgetingMode.COMBINED


class TestGetEffectiveContext:
    """Tests for effective input context."""

    def test_input_only_is_full_window(self):
        """INPUT_ONLY models keep the whole window for input."""
        limits = ModelContextLimits(context_window=128_000, max_output_tokens=16_384)
        assert get_effective_context(limits) == 128_000

    def test_combined_subtracts_reservation(self):
        """COMBINED models reserve output space."""
        assert get_effective_context(get_model_limits("azure-openai", "gpt-4")) == 6_144
        assert get_effective_context(get_model_limits("ollama")) == 6_144

    def test_explicit_output_budget(self):
        """An explicit output budget replaces the stored reservation."""
        limits = get_model_limits("ollama")
        assert get_effective_context(limits, output_budget=1_000) == 7_192

    def test_never_below_one(self):
        """Effective context is at least one token."""
        limits = ModelContextLimits(
            context_window=10,
            max_output_tokens=10,
            budgeting_mode=BudgetingMode.COMBINED,
            output_reserved=10,
        )
        assert get_effective_context(limits) == 1
