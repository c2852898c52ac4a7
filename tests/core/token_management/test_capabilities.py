"""Tests for the provider capability registry."""

import pytest

from docbudget.core.token_management import ProviderCapabilityRegistry, ProviderWindow, parse_provider_spec


class TestParseProviderSpec:
    """Tests for provider:model spec parsing."""

    def test_provider_and_model(self):
        """provider:model splits into both parts, provider lower-cased."""
        assert parse_provider_spec("Azure-OpenAI:gpt-4o") == ("azure-openai", "gpt-4o")

    def test_provider_only(self):
        """A bare provider has no model."""
        assert parse_provider_spec(" ollama ") == ("ollama", None)

    def test_empty_provider(self):
        """An empty provider is rejected."""
        with pytest.raises(ValueError):
            parse_provider_spec(":gpt-4o")


class TestGetMaxWindow:
    """Tests for get_max_window."""

    def test_unconfigured_provider_is_none(self):
        """Providers that are not configured have no window."""
        registry = ProviderCapabilityRegistry(["google-ai:gemini-1.5-pro"])
        assert registry.get_max_window("openai", "gpt-4o") is None

    def test_configured_model_window(self):
        """Configured models report their effective input window."""
        registry = ProviderCapabilityRegistry([("azure-openai", "gpt-4"), ("google-ai", "gemini-1.5-pro")])
        assert registry.get_max_window("azure-openai", "gpt-4") == 6_144
        assert registry.get_max_window("google-ai", "gemini-1.5-pro") == 2_097_152

    def test_provider_without_model_uses_largest(self):
        """Without a model, the provider's largest configured window wins."""
        registry = ProviderCapabilityRegistry(["azure-openai:gpt-4", "azure-openai:gpt-4o"])
        assert registry.get_max_window("azure-openai") == 128_000

    def test_overrides(self):
        """Overrides keyed by provider or provider:model change windows."""
        registry = ProviderCapabilityRegistry(
            ["ollama:mistral", "openai:gpt-4o"],
            overrides={
                "ollama": {"context_window": 32_768},
                "openai:gpt-4o": {"context_window": 100_000},
            },
        )
        assert registry.get_max_window("ollama", "mistral") == 32_768 - 2_048
        assert registry.get_max_window("openai", "gpt-4o") == 100_000

    def test_register_is_idempotent(self):
        """Registering the same provider twice keeps one entry."""
        registry = ProviderCapabilityRegistry()
        registry.register("anthropic")
        registry.register("anthropic")
        assert registry.configured == (("anthropic", None),)


class TestOptimalProvider:
    """Tests for get_optimal_provider_for_large_context."""

    def test_empty_registry(self):
        """Nothing configured means no optimal provider."""
        assert ProviderCapabilityRegistry().get_optimal_provider_for_large_context() is None

    def test_largest_window_wins(self):
        """The provider with the largest window is chosen."""
        registry = ProviderCapabilityRegistry(["azure-openai:gpt-4o", "google-ai:gemini-1.5-pro", "anthropic"])
        optimal = registry.get_optimal_provider_for_large_context(50_000)
        assert optimal == ProviderWindow("google-ai", "gemini-1.5-pro", 2_097_152)

    def test_ties_go_to_first_configured(self):
        """Equal windows resolve to configuration order."""
        registry = ProviderCapabilityRegistry(["openai:gpt-4o", "azure-openai:gpt-4o"])
        assert registry.get_optimal_provider_for_large_context().provider == "openai"

    def test_below_min_tokens(self):
        """No provider is returned when even the largest window is too small."""
        registry = ProviderCapabilityRegistry(["azure-openai:gpt-4"])
        assert registry.get_optimal_provider_for_large_context(10_000) is None
