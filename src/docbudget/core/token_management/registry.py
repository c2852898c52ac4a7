"""Default model limits registry.

Pre-configured token limits for the generation providers docbudget routes
document requests to.
"""

from .models import BudgetingMode, ModelContextLimits

# Conservative fallback for unknown models
_DEFAULT_FALLBACK = ModelContextLimits(
    context_window=128_000,
    max_output_tokens=8_000,
    budgeting_mode=BudgetingMode.INPUT_ONLY,
)

# Default limits by provider and model
# Format: {provider: {model: ModelContextLimits}}
DEFAULT_MODEL_LIMITS: dict[str, dict[str, ModelContextLimits]] = {
    # Google AI Studio (Gemini)
    "google-ai": {
        "gemini-1.5-pro": ModelContextLimits(
            context_window=2_097_152,
            max_output_tokens=8_192,
        ),
        "gemini-1.5-flash": ModelContextLimits(
            context_window=1_048_576,
            max_output_tokens=8_192,
        ),
        "gemini-2.0-flash": ModelContextLimits(
            context_window=1_048_576,
            max_output_tokens=8_192,
        ),
        "gemini-2.5-pro": ModelContextLimits(
            context_window=1_048_576,
            max_output_tokens=65_536,
        ),
        "_default": ModelContextLimits(
            context_window=1_048_576,
            max_output_tokens=8_192,
        ),
    },
    # Azure OpenAI deployments (key or Entra ID auth share limits)
    "azure-openai": {
        "gpt-4o": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=16_384,
        ),
        "gpt-4o-mini": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=16_384,
        ),
        "gpt-4": ModelContextLimits(
            context_window=8_192,
            max_output_tokens=4_096,
            budgeting_mode=BudgetingMode.COMBINED,
            output_reserved=2_048,
        ),
        "gpt-35-turbo": ModelContextLimits(
            context_window=16_385,
            max_output_tokens=4_096,
            budgeting_mode=BudgetingMode.COMBINED,
            output_reserved=2_048,
        ),
        "_default": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=16_384,
        ),
    },
    # GitHub Models
    "github-ai": {
        "gpt-4o-mini": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=4_000,
        ),
        "_default": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=4_000,
        ),
    },
    # OpenAI API
    "openai": {
        "gpt-4.1": ModelContextLimits(
            context_window=1_047_576,
            max_output_tokens=32_768,
        ),
        "gpt-4o": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=16_384,
        ),
        "_default": ModelContextLimits(
            context_window=128_000,
            max_output_tokens=16_384,
        ),
    },
    # Anthropic API
    "anthropic": {
        "_default": ModelContextLimits(
            context_window=200_000,
            max_output_tokens=16_000,
        ),
    },
    # Local Ollama models run with small default windows
    "ollama": {
        "llama3.1": ModelContextLimits(
            context_window=131_072,
            max_output_tokens=4_096,
            budgeting_mode=BudgetingMode.COMBINED,
            output_reserved=4_096,
        ),
        "_default": ModelContextLimits(
            context_window=8_192,
            max_output_tokens=2_048,
            budgeting_mode=BudgetingMode.COMBINED,
            output_reserved=2_048,
        ),
    },
}
