"""Provider capability registry.

Answers two questions for the fallback engine: how large is the input
window of a configured provider, and which configured provider offers the
largest window. Windows are effective input windows, so combined-budget
models already have their output reservation subtracted.
"""

import logging
import threading
from typing import Any, Iterable, Optional, Sequence

from .limits import get_effective_context, get_model_limits
from .models import ModelContextLimits, ProviderWindow

logger = logging.getLogger(__name__)


def parse_provider_spec(spec: str) -> tuple[str, Optional[str]]:
    """Split a ``provider:model`` string into its parts.

    ``"ollama"`` yields ``("ollama", None)``; surrounding whitespace is ignored.

    Raises:
        ValueError: If the provider part is empty
    """
    provider, _, model = spec.strip().partition(":")
    provider = provider.strip().lower()
    if not provider:
        raise ValueError(f"Invalid provider spec: {spec!r}")
    model = model.strip()
    return provider, (model or None)


class ProviderCapabilityRegistry:
    """Registry of configured providers and their context windows.

    Args:
        configured: Ordered (provider, model) pairs, or ``provider:model``
            strings, for the providers the caller may route to
        overrides: Limit overrides keyed by ``provider`` or
            ``provider:model``; model-specific keys win over provider keys

    Example:
        registry = ProviderCapabilityRegistry(
            [("azure-openai", "gpt-4"), ("google-ai", "gemini-1.5-pro")]
        )
        registry.get_max_window("azure-openai", "gpt-4")  # 6,144
        registry.get_optimal_provider_for_large_context(50_000).provider  # google-ai
    """

    def __init__(
        self,
        configured: Optional[Iterable[Any]] = None,
        overrides: Optional[dict[str, dict[str, Any]]] = None,
    ):
        self._lock = threading.Lock()
        self._configured: list[tuple[str, Optional[str]]] = []
        self._overrides = {key.lower(): dict(value) for key, value in (overrides or {}).items()}
        for entry in configured or ():
            self.register(entry)

    def register(self, entry: Any, model: Optional[str] = None) -> None:
        """Add a provider to the configured set (no-op if already present)."""
        if isinstance(entry, str):
            provider, parsed_model = parse_provider_spec(entry)
            model = model or parsed_model
        else:
            provider, model = entry[0].lower(), entry[1] if len(entry) > 1 else model
        with self._lock:
            if (provider, model) not in self._configured:
                self._configured.append((provider, model))

    @property
    def configured(self) -> Sequence[tuple[str, Optional[str]]]:
        with self._lock:
            return tuple(self._configured)

    def is_configured(self, provider: str, model: Optional[str] = None) -> bool:
        provider = provider.lower()
        with self._lock:
            if model is None:
                return any(p == provider for p, _ in self._configured)
            return (provider, model) in self._configured

    def get_limits(self, provider: str, model: Optional[str] = None) -> ModelContextLimits:
        """Resolve limits for any provider/model, configured or not."""
        provider = provider.lower()
        overrides: dict[str, Any] = {}
        overrides.update(self._overrides.get(provider, {}))
        if model:
            overrides.update(self._overrides.get(f"{provider}:{model.lower()}", {}))
        return get_model_limits(provider, model, config_overrides=overrides or None)

    def get_max_window(self, provider: str, model: Optional[str] = None) -> Optional[int]:
        """Effective input window of a configured provider, or None if not configured."""
        if not self.is_configured(provider, model):
            return None
        if model is None:
            # Largest window among the provider's configured models
            windows = [
                self._window(p, m) for p, m in self.configured if p == provider.lower()
            ]
            return max(windows) if windows else None
        return self._window(provider, model)

    def get_optimal_provider_for_large_context(self, min_tokens: int = 0) -> Optional[ProviderWindow]:
        """Pick the configured provider with the largest input window.

        Ties go to the provider configured first. Returns None when nothing
        is configured or the largest window is smaller than ``min_tokens``.
        """
        best: Optional[ProviderWindow] = None
        for provider, model in self.configured:
            window = self._window(provider, model)
            if best is None or window > best.context_window:
                best = ProviderWindow(provider=provider, model=model, context_window=window)

        if best is None or best.context_window < min_tokens:
            logger.debug(
                "No configured provider offers %d tokens (best: %s)",
                min_tokens,
                best.context_window if best else None,
            )
            return None
        return best

    def _window(self, provider: str, model: Optional[str]) -> int:
        return get_effective_context(self.get_limits(provider, model))
