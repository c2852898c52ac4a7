"""ContextCore: the facade document generators call.

Bundles one library loader, one fallback engine and one retry manager so a
caller holds a single object for assembling bounded context and making
resilient provider calls.

Usage:
    core = ContextCore.from_config(DocbudgetConfig.from_env())
    prepared = core.prepare_context("/path/to/project", "project-charter", "azure-openai", "gpt-4o")
    text = await core.execute_with_retry(
        lambda: client.generate(prepared.context),
        "generate_project_charter",
        prepared.provider,
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar, Union

from docbudget.core.context import correlation_scope, get_correlation_id
from docbudget.core.fallback import ContextFallbackEngine, FallbackOptions, FallbackResult
from docbudget.core.library import (
    ContextFormat,
    LibraryLoadOptions,
    LibraryStats,
    ProjectLibrary,
    ProjectLibraryLoader,
    library_to_context,
)
from docbudget.core.resilience import RetryConfig, RetryManager
from docbudget.core.token_management import (
    ProviderCapabilityRegistry,
    TokenEstimator,
    estimate_tokens,
    get_effective_context,
)

if TYPE_CHECKING:
    from docbudget.config import DocbudgetConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PreparedContext:
    """A rendered library fitted to one provider's window.

    Attributes:
        library: The bounded library that was rendered
        context: Context to send (after any fallback reduction)
        fallback: Outcome of the fallback run; strategy ``none`` when the
            rendered library already fit
        provider: Provider the context should be sent to; differs from the
            requested one when the fallback switched providers
        model: Model for ``provider`` (None for the provider default)
        window: Effective input window the context was fitted to
    """

    library: ProjectLibrary
    context: str
    fallback: FallbackResult
    provider: str
    model: Optional[str]
    window: int

    @property
    def success(self) -> bool:
        return self.fallback.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "window": self.window,
            "library": self.library.summary.to_dict(),
            "fallback": self.fallback.to_dict(),
        }


class ContextCore:
    """Facade over the library loader, fallback engine and retry manager.

    Args:
        loader: Project library loader (owns the library cache)
        engine: Context fallback engine
        retry_manager: Retry manager (owns the circuit breakers)
        registry: Provider capability registry used for window lookups
        estimator: Token estimator shared by every component
        load_options: Default options for ``load_project_library``
    """

    def __init__(
        self,
        loader: Optional[ProjectLibraryLoader] = None,
        engine: Optional[ContextFallbackEngine] = None,
        retry_manager: Optional[RetryManager] = None,
        registry: Optional[ProviderCapabilityRegistry] = None,
        estimator: Optional[TokenEstimator] = None,
        load_options: Optional[LibraryLoadOptions] = None,
    ):
        self.estimate = estimator or estimate_tokens
        self.registry = registry or ProviderCapabilityRegistry()
        self.loader = loader or ProjectLibraryLoader(estimator=self.estimate)
        self.engine = engine or ContextFallbackEngine(estimator=self.estimate, registry=self.registry)
        self.retry_manager = retry_manager or RetryManager()
        self.load_options = load_options or LibraryLoadOptions()

    @classmethod
    def from_config(
        cls,
        config: DocbudgetConfig,
        estimator: Optional[TokenEstimator] = None,
        **retry_kwargs: Any,
    ) -> "ContextCore":
        """Build every component from a DocbudgetConfig.

        Extra keyword arguments (``sleep``, ``rng``, ``clock``) are passed to
        the RetryManager.
        """
        estimate = estimator or config.to_estimator()
        registry = config.to_capability_registry()
        return cls(
            loader=ProjectLibraryLoader(estimator=estimate),
            engine=ContextFallbackEngine(
                estimator=estimate,
                registry=registry,
                rules=config.to_fallback_rules(),
                options=config.to_fallback_options(),
            ),
            retry_manager=config.to_retry_manager(**retry_kwargs),
            registry=registry,
            estimator=estimate,
            load_options=config.to_load_options(),
        )

    def load_project_library(
        self,
        root: Union[str, Path],
        options: Optional[LibraryLoadOptions] = None,
    ) -> ProjectLibrary:
        return self.loader.load_project_library(root, options or self.load_options)

    def load_optimized_library(
        self,
        root: Union[str, Path],
        document_type: str,
        max_tokens: int = 1_000_000,
    ) -> ProjectLibrary:
        """Profile-tuned load that keeps the configured size bounds and weights."""
        return self.loader.load_optimized_library(root, document_type, max_tokens, self.load_options)

    def get_library_stats(self, library: ProjectLibrary) -> LibraryStats:
        return self.loader.get_library_stats(library)

    def library_to_context(
        self,
        library: ProjectLibrary,
        format: Union[ContextFormat, str] = ContextFormat.STRUCTURED,
        **kwargs: Any,
    ) -> str:
        return library_to_context(library, format, estimator=self.estimate, **kwargs)

    def apply_fallback_strategy(
        self,
        context: str,
        document_type: str,
        target_token_limit: int,
        options: Optional[FallbackOptions] = None,
    ) -> FallbackResult:
        return self.engine.apply_fallback_strategy(context, document_type, target_token_limit, options)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        provider_id: str,
        retry_config: Optional[RetryConfig] = None,
        *,
        deadline: Optional[float] = None,
    ) -> T:
        return await self.retry_manager.execute_with_retry(
            operation, operation_name, provider_id, retry_config, deadline=deadline
        )

    def provider_window(self, provider: str, model: Optional[str] = None) -> int:
        """Effective input window for any provider, configured or not."""
        window = self.registry.get_max_window(provider, model)
        if window is None:
            window = get_effective_context(self.registry.get_limits(provider, model))
        return window

    def prepare_context(
        self,
        root: Union[str, Path],
        document_type: str,
        provider: str,
        model: Optional[str] = None,
        format: Union[ContextFormat, str] = ContextFormat.STRUCTURED,
        options: Optional[FallbackOptions] = None,
    ) -> PreparedContext:
        """Load, render and fit project context for one provider.

        The library is loaded with the document type's optimization profile
        and a budget equal to the provider's window; the rendered text then
        goes through the fallback engine, which returns it untouched when it
        already fits.
        """
        with correlation_scope(get_correlation_id() or None):
            window = self.provider_window(provider, model)
            library = self.load_optimized_library(root, document_type, max_tokens=window)
            context = self.library_to_context(library, format)
            result = self.apply_fallback_strategy(context, document_type, window, options)

            target_provider, target_model = provider.lower(), model
            if result.success and result.provider is not None:
                target_provider, target_model = result.provider.provider, result.provider.model
                window = result.provider.context_window

            if not result.success:
                logger.warning(
                    "Context for %s does not fit %s (%d tokens > %d)",
                    document_type,
                    provider,
                    result.original_token_count,
                    window,
                )

            return PreparedContext(
                library=library,
                context=result.processed_context,
                fallback=result,
                provider=target_provider,
                model=target_model,
                window=window,
            )
