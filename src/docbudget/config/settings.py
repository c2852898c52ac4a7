"""DocbudgetConfig: layered configuration for the context core.

Priority (highest to lowest):
1. Environment variables (``DOCBUDGET_*``)
2. Explicit TOML file (``config_file`` argument or ``DOCBUDGET_CONFIG_FILE``),
   otherwise project ``./docbudget.toml`` layered over the user config
   ``$XDG_CONFIG_HOME/docbudget/config.toml`` (``~/.config`` by default)
3. Default values
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from docbudget.config.domains import FallbackConfig, LibraryConfig, ProvidersConfig
from docbudget.config.parsing import _normalize_log_level, _parse_provider_list, _try_parse_bool
from docbudget.core.fallback import FallbackOptions, FallbackRules
from docbudget.core.library import LibraryLoadOptions
from docbudget.core.resilience import RetryConfig, RetryManager, get_provider_retry_config
from docbudget.core.token_management import (
    ProviderCapabilityRegistry,
    TokenEstimator,
    estimate_tokens,
    resolve_estimator,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "DOCBUDGET_CONFIG_FILE"
PROJECT_CONFIG_NAME = "docbudget.toml"

# Environment variable -> [retry] key
_RETRY_ENV_VARS = {
    "DOCBUDGET_MAX_RETRIES": "max_retries",
    "DOCBUDGET_BASE_DELAY": "base_delay",
    "DOCBUDGET_MAX_DELAY": "max_delay",
    "DOCBUDGET_BACKOFF_MULTIPLIER": "backoff_multiplier",
    "DOCBUDGET_FAILURE_THRESHOLD": "failure_threshold",
    "DOCBUDGET_RECOVERY_TIMEOUT": "recovery_timeout",
}

_STRUCTURED_FORMAT = '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class DocbudgetConfig:
    """Top-level configuration.

    Attributes:
        log_level: Level applied to the ``docbudget`` logger
        structured_logging: Emit JSON-lines log records
        token_estimator: Estimator name ("heuristic" or "tiktoken[:encoding]")
        library: Project library loading settings
        fallback: Context fallback engine settings
        retry: Retry settings applied to every provider; None keeps the
            tuned per-provider defaults
        provider_retry: Per-provider retry overrides
        providers: Configured providers and window overrides
    """

    log_level: str = "INFO"
    structured_logging: bool = False
    token_estimator: str = "heuristic"
    library: LibraryConfig = field(default_factory=LibraryConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    retry: Optional[RetryConfig] = None
    provider_retry: Dict[str, RetryConfig] = field(default_factory=dict)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "DocbudgetConfig":
        """Create configuration from environment variables and optional TOML files."""
        config = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            user_config = Path(xdg_config_home) / "docbudget" / "config.toml"
            if user_config.exists():
                config._load_toml(user_config)
                logger.debug("Loaded user config from %s", user_config)

            project_config = Path(PROJECT_CONFIG_NAME)
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug("Loaded project config from %s", project_config)

        config._load_env()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from a TOML file; a malformed file is ignored."""
        if not path.exists():
            logger.warning("Config file not found: %s", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error("Error loading config file %s: %s", path, e)
            return

        self.apply_toml_dict(data, source=str(path))

    def apply_toml_dict(self, data: Dict[str, Any], source: str = "<dict>") -> None:
        """Apply already-parsed TOML tables over the current values."""
        sections = {
            "logging": self._apply_logging,
            "tokens": self._apply_tokens,
            "library": lambda d: setattr(self, "library", LibraryConfig.from_toml_dict(d, self.library)),
            "fallback": lambda d: setattr(self, "fallback", FallbackConfig.from_toml_dict(d, self.fallback)),
            "retry": self._apply_retry,
            "providers": lambda d: setattr(self, "providers", ProvidersConfig.from_toml_dict(d, self.providers)),
        }
        for name, apply in sections.items():
            if name not in data:
                continue
            if not isinstance(data[name], dict):
                logger.warning(
                    "Ignoring [%s] in %s: expected table, got %s", name, source, type(data[name]).__name__
                )
                continue
            apply(data[name])

    def _apply_logging(self, data: Dict[str, Any]) -> None:
        if "level" in data:
            level = _normalize_log_level(data["level"])
            if level is not None:
                self.log_level = level
        if "structured" in data:
            structured = _try_parse_bool(data["structured"])
            if structured is None:
                logger.warning("Ignoring [logging].structured: expected a boolean, got %r", data["structured"])
            else:
                self.structured_logging = structured

    def _apply_tokens(self, data: Dict[str, Any]) -> None:
        if "estimator" in data:
            self._set_estimator(data["estimator"], "[tokens].estimator")

    def _set_estimator(self, value: Any, source: str) -> None:
        name = str(value).strip().lower()
        if name not in ("heuristic", "chars") and name.split(":", 1)[0] != "tiktoken":
            logger.warning("Ignoring %s %r: unknown token estimator", source, value)
            return
        self.token_estimator = name

    def _apply_retry(self, data: Dict[str, Any]) -> None:
        self.retry = RetryConfig.from_toml_dict(data, base=self.retry)
        providers = data.get("providers", {})
        if not isinstance(providers, dict):
            logger.warning("Ignoring [retry].providers: expected a table, got %r", providers)
            return
        for provider, values in providers.items():
            if not isinstance(values, dict):
                logger.warning("Ignoring [retry.providers].%s: expected a table", provider)
                continue
            name = str(provider).lower()
            base = self.provider_retry.get(name) or self.retry or get_provider_retry_config(name)
            self.provider_retry[name] = RetryConfig.from_toml_dict(values, base=base)

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("DOCBUDGET_LOG_LEVEL"):
            normalized = _normalize_log_level(level)
            if normalized is not None:
                self.log_level = normalized

        if structured := os.environ.get("DOCBUDGET_STRUCTURED_LOGGING"):
            parsed = _try_parse_bool(structured)
            if parsed is None:
                logger.warning("Ignoring DOCBUDGET_STRUCTURED_LOGGING: expected a boolean, got %r", structured)
            else:
                self.structured_logging = parsed

        if estimator := os.environ.get("DOCBUDGET_TOKEN_ESTIMATOR"):
            self._set_estimator(estimator, "DOCBUDGET_TOKEN_ESTIMATOR")

        if max_tokens := os.environ.get("DOCBUDGET_MAX_TOKENS"):
            self.library = LibraryConfig.from_toml_dict({"max_tokens": max_tokens}, self.library)

        if threshold := os.environ.get("DOCBUDGET_AGGRESSIVE_REDUCTION_THRESHOLD"):
            self.fallback = FallbackConfig.from_toml_dict(
                {"aggressive_reduction_threshold": threshold}, self.fallback
            )

        retry_values = {key: os.environ[var] for var, key in _RETRY_ENV_VARS.items() if os.environ.get(var)}
        if retry_values:
            self.retry = RetryConfig.from_toml_dict(retry_values, base=self.retry)

        if providers := os.environ.get("DOCBUDGET_PROVIDERS"):
            self.providers.configured = _parse_provider_list(providers, source="DOCBUDGET_PROVIDERS")

    def setup_logging(self) -> None:
        """Configure the ``docbudget`` logger hierarchy based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)
        formatter = logging.Formatter(_STRUCTURED_FORMAT if self.structured_logging else _PLAIN_FORMAT)

        root_logger = logging.getLogger("docbudget")
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            if getattr(handler, "_docbudget_handler", False):
                handler.setFormatter(formatter)
                return

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        handler._docbudget_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    def to_estimator(self) -> TokenEstimator:
        """The configured estimator; the heuristic uses the cached estimate_tokens."""
        if self.token_estimator in ("heuristic", "chars"):
            return estimate_tokens
        return resolve_estimator(self.token_estimator)

    def to_load_options(self, max_tokens: Optional[int] = None) -> LibraryLoadOptions:
        return self.library.to_load_options(max_tokens)

    def to_fallback_options(self) -> FallbackOptions:
        return self.fallback.to_options()

    def to_fallback_rules(self) -> FallbackRules:
        return self.fallback.to_rules()

    def to_capability_registry(self) -> ProviderCapabilityRegistry:
        return self.providers.to_registry()

    def to_retry_manager(self, **kwargs: Any) -> RetryManager:
        """Build a RetryManager; extra kwargs (sleep, rng, clock) pass through."""
        return RetryManager(config=self.retry, provider_configs=dict(self.provider_retry), **kwargs)


# Global configuration instance
_config: Optional[DocbudgetConfig] = None


def get_config() -> DocbudgetConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = DocbudgetConfig.from_env()
    return _config


def set_config(config: Optional[DocbudgetConfig]) -> None:
    """Set (or clear, with None) the global configuration instance."""
    global _config
    _config = config
