"""Retry and circuit breaker configuration.

RetryConfig holds the tunables for one provider; PROVIDER_RETRY_CONFIGS maps
provider names to tuned instances, with a default for everything else.
All durations are in seconds.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

DEFAULT_RETRYABLE_SUBSTRINGS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "econnreset",
    "connection reset",
    "socket hang up",
    "rate limit",
    "too many requests",
    "temporarily unavailable",
    "overloaded",
)


@dataclass(frozen=True)
class RetryConfig:
    """Per-provider retry and circuit breaker configuration.

    Attributes:
        max_retries: Retries after the first attempt (3 => up to 4 tries)
        base_delay: Delay before the first retry
        max_delay: Cap on the exponential delay before jitter
        backoff_multiplier: Growth factor per attempt
        jitter_min: Lower bound of the jitter factor (inclusive)
        jitter_max: Upper bound of the jitter factor (exclusive)
        rate_limit_penalty: Extra factor for rate limits without a hint
        failure_threshold: Retryable failures that open the breaker
        recovery_timeout: Time an open breaker rejects calls
        retryable_status_codes: Status codes treated as transient
        retryable_substrings: Lower-case message fragments treated as transient
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter_min: float = 0.85
    jitter_max: float = 1.15
    rate_limit_penalty: float = 2.0
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    retryable_status_codes: frozenset[int] = field(default_factory=lambda: DEFAULT_RETRYABLE_STATUS_CODES)
    retryable_substrings: tuple[str, ...] = DEFAULT_RETRYABLE_SUBSTRINGS

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("base_delay and max_delay must be non-negative")
        if self.backoff_multiplier < 1.0:
            raise ValueError(f"backoff_multiplier must be >= 1.0, got {self.backoff_multiplier}")
        if not 0 < self.jitter_min <= self.jitter_max:
            raise ValueError(f"invalid jitter range [{self.jitter_min}, {self.jitter_max})")
        if self.failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {self.failure_threshold}")
        if self.recovery_timeout < 0:
            raise ValueError(f"recovery_timeout must be non-negative, got {self.recovery_timeout}")

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any], base: Optional["RetryConfig"] = None) -> "RetryConfig":
        """Create config from a TOML dict (typically the [retry] section).

        Keys missing from ``data`` keep the value from ``base`` (or the
        defaults). Invalid values log a warning and keep the base value.

        Args:
            data: Dict from TOML parsing
            base: Config supplying values for missing keys

        Returns:
            RetryConfig instance
        """
        base = base or cls()
        values: Dict[str, Any] = {f.name: getattr(base, f.name) for f in fields(cls)}
        converters = {
            "max_retries": int,
            "base_delay": float,
            "max_delay": float,
            "backoff_multiplier": float,
            "jitter_min": float,
            "jitter_max": float,
            "rate_limit_penalty": float,
            "failure_threshold": int,
            "recovery_timeout": float,
            "retryable_status_codes": lambda v: frozenset(int(code) for code in v),
            "retryable_substrings": lambda v: tuple(str(s).lower() for s in v),
        }
        for key, convert in converters.items():
            if key not in data:
                continue
            try:
                values[key] = convert(data[key])
            except (TypeError, ValueError):
                logger.warning("Invalid retry.%s value %r, keeping %r", key, data[key], values[key])

        try:
            return cls(**values)
        except ValueError as e:
            logger.warning("Invalid retry configuration (%s), using base values", e)
            return base


# Provider-specific configurations with tuned defaults
PROVIDER_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "google-ai": RetryConfig(),
    "azure-openai": RetryConfig(),
    "openai": RetryConfig(),
    "anthropic": RetryConfig(),
    "github-ai": RetryConfig(
        # GitHub Models has tight per-minute quotas; back off harder
        base_delay=2.0,
        max_delay=60.0,
    ),
    "ollama": RetryConfig(
        # Local server: failures are rarely transient, recover quickly
        max_retries=2,
        base_delay=0.5,
        max_delay=5.0,
        failure_threshold=3,
        recovery_timeout=15.0,
    ),
}


def get_provider_retry_config(provider_name: str) -> RetryConfig:
    """Get retry configuration for a provider.

    Args:
        provider_name: Name of the provider (e.g., 'google-ai', 'ollama')

    Returns:
        Provider-specific config or default config if provider not found
    """
    return PROVIDER_RETRY_CONFIGS.get(provider_name.lower(), RetryConfig())
