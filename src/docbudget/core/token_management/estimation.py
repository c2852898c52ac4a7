"""Token estimation behind a swappable interface.

Provides:
    - TokenEstimator: Protocol every estimator satisfies (text -> int)
    - HeuristicTokenEstimator: Fixed characters-per-token approximation
    - TiktokenEstimator: BPE-based estimation via tiktoken
    - estimate_tokens(): Cached module-level estimate using the heuristic
    - clear_token_cache(): Clear the estimation cache
    - get_cache_stats(): Get cache statistics

None of these match any provider's real tokenizer exactly. They are
engineering approximations: deterministic for a given text within a run,
cheap, and monotone in text length, which is what ceiling enforcement
relies on.
"""

import hashlib
import logging
import math
import threading
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# ~4 characters per token is a common approximation for English prose
DEFAULT_CHARS_PER_TOKEN = 4

# Cache for token estimates: maps content_hash -> token_count
_TOKEN_ESTIMATE_CACHE: dict[str, int] = {}
_TOKEN_CACHE_LOCK = threading.Lock()

# Maximum cache size to prevent unbounded memory growth
_MAX_CACHE_SIZE = 10_000


@runtime_checkable
class TokenEstimator(Protocol):
    """Callable mapping a text span to an approximate token count."""

    def __call__(self, text: str) -> int: ...


class HeuristicTokenEstimator:
    """Estimate tokens as ``ceil(len(text) / chars_per_token)``.

    Empty text is 0 tokens; any non-empty text is at least 1 token.

    Example:
        estimator = HeuristicTokenEstimator()
        estimator("abcdefgh")  # 2
        estimator("abcdefghi")  # 3
    """

    def __init__(self, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN):
        if chars_per_token <= 0:
            raise ValueError(f"chars_per_token must be positive, got {chars_per_token}")
        self.chars_per_token = chars_per_token

    def __call__(self, text: str) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token)

    def __repr__(self) -> str:
        return f"HeuristicTokenEstimator(chars_per_token={self.chars_per_token})"


class TiktokenEstimator:
    """Estimate tokens with a tiktoken BPE encoding.

    Closer to real counts for OpenAI-family models than the heuristic, but
    slower and dependent on tiktoken's encoding data being available.

    Args:
        encoding_name: tiktoken encoding to use (default cl100k_base)
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        import tiktoken

        self.encoding_name = encoding_name
        self._encoding: Any = tiktoken.get_encoding(encoding_name)

    def __call__(self, text: str) -> int:
        if not text:
            return 0
        return len(self._encoding.encode(text, disallowed_special=()))

    def __repr__(self) -> str:
        return f"TiktokenEstimator(encoding_name={self.encoding_name!r})"


_DEFAULT_ESTIMATOR = HeuristicTokenEstimator()


def _content_hash(content: str) -> str:
    """Generate a compact hash of content for cache keying."""
    return hashlib.sha256(content.encode("utf-8", errors="replace")).hexdigest()[:16]


def estimate_tokens(content: str, *, use_cache: bool = True) -> int:
    """Estimate the token count for content with the default heuristic.

    Results are cached by content hash. Short strings skip the cache since
    hashing them costs more than estimating.

    Args:
        content: Text content to estimate tokens for
        use_cache: Whether to use/update the cache (default True)

    Returns:
        Estimated token count (0 for empty content)

    Example:
        tokens = estimate_tokens("Hello, world!")  # 4
    """
    if not content:
        return 0

    if not use_cache or len(content) < 256:
        return _DEFAULT_ESTIMATOR(content)

    cache_key = _content_hash(content)
    with _TOKEN_CACHE_LOCK:
        if cache_key in _TOKEN_ESTIMATE_CACHE:
            return _TOKEN_ESTIMATE_CACHE[cache_key]

    estimate = _DEFAULT_ESTIMATOR(content)

    with _TOKEN_CACHE_LOCK:
        if len(_TOKEN_ESTIMATE_CACHE) >= _MAX_CACHE_SIZE:
            # Simple eviction: clear the oldest half
            keys_to_remove = list(_TOKEN_ESTIMATE_CACHE.keys())[: _MAX_CACHE_SIZE // 2]
            for key in keys_to_remove:
                del _TOKEN_ESTIMATE_CACHE[key]
        _TOKEN_ESTIMATE_CACHE[cache_key] = estimate

    return estimate


def clear_token_cache() -> int:
    """Clear the token estimation cache.

    Returns:
        Number of entries cleared
    """
    with _TOKEN_CACHE_LOCK:
        count = len(_TOKEN_ESTIMATE_CACHE)
        _TOKEN_ESTIMATE_CACHE.clear()
    return count


def get_cache_stats() -> dict[str, int]:
    """Get statistics about the token estimation cache.

    Returns:
        Dict with 'size' and 'max_size' keys
    """
    with _TOKEN_CACHE_LOCK:
        size = len(_TOKEN_ESTIMATE_CACHE)
    return {
        "size": size,
        "max_size": _MAX_CACHE_SIZE,
    }


def resolve_estimator(name: str) -> TokenEstimator:
    """Build an estimator from a configuration name.

    Args:
        name: "heuristic" or "tiktoken" (optionally "tiktoken:<encoding>")

    Returns:
        A TokenEstimator instance

    Raises:
        ValueError: If the name is not recognised
    """
    normalized = name.strip().lower()
    if normalized in ("", "heuristic", "chars"):
        return HeuristicTokenEstimator()
    if normalized.startswith("tiktoken"):
        _, _, encoding = normalized.partition(":")
        return TiktokenEstimator(encoding or "cl100k_base")
    raise ValueError(f"Unknown token estimator: {name!r}")
