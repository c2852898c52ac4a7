"""Request-scoped context for log correlation.

Each logical "generate one document" operation can bind a correlation id
that audit events pick up automatically. Context variables keep concurrent
asyncio tasks isolated from each other.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Return the correlation id bound to the current context ("" if unset)."""
    return correlation_id.get()


def new_correlation_id() -> str:
    """Generate a fresh correlation id."""
    return f"doc-{uuid.uuid4().hex[:12]}"


@contextmanager
def correlation_scope(value: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of a block.

    Args:
        value: Correlation id to bind; a new one is generated when omitted

    Yields:
        The bound correlation id

    Example:
        with correlation_scope() as cid:
            library = core.load_project_library(root)
    """
    bound = value or new_correlation_id()
    token = correlation_id.set(bound)
    try:
        yield bound
    finally:
        correlation_id.reset(token)
