"""
Observability context management for correlation tracking.

The context lives in a ``contextvars.ContextVar`` so each asyncio task sees its
own correlation id and caller metadata.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


class ObservabilityContext(BaseModel):
    """Correlation information attached to every log line emitted in scope."""

    correlation_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        min_length=1,
    )
    caller_id: Optional[str] = None
    role: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


_context_var: ContextVar[Optional[ObservabilityContext]] = ContextVar(
    "edumanager_observability_context", default=None
)


def get_observability_context() -> Optional[ObservabilityContext]:
    return _context_var.get()


def _inherited_correlation_id() -> str:
    current = _context_var.get()
    return current.correlation_id if current else str(uuid.uuid4())


@contextmanager
def observability_context(
    correlation_id: Optional[str] = None,
    caller_id: Optional[str] = None,
    role: Optional[str] = None,
    operation: Optional[str] = None,
    **metadata: Any,
) -> Iterator[ObservabilityContext]:
    """
    Scope an observability context; the previous one is restored on exit.

    A nested scope keeps the enclosing correlation id unless one is given.

    Example
    -------
    >>> with observability_context(caller_id="u1", role="teacher", operation="fetch"):
    ...     logger.info("fetching roster")
    """
    context = ObservabilityContext(
        correlation_id=correlation_id or _inherited_correlation_id(),
        caller_id=caller_id,
        role=role,
        operation=operation,
        metadata=metadata,
    )
    token = _context_var.set(context)
    try:
        yield context
    finally:
        _context_var.reset(token)
