"""
EduManager observability.

Structured logging with correlation tracking for repository and integration
calls.
"""

from .context import ObservabilityContext, get_observability_context, observability_context
from .formatters import CorrelatedFormatter, JSONFormatter, get_console_formatter
from .logger import get_logger, setup_logging

__all__ = [
    "ObservabilityContext",
    "get_observability_context",
    "observability_context",
    "JSONFormatter",
    "CorrelatedFormatter",
    "get_console_formatter",
    "get_logger",
    "setup_logging",
]
