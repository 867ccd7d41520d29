"""
Log formatters that stamp each line with the active caller context.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .context import ObservabilityContext, get_observability_context

# attributes every LogRecord carries; anything else came in through ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _caller_fields(context: ObservabilityContext) -> Dict[str, Any]:
    fields = {
        "correlation_id": context.correlation_id,
        "caller_id": context.caller_id,
        "role": context.role,
        "operation": context.operation,
    }
    if context.metadata:
        fields["metadata"] = context.metadata
    return {k: v for k, v in fields.items() if v is not None}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Carries the caller context (correlation id, caller, role, operation) and
    any ``extra`` fields given to the logging call. ``static_fields`` are
    merged into every line, e.g. a deployment name.
    """

    def __init__(
        self,
        include_context: bool = True,
        static_fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__()
        self.include_context = include_context
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        context = get_observability_context() if self.include_context else None
        if context is not None:
            payload.update(_caller_fields(context))

        if record.exc_info and record.exc_info[0] is not None:
            payload["error"] = {
                "type": record.exc_info[0].__name__,
                "detail": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        payload.update(self.static_fields)
        return json.dumps(payload, default=str)


class CorrelatedFormatter(logging.Formatter):
    """
    Plain text with a ``[role:operation #abcd1234]`` prefix while a caller
    context is active.
    """

    DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

    def __init__(self, fmt: Optional[str] = None, include_context: bool = True) -> None:
        super().__init__(fmt or self.DEFAULT_FORMAT)
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = get_observability_context() if self.include_context else None
        if context is None:
            return line

        label = ":".join(part for part in (context.role, context.operation) if part)
        tag = f"#{context.correlation_id[:8]}"
        return f"[{label} {tag}] {line}" if label else f"[{tag}] {line}"


def get_console_formatter(structured: bool = False) -> logging.Formatter:
    return JSONFormatter() if structured else CorrelatedFormatter()
