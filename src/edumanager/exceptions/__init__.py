"""
EduManager exception hierarchy.

Every error carries a machine-readable code, a severity and a retry
classification so the presentation layer can decide how to surface it.
Repositories never raise these across their boundary; they hand them back
inside a ``Result``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    LOW = "low"  # caller mistake: bad input, missing permission
    MEDIUM = "medium"  # collaborator failure the user can retry
    HIGH = "high"  # misconfiguration
    CRITICAL = "critical"


class RetryPolicy(Enum):
    NEVER = "never"  # bad input, missing row, constraint violation
    IMMEDIATE = "immediate"  # transient, e.g. an assistant hiccup
    BACKOFF = "backoff"  # store or gateway unavailable


class EduManagerError(Exception):
    """
    Base class for every error a repository or integration can report.

    ``context`` holds structured detail (table, field, record id, ...) for
    logs; ``cause`` keeps the underlying library exception, if any.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retry_policy: RetryPolicy = RetryPolicy.NEVER,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.retry_policy = retry_policy
        self.context: Dict[str, Any] = dict(context or {})
        self.cause = cause
        self.occurred_at = datetime.now(timezone.utc)

    def is_retryable(self) -> bool:
        return self.retry_policy is not RetryPolicy.NEVER

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured logs."""
        data: Dict[str, Any] = {
            "type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "retry_policy": self.retry_policy.value,
            "occurred_at": self.occurred_at.isoformat(),
        }
        if self.context:
            data["context"] = self.context
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data

    def __str__(self) -> str:
        return f"{type(self).__name__}[{self.error_code}]: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(error_code={self.error_code!r}, message={self.message!r})"


from .access_errors import (  # noqa: E402
    NotAuthenticatedError,
    PermissionDeniedError,
    ValidationError,
)
from .integration_errors import (  # noqa: E402
    AssistantError,
    ConfigurationError,
    PaymentGatewayError,
)
from .store_errors import RecordNotFoundError, StoreError  # noqa: E402

__all__ = [
    "EduManagerError",
    "ErrorSeverity",
    "RetryPolicy",
    "NotAuthenticatedError",
    "PermissionDeniedError",
    "ValidationError",
    "StoreError",
    "RecordNotFoundError",
    "PaymentGatewayError",
    "AssistantError",
    "ConfigurationError",
]
