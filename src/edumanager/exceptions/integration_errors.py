"""
Failures from external collaborators: payment gateway, assistant, config.
"""

from typing import Any, Dict, Optional

from . import EduManagerError, ErrorSeverity, RetryPolicy


class ConfigurationError(EduManagerError):
    """Raised when a required setting (API key, secret) is missing."""

    def __init__(self, setting: str, message: Optional[str] = None) -> None:
        super().__init__(
            message=message or f"{setting} is not configured",
            error_code="config_missing",
            severity=ErrorSeverity.HIGH,
            retry_policy=RetryPolicy.NEVER,
            context={"setting": setting},
        )
        self.setting = setting


class PaymentGatewayError(EduManagerError):
    """Raised when the payment gateway rejects or fails a request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        context = dict(context or {})
        if status_code is not None:
            context["status_code"] = status_code
        retryable = status_code is None or status_code >= 500
        super().__init__(
            message=message,
            error_code="payment_gateway_error",
            severity=ErrorSeverity.MEDIUM,
            retry_policy=RetryPolicy.BACKOFF if retryable else RetryPolicy.NEVER,
            context=context,
            cause=cause,
        )
        self.status_code = status_code


class AssistantError(EduManagerError):
    """Raised when the assistant responder cannot produce an answer."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(
            message=message,
            error_code="assistant_error",
            severity=ErrorSeverity.LOW,
            retry_policy=RetryPolicy.IMMEDIATE,
            cause=cause,
        )
