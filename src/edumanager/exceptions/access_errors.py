"""
Caller-side failures: missing identity, forbidden action, rejected input.
"""

from typing import Any, Dict, Optional

from . import EduManagerError, ErrorSeverity, RetryPolicy


class NotAuthenticatedError(EduManagerError):
    """Raised when an operation is attempted without a resolved caller id."""

    def __init__(self, operation: Optional[str] = None) -> None:
        message = "User not authenticated"
        context: Dict[str, Any] = {}
        if operation:
            context["operation"] = operation
        super().__init__(
            message=message,
            error_code="not_authenticated",
            severity=ErrorSeverity.LOW,
            retry_policy=RetryPolicy.NEVER,
            context=context,
        )


class PermissionDeniedError(EduManagerError):
    """Raised when a role may not perform an action on an entity."""

    def __init__(self, role: str, action: str, entity: str) -> None:
        super().__init__(
            message=f"Role '{role}' may not {action} {entity}",
            error_code="permission_denied",
            severity=ErrorSeverity.LOW,
            retry_policy=RetryPolicy.NEVER,
            context={"role": role, "action": action, "entity": entity},
        )
        self.role = role
        self.action = action
        self.entity = entity


class ValidationError(EduManagerError):
    """
    Raised when input breaks a repository precondition.

    Covers numeric and schedule invariants (score bounds, time ordering,
    double-booking) and malformed payloads.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        context = dict(context or {})
        if field:
            context["field"] = field
        super().__init__(
            message=message,
            error_code="validation_failed",
            severity=ErrorSeverity.LOW,
            retry_policy=RetryPolicy.NEVER,
            context=context,
            cause=cause,
        )
        self.field = field
