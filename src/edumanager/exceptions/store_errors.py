"""
Record store failures.
"""

from typing import Any, Dict, Optional

from . import EduManagerError, ErrorSeverity, RetryPolicy


class StoreError(EduManagerError):
    """
    Any failure surfaced by the record store: connectivity, constraint
    violation or permission denial.
    """

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
        error_code: str = "store_error",
        retry_policy: RetryPolicy = RetryPolicy.BACKOFF,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        context = dict(context or {})
        if table:
            context["table"] = table
        if operation:
            context["operation"] = operation
        super().__init__(
            message=message,
            error_code=error_code,
            severity=ErrorSeverity.MEDIUM,
            retry_policy=retry_policy,
            context=context,
            cause=cause,
        )
        self.table = table
        self.operation = operation


class RecordNotFoundError(StoreError):
    """Raised when an update or delete matches no row."""

    def __init__(self, table: str, record_id: Any, operation: str) -> None:
        super().__init__(
            message=f"No {table} row with id '{record_id}'",
            table=table,
            operation=operation,
            error_code="record_not_found",
            retry_policy=RetryPolicy.NEVER,
            context={"record_id": str(record_id)},
        )
        self.record_id = record_id
