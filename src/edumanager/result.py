# src/edumanager/result.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from edumanager.exceptions import EduManagerError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a repository or service call.

    Exactly one of ``data`` and ``error`` is set. Callers branch on ``ok``
    rather than catching exceptions.
    """

    data: Optional[T] = None
    error: Optional[EduManagerError] = None

    def __post_init__(self) -> None:
        if (self.data is None) == (self.error is None):
            raise ValueError("Result needs exactly one of data or error")

    @classmethod
    def success(cls, data: T) -> "Result[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: EduManagerError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return ``data`` or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]
