# src/edumanager/repositories/state.py
from __future__ import annotations

from enum import Enum
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from edumanager.exceptions import EduManagerError

T = TypeVar("T")


class RepositoryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class RecordCache(Generic[T]):
    """
    Possibly-stale copy of the rows a caller last fetched.

    Status moves idle -> loading -> ready | error. A failed load keeps the
    previous items. Mutations go through ``prepend``, ``patch`` and
    ``remove`` so the cache stays consistent after a successful write.
    """

    def __init__(self) -> None:
        self._items: List[T] = []
        self._status = RepositoryStatus.IDLE
        self._last_error: Optional[EduManagerError] = None

    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def status(self) -> RepositoryStatus:
        return self._status

    @property
    def loading(self) -> bool:
        return self._status is RepositoryStatus.LOADING

    @property
    def last_error(self) -> Optional[EduManagerError]:
        return self._last_error

    def __len__(self) -> int:
        return len(self._items)

    def begin_load(self) -> None:
        self._status = RepositoryStatus.LOADING

    def replace(self, items: Sequence[T]) -> None:
        self._items = list(items)
        self._status = RepositoryStatus.READY
        self._last_error = None

    def fail(self, error: EduManagerError) -> None:
        self._status = RepositoryStatus.ERROR
        self._last_error = error

    def prepend(self, item: T) -> None:
        self._items.insert(0, item)

    def patch(self, match: Callable[[T], bool], item: T) -> bool:
        """Replace the first matching item in place. Returns whether one matched."""
        for index, existing in enumerate(self._items):
            if match(existing):
                self._items[index] = item
                return True
        return False

    def upsert(self, match: Callable[[T], bool], item: T) -> None:
        if not self.patch(match, item):
            self.prepend(item)

    def remove(self, match: Callable[[T], bool]) -> int:
        before = len(self._items)
        self._items = [existing for existing in self._items if not match(existing)]
        return before - len(self._items)

    def find(self, match: Callable[[T], bool]) -> Optional[T]:
        return next((item for item in self._items if match(item)), None)
