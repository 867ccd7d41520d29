"""
Record store interface.

The store owns every row. Callers describe what they want with ``Filter``,
``AnyOf`` and ``Order`` values; rows come back as plain dicts, with related
rows nested under their relationship name when requested through ``embed``.
Every method raises ``StoreError`` (or ``RecordNotFoundError``) on failure.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

Row = Dict[str, Any]


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def in_(cls, column: str, values: Iterable[Any]) -> "Filter":
        return cls(column, "in", tuple(values))


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of filters; a row matches when any member matches."""

    filters: Tuple[Filter, ...]

    @classmethod
    def of(cls, *filters: Filter) -> "AnyOf":
        return cls(tuple(filters))


Condition = Union[Filter, AnyOf]


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False


class RecordStore(Protocol):
    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Condition] = (),
        order: Sequence[Order] = (),
        limit: Optional[int] = None,
        embed: Sequence[str] = (),
    ) -> List[Row]: ...

    async def insert(
        self, table: str, payload: Mapping[str, Any], *, embed: Sequence[str] = ()
    ) -> Row: ...

    async def update(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        *,
        embed: Sequence[str] = (),
    ) -> Row: ...

    async def delete(self, table: str, record_id: str) -> None: ...

    async def upsert(
        self,
        table: str,
        payload: Mapping[str, Any],
        *,
        on_conflict: Sequence[str],
        embed: Sequence[str] = (),
    ) -> Row: ...

    async def rpc(self, name: str, args: Mapping[str, Any]) -> Any: ...
