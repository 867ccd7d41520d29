# src/edumanager/repositories/timetable.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

from edumanager.analytics.aggregation import sort_timetable, todays_timetable
from edumanager.auth.context import CallerContext
from edumanager.exceptions import EduManagerError, RecordNotFoundError, ValidationError
from edumanager.observability import get_logger
from edumanager.result import Result
from edumanager.schemas.enums import DayOfWeek
from edumanager.schemas.payloads import TimetableEntryCreate
from edumanager.schemas.records import TimetableEntry
from edumanager.store.base import AnyOf, Filter, Order, Row

from .base import AccessScopedRepository
from .policy import Action, Entity

logger = get_logger(__name__)

_SLOT_FIELDS = ("user_id", "class_id", "day", "start_time", "end_time")


def _overlaps(a: Mapping[str, Any], b: TimetableEntry) -> bool:
    return a["start_time"] < b.end_time and b.start_time < a["end_time"]


class TimetableRepository(AccessScopedRepository[TimetableEntry]):
    """
    Weekly timetable entries, kept sorted by day then start time.

    Creating or moving an entry is refused when it ends before it starts or
    overlaps another entry for the same user (or the same class) that day.
    """

    entity = Entity.TIMETABLE
    table = "timetable"
    record_model = TimetableEntry
    create_model = TimetableEntryCreate
    default_order = (Order("start_time"),)

    async def _hydrate(self, rows: Iterable[Row]) -> List[TimetableEntry]:
        return sort_timetable(await super()._hydrate(rows))

    async def _before_create(self, caller: CallerContext, values: Dict[str, Any]) -> Dict[str, Any]:
        clashes = await self._find_conflicts(values)
        if clashes:
            raise self._conflict_error(values, clashes)
        return values

    async def _validate_update(
        self, caller: CallerContext, record_id: str, fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        if not any(key in fields for key in _SLOT_FIELDS):
            return fields

        current = self.get(record_id)
        if current is None:
            rows = await self._store.select(self.table, filters=[Filter.eq("id", record_id)], limit=1)
            if not rows:
                raise RecordNotFoundError(self.table, record_id, "update")
            current = self._record_from_row(rows[0])

        slot = {key: fields.get(key, getattr(current, key)) for key in _SLOT_FIELDS}
        if slot["start_time"] >= slot["end_time"]:
            raise ValidationError("start_time must be earlier than end_time", field="start_time")
        clashes = await self._find_conflicts(slot, exclude_id=record_id)
        if clashes:
            raise self._conflict_error(slot, clashes)
        return fields

    async def conflicts(
        self,
        caller: CallerContext,
        entry: Union[TimetableEntryCreate, Mapping[str, Any]],
        exclude_id: Optional[str] = None,
    ) -> Result[List[TimetableEntry]]:
        """Entries that would overlap ``entry`` on the same day."""
        with self._scope(caller, "conflicts"):
            denied = self._guard(caller, Action.READ)
            if denied is not None:
                return Result.failure(denied)
            try:
                slot = self._validate_create(
                    entry.model_dump() if isinstance(entry, BaseModel) else entry
                )
                clashes = await self._find_conflicts(slot, exclude_id=exclude_id)
            except EduManagerError as e:
                logger.error(f"Error checking timetable conflicts: {e}")
                return Result.failure(e)
            return Result.success(clashes)

    def todays_timetable(self, day: Union[DayOfWeek, date, None] = None) -> List[TimetableEntry]:
        return todays_timetable(self.items, day)

    async def _find_conflicts(
        self, slot: Mapping[str, Any], exclude_id: Optional[str] = None
    ) -> List[TimetableEntry]:
        owners = [Filter.eq("user_id", slot["user_id"])]
        if slot.get("class_id"):
            owners.append(Filter.eq("class_id", slot["class_id"]))
        rows = await self._store.select(
            self.table,
            filters=[Filter.eq("day", DayOfWeek(slot["day"])), AnyOf.of(*owners)],
        )
        same_day = [self._record_from_row(row) for row in rows if row["id"] != exclude_id]
        return sort_timetable(e for e in same_day if _overlaps(slot, e))

    @staticmethod
    def _conflict_error(slot: Mapping[str, Any], clashes: List[TimetableEntry]) -> ValidationError:
        first = clashes[0]
        return ValidationError(
            f"Overlaps {first.subject} on {first.day.value} "
            f"{first.start_time:%H:%M}-{first.end_time:%H:%M}",
            field="start_time",
            context={"conflicting_ids": [c.id for c in clashes]},
        )
