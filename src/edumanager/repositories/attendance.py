# src/edumanager/repositories/attendance.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from edumanager.analytics.aggregation import AttendanceStats, attendance_stats, todays_attendance
from edumanager.auth.context import CallerContext
from edumanager.exceptions import EduManagerError, ValidationError
from edumanager.observability import get_logger
from edumanager.result import Result
from edumanager.schemas.enums import AttendanceStatus
from edumanager.schemas.records import AttendanceRecord
from edumanager.store.base import Filter, Order

from .base import AccessScopedRepository
from .policy import Action, Entity

logger = get_logger(__name__)

StatusLike = Union[AttendanceStatus, str]


def _status(value: StatusLike) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError as e:
        raise ValidationError(f"Unknown attendance status: {value!r}", field="status", cause=e) from e


class AttendanceRepository(AccessScopedRepository[AttendanceRecord]):
    """
    Attendance records, at most one per (user_id, date).

    ``mark_one`` upserts on that key and patches the cache. ``mark_bulk``
    goes through the store's bulk procedure and re-fetches afterwards.
    """

    entity = Entity.ATTENDANCE
    table = "attendance"
    record_model = AttendanceRecord
    default_order = (Order("date", descending=True),)

    async def mark_one(
        self,
        caller: CallerContext,
        student_user_id: str,
        day: date,
        status: StatusLike,
        remarks: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> Result[AttendanceRecord]:
        with self._scope(caller, "mark_one", user_id=student_user_id):
            denied = self._guard(caller, Action.MARK)
            if denied is not None:
                return Result.failure(denied)

            try:
                payload: Dict[str, Any] = {
                    "user_id": student_user_id,
                    "date": day,
                    "status": _status(status),
                    "remarks": remarks or "",
                    "recorded_by": caller.caller_id,
                }
                if class_id is None:
                    class_id = await self._class_of(student_user_id)
                if class_id is not None:
                    payload["class_id"] = class_id
                row = await self._store.upsert(self.table, payload, on_conflict=("user_id", "date"))
                record = self._record_from_row(row)
            except EduManagerError as e:
                logger.error(f"Error marking attendance: {e}")
                return Result.failure(e)

            self._cache.upsert(
                lambda r: r.id == record.id or (r.user_id == record.user_id and r.date == record.date),
                record,
            )
            logger.info(f"Marked {student_user_id} {record.status.value} on {day.isoformat()}")
            return Result.success(record)

    async def mark_bulk(
        self,
        caller: CallerContext,
        class_id: str,
        day: date,
        recorded_by: Optional[str],
        status_by_student_id: Mapping[str, StatusLike],
    ) -> Result[int]:
        """
        Mark a whole class in one store call.

        Keys of ``status_by_student_id`` are student roster ids. The store
        applies every row or none; the cache is then re-fetched. The count is
        returned once the batch is committed, even when that re-fetch fails;
        its error is left on ``last_error``.
        """
        with self._scope(caller, "mark_bulk", class_id=class_id):
            denied = self._guard(caller, Action.MARK)
            if denied is not None:
                return Result.failure(denied)

            try:
                records = {sid: _status(status) for sid, status in status_by_student_id.items()}
                count = await self._store.rpc(
                    "mark_bulk_attendance",
                    {
                        "class_id": class_id,
                        "date": day,
                        "recorded_by": recorded_by or caller.caller_id,
                        "records": records,
                    },
                )
            except EduManagerError as e:
                logger.error(f"Error marking bulk attendance: {e}")
                return Result.failure(e)

            logger.info(f"Marked {count} students in class {class_id} on {day.isoformat()}")
            refreshed = await self.fetch(caller)
            if not refreshed.ok:
                logger.warning(f"Bulk attendance saved but refresh failed: {refreshed.error}")
            return Result.success(count)

    def todays_attendance_for(self, day: Optional[date] = None) -> List[AttendanceRecord]:
        return todays_attendance(self.items, day)

    def for_user(self, user_id: str) -> List[AttendanceRecord]:
        return [r for r in self.items if r.user_id == user_id]

    def stats(self) -> AttendanceStats:
        return attendance_stats(self.items)

    async def _class_of(self, student_user_id: str) -> Optional[str]:
        rows = await self._store.select(
            "students", filters=[Filter.eq("user_id", student_user_id)], limit=1
        )
        return rows[0].get("class_id") if rows else None
