# src/edumanager/repositories/performance.py
from __future__ import annotations

from typing import Any, Dict

from edumanager.analytics.aggregation import PerformanceStats, performance_stats
from edumanager.auth.context import CallerContext
from edumanager.db.base import utcnow
from edumanager.exceptions import RecordNotFoundError, ValidationError
from edumanager.schemas.payloads import PerformanceCreate
from edumanager.schemas.records import PerformanceRecord
from edumanager.store.base import Filter, Order

from .base import AccessScopedRepository
from .policy import Entity


def check_score_bounds(score: float, max_score: float) -> None:
    if max_score <= 0:
        raise ValidationError("max_score must be greater than 0", field="max_score")
    if score < 0 or score > max_score:
        raise ValidationError(
            f"score must be between 0 and {max_score}",
            field="score",
            context={"score": score, "max_score": max_score},
        )


class PerformanceRepository(AccessScopedRepository[PerformanceRecord]):
    entity = Entity.PERFORMANCE
    table = "performance"
    record_model = PerformanceRecord
    create_model = PerformanceCreate
    default_order = (Order("recorded_at", descending=True),)

    async def _before_create(self, caller: CallerContext, values: Dict[str, Any]) -> Dict[str, Any]:
        values["recorded_at"] = utcnow()
        values.setdefault("recorded_by", caller.caller_id)
        return values

    async def _validate_update(
        self, caller: CallerContext, record_id: str, fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        if "score" not in fields and "max_score" not in fields:
            return fields

        current = self.get(record_id)
        if current is None:
            rows = await self._store.select(
                self.table, filters=[Filter.eq("id", record_id)], limit=1
            )
            if not rows:
                raise RecordNotFoundError(self.table, record_id, "update")
            current = self._record_from_row(rows[0])

        check_score_bounds(
            fields.get("score", current.score), fields.get("max_score", current.max_score)
        )
        return fields

    def stats(self) -> PerformanceStats:
        return performance_stats(self.items)
