# src/edumanager/repositories/classes.py
from __future__ import annotations

from collections import Counter
from typing import Iterable, List

from edumanager.schemas.payloads import ClassCreate
from edumanager.schemas.records import SchoolClass
from edumanager.store.base import Filter, Order, Row

from .base import AccessScopedRepository
from .policy import Entity


class ClassRepository(AccessScopedRepository[SchoolClass]):
    entity = Entity.CLASSES
    table = "classes"
    record_model = SchoolClass
    create_model = ClassCreate
    default_order = (Order("grade_level"), Order("name"))
    embed = ("teacher",)
    derived_fields = frozenset({"student_count"})

    async def _hydrate(self, rows: Iterable[Row]) -> List[SchoolClass]:
        rows = list(rows)
        if not rows:
            return []
        students = await self._store.select(
            "students", filters=[Filter.in_("class_id", [row["id"] for row in rows])]
        )
        counts = Counter(s["class_id"] for s in students)
        return [
            self._record_from_row({**row, "student_count": counts.get(row["id"], 0)})
            for row in rows
        ]

    def _carry_over(self, record: SchoolClass) -> SchoolClass:
        # the store row has no count; keep the one computed at fetch time
        previous = self.get(record.id)
        if previous is None:
            return record
        return record.model_copy(update={"student_count": previous.student_count})

    def taught_by(self, teacher_id: str) -> List[SchoolClass]:
        return [c for c in self.items if c.teacher_id == teacher_id]
