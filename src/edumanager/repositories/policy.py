# src/edumanager/repositories/policy.py
"""
Shared access policy.

Two declarative tables drive every repository:

* ``ACCESS_POLICY`` maps ``(entity, role)`` to the ``Scope`` of rows the
  caller may read. ``ScopeResolver`` turns a scope into store filters.
  Payments are not stored rows, so they only appear in ``PERMISSIONS``.
* ``PERMISSIONS`` maps ``(entity, role)`` to the actions a screen may
  expose. Repositories also refuse mutations outside this set; the store's
  own row-level security remains the real boundary.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from edumanager.auth.context import CallerContext
from edumanager.observability import get_logger
from edumanager.schemas.enums import Role
from edumanager.store.base import AnyOf, Condition, Filter, RecordStore

logger = get_logger(__name__)


class Entity(str, Enum):
    STUDENTS = "students"
    CLASSES = "classes"
    ATTENDANCE = "attendance"
    PERFORMANCE = "performance"
    TIMETABLE = "timetable"
    SUBJECTS = "subjects"
    USER_SETTINGS = "user_settings"
    ASSISTANT_LOGS = "assistant_logs"
    PAYMENTS = "payments"


class Scope(str, Enum):
    ALL = "all"
    SELF = "self"  # user_id == caller
    TEACHER_CLASSES = "teacher_classes"  # class_id in the teacher's classes
    SELF_OR_TEACHER_CLASSES = "self_or_teacher_classes"
    TEACHER_STUDENTS = "teacher_students"  # user_id of a student in the teacher's classes
    OWN_CLASSES = "own_classes"  # classes.teacher_id == caller
    ENROLLED_CLASS = "enrolled_class"  # the class the student is enrolled in


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MARK = "mark"


_A, _T, _S = Role.ADMIN, Role.TEACHER, Role.STUDENT


def _for_roles(entity: Entity, admin: Scope, teacher: Scope, student: Scope):
    return {(entity, _A): admin, (entity, _T): teacher, (entity, _S): student}


ACCESS_POLICY: Dict[Tuple[Entity, Role], Scope] = {
    **_for_roles(Entity.STUDENTS, Scope.ALL, Scope.TEACHER_CLASSES, Scope.SELF),
    **_for_roles(Entity.ATTENDANCE, Scope.ALL, Scope.TEACHER_CLASSES, Scope.SELF),
    **_for_roles(Entity.TIMETABLE, Scope.ALL, Scope.SELF_OR_TEACHER_CLASSES, Scope.SELF),
    **_for_roles(Entity.PERFORMANCE, Scope.ALL, Scope.TEACHER_STUDENTS, Scope.SELF),
    **_for_roles(Entity.CLASSES, Scope.ALL, Scope.OWN_CLASSES, Scope.ENROLLED_CLASS),
    **_for_roles(Entity.SUBJECTS, Scope.ALL, Scope.ALL, Scope.ALL),
    **_for_roles(Entity.USER_SETTINGS, Scope.SELF, Scope.SELF, Scope.SELF),
    **_for_roles(Entity.ASSISTANT_LOGS, Scope.SELF, Scope.SELF, Scope.SELF),
}


_CRUD = frozenset({Action.READ, Action.CREATE, Action.UPDATE, Action.DELETE})
_READ = frozenset({Action.READ})
_NONE: FrozenSet[Action] = frozenset()

PERMISSIONS: Dict[Tuple[Entity, Role], FrozenSet[Action]] = {
    (Entity.STUDENTS, _A): _CRUD,
    (Entity.STUDENTS, _T): _READ,
    (Entity.STUDENTS, _S): _READ,
    (Entity.CLASSES, _A): _CRUD,
    (Entity.CLASSES, _T): _READ,
    (Entity.CLASSES, _S): _READ,
    (Entity.ATTENDANCE, _A): _CRUD | {Action.MARK},
    (Entity.ATTENDANCE, _T): _CRUD | {Action.MARK},
    (Entity.ATTENDANCE, _S): _READ,
    (Entity.PERFORMANCE, _A): _CRUD,
    (Entity.PERFORMANCE, _T): _CRUD,
    (Entity.PERFORMANCE, _S): _READ,
    (Entity.TIMETABLE, _A): _CRUD,
    (Entity.TIMETABLE, _T): _CRUD,
    (Entity.TIMETABLE, _S): _READ,
    (Entity.SUBJECTS, _A): _CRUD,
    (Entity.SUBJECTS, _T): _READ,
    (Entity.SUBJECTS, _S): _READ,
    # settings rows are upserted, never created or deleted directly
    (Entity.USER_SETTINGS, _A): frozenset({Action.READ, Action.UPDATE}),
    (Entity.USER_SETTINGS, _T): frozenset({Action.READ, Action.UPDATE}),
    (Entity.USER_SETTINGS, _S): frozenset({Action.READ, Action.UPDATE}),
    # append-only
    (Entity.ASSISTANT_LOGS, _A): frozenset({Action.READ, Action.CREATE}),
    (Entity.ASSISTANT_LOGS, _T): frozenset({Action.READ, Action.CREATE}),
    (Entity.ASSISTANT_LOGS, _S): frozenset({Action.READ, Action.CREATE}),
    (Entity.PAYMENTS, _A): frozenset({Action.READ, Action.CREATE}),
    (Entity.PAYMENTS, _T): frozenset({Action.READ, Action.CREATE}),
    (Entity.PAYMENTS, _S): _NONE,
}


def permitted_actions(role: Role, entity: Entity) -> FrozenSet[Action]:
    """Actions a screen for ``entity`` may offer to ``role``."""
    return PERMISSIONS.get((Entity(entity), Role(role)), _NONE)


def can(role: Role, action: Action, entity: Entity) -> bool:
    return Action(action) in permitted_actions(role, entity)


def scope_for(entity: Entity, role: Role) -> Scope:
    return ACCESS_POLICY[(Entity(entity), Role(role))]


@dataclass(frozen=True)
class RowFilter:
    """
    Store filters for one fetch. ``empty`` means the caller can see nothing
    and the store must not be queried.
    """

    filters: Tuple[Condition, ...] = ()
    empty: bool = False

    @classmethod
    def nothing(cls) -> "RowFilter":
        return cls(empty=True)

    @classmethod
    def where(cls, *filters: Condition) -> "RowFilter":
        return cls(filters=tuple(filters))


class ScopeResolver:
    """Turns a caller's scope into concrete store filters."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def teacher_class_ids(self, teacher_id: str) -> List[str]:
        rows = await self._store.select("classes", filters=[Filter.eq("teacher_id", teacher_id)])
        return [row["id"] for row in rows]

    async def enrolled_class_id(self, user_id: str) -> Optional[str]:
        rows = await self._store.select("students", filters=[Filter.eq("user_id", user_id)], limit=1)
        return rows[0].get("class_id") if rows else None

    async def resolve(self, entity: Entity, caller: CallerContext) -> RowFilter:
        """
        Build the row filter for ``caller`` reading ``entity``.

        Teacher scopes that depend on the teacher's classes short-circuit to
        an empty result when the teacher has none.
        """
        scope = scope_for(entity, caller.role)
        caller_id = caller.caller_id

        if scope is Scope.ALL:
            return RowFilter()
        if scope is Scope.SELF:
            return RowFilter.where(Filter.eq("user_id", caller_id))
        if scope is Scope.OWN_CLASSES:
            return RowFilter.where(Filter.eq("teacher_id", caller_id))
        if scope is Scope.ENROLLED_CLASS:
            class_id = await self.enrolled_class_id(caller_id)
            if class_id is None:
                return RowFilter.nothing()
            return RowFilter.where(Filter.eq("id", class_id))

        class_ids = await self.teacher_class_ids(caller_id)
        if not class_ids:
            logger.debug(f"Teacher {caller_id} has no classes; {entity.value} scope is empty")
            return RowFilter.nothing()

        if scope is Scope.TEACHER_CLASSES:
            return RowFilter.where(Filter.in_("class_id", class_ids))
        if scope is Scope.SELF_OR_TEACHER_CLASSES:
            return RowFilter.where(
                AnyOf.of(Filter.eq("user_id", caller_id), Filter.in_("class_id", class_ids))
            )
        if scope is Scope.TEACHER_STUDENTS:
            students = await self._store.select(
                "students", filters=[Filter.in_("class_id", class_ids)]
            )
            user_ids = [row["user_id"] for row in students]
            if not user_ids:
                return RowFilter.nothing()
            return RowFilter.where(Filter.in_("user_id", user_ids))

        raise ValueError(f"Unhandled scope {scope}")
