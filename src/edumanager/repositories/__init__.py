"""
Access-scoped repositories.

Each repository fetches only the rows its caller may see, caches them, and
keeps the cache consistent after successful writes. Row scoping comes from
the shared policy table in ``policy``.
"""

from .assistant_logs import AssistantLogRepository
from .attendance import AttendanceRepository
from .base import AccessScopedRepository
from .classes import ClassRepository
from .factory import RepositoryFactory
from .performance import PerformanceRepository
from .policy import (
    ACCESS_POLICY,
    PERMISSIONS,
    Action,
    Entity,
    RowFilter,
    Scope,
    ScopeResolver,
    can,
    permitted_actions,
)
from .settings import SettingsRepository
from .state import RecordCache, RepositoryStatus
from .students import StudentRepository
from .subjects import SubjectRepository
from .timetable import TimetableRepository

__all__ = [
    "ACCESS_POLICY",
    "PERMISSIONS",
    "AccessScopedRepository",
    "Action",
    "AssistantLogRepository",
    "AttendanceRepository",
    "ClassRepository",
    "Entity",
    "PerformanceRepository",
    "RecordCache",
    "RepositoryFactory",
    "RepositoryStatus",
    "RowFilter",
    "Scope",
    "ScopeResolver",
    "SettingsRepository",
    "StudentRepository",
    "SubjectRepository",
    "TimetableRepository",
    "can",
    "permitted_actions",
]
