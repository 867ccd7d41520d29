# src/edumanager/repositories/factory.py
from __future__ import annotations

from functools import cached_property
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from edumanager.auth.identity import IdentityProvider, StoreIdentityProvider
from edumanager.settings import Settings, get_settings
from edumanager.store.base import RecordStore

from .assistant_logs import AssistantLogRepository
from .attendance import AttendanceRepository
from .classes import ClassRepository
from .performance import PerformanceRepository
from .policy import ScopeResolver
from .settings import SettingsRepository
from .students import StudentRepository
from .subjects import SubjectRepository
from .timetable import TimetableRepository


class RepositoryFactory:
    """
    One repository of each kind over a shared store, identity provider and
    scope resolver. Repositories are built on first access and reused, so
    their caches live as long as the factory.
    """

    def __init__(
        self,
        store: RecordStore,
        identity: Optional[IdentityProvider] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.identity = identity or StoreIdentityProvider(store)
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RepositoryFactory":
        """Build a factory over the configured database."""
        from edumanager.db.session import create_engine, make_sessionmaker
        from edumanager.store.sql import SQLAlchemyRecordStore

        settings = settings or get_settings()
        engine = create_engine(settings.DATABASE_URL)
        store = SQLAlchemyRecordStore(make_sessionmaker(engine))
        factory = cls(store, settings=settings)
        factory.engine = engine
        return factory

    async def dispose(self) -> None:
        """Close the pooled connections of an engine built by ``from_settings``."""
        if self.engine is not None:
            await self.engine.dispose()

    @cached_property
    def resolver(self) -> ScopeResolver:
        return ScopeResolver(self.store)

    @cached_property
    def students(self) -> StudentRepository:
        return StudentRepository(
            self.store, self.identity, self.settings.STUDENT_TEMP_PASSWORD, self.resolver
        )

    @cached_property
    def classes(self) -> ClassRepository:
        return ClassRepository(self.store, self.resolver)

    @cached_property
    def attendance(self) -> AttendanceRepository:
        return AttendanceRepository(self.store, self.resolver)

    @cached_property
    def performance(self) -> PerformanceRepository:
        return PerformanceRepository(self.store, self.resolver)

    @cached_property
    def timetable(self) -> TimetableRepository:
        return TimetableRepository(self.store, self.resolver)

    @cached_property
    def subjects(self) -> SubjectRepository:
        return SubjectRepository(self.store, self.resolver)

    @cached_property
    def user_settings(self) -> SettingsRepository:
        return SettingsRepository(self.store, self.resolver)

    @cached_property
    def assistant_logs(self) -> AssistantLogRepository:
        return AssistantLogRepository(self.store, self.settings.ASSISTANT_LOG_LIMIT, self.resolver)
