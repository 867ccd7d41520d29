# src/edumanager/repositories/settings.py
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from edumanager.auth.context import CallerContext
from edumanager.db.base import utcnow
from edumanager.exceptions import EduManagerError, ValidationError
from edumanager.observability import get_logger
from edumanager.result import Result
from edumanager.schemas.enums import ThemeOption
from edumanager.schemas.payloads import SettingsUpdate
from edumanager.schemas.records import UserSettings

from .base import AccessScopedRepository, validation_error_from
from .policy import Action, Entity

logger = get_logger(__name__)


class SettingsRepository(AccessScopedRepository[UserSettings]):
    """
    The caller's own settings row.

    The cache holds a single item, the row of whoever fetched or saved last.
    Until the user saves something there is no row in the store and
    ``fetch`` yields the defaults instead.
    """

    entity = Entity.USER_SETTINGS
    table = "user_settings"
    record_model = UserSettings
    default_order = ()

    @property
    def current(self) -> Optional[UserSettings]:
        items = self.items
        return items[0] if items else None

    async def fetch(self, caller: CallerContext) -> Result[List[UserSettings]]:
        result = await super().fetch(caller)
        if result.ok and not result.data:
            defaults = UserSettings.defaults(caller.caller_id)
            self._cache.replace([defaults])
            return Result.success([defaults])
        return result

    async def update_settings(
        self, caller: CallerContext, updates: Union[SettingsUpdate, Mapping[str, Any]]
    ) -> Result[UserSettings]:
        """Upsert the caller's row with ``updates``, stamping ``updated_at``."""
        with self._scope(caller, "update_settings"):
            denied = self._guard(caller, Action.UPDATE)
            if denied is not None:
                return Result.failure(denied)

            try:
                try:
                    fields = SettingsUpdate.model_validate(
                        updates.model_dump() if isinstance(updates, SettingsUpdate) else updates
                    ).model_dump(exclude_none=True)
                except PydanticValidationError as e:
                    raise validation_error_from(e) from e
                if not fields:
                    raise ValidationError("No settings to update")

                row = await self._store.upsert(
                    self.table,
                    {"user_id": caller.caller_id, **fields, "updated_at": utcnow()},
                    on_conflict=("user_id",),
                )
                record = self._record_from_row(row)
            except EduManagerError as e:
                logger.error(f"Error updating settings: {e}")
                return Result.failure(e)

            # one row, always the latest caller's
            self._cache.replace([record])
            logger.info(f"Saved settings for {caller.caller_id}: {sorted(fields)}")
            return Result.success(record)

    async def update_theme(
        self, caller: CallerContext, theme: Union[ThemeOption, str]
    ) -> Result[UserSettings]:
        return await self.update_settings(caller, {"theme": theme})

    async def toggle_notifications(self, caller: CallerContext) -> Result[UserSettings]:
        current = self._own(caller)
        if current is None:
            fetched = await self.fetch(caller)
            if not fetched.ok:
                return Result.failure(fetched.error)
            current = fetched.data[0]
        return await self.update_settings(
            caller, {"notifications_enabled": not current.notifications_enabled}
        )

    async def update_language(self, caller: CallerContext, language: str) -> Result[UserSettings]:
        return await self.update_settings(caller, {"language": language})

    def _own(self, caller: CallerContext) -> Optional[UserSettings]:
        return self._cache.find(lambda s: s.user_id == caller.caller_id)
