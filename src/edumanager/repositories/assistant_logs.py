# src/edumanager/repositories/assistant_logs.py
from __future__ import annotations

from typing import Any, Dict, Optional

from edumanager.auth.context import CallerContext
from edumanager.exceptions import ValidationError
from edumanager.result import Result
from edumanager.schemas.records import AssistantLog
from edumanager.store.base import Order, RecordStore

from .base import AccessScopedRepository
from .policy import Entity, ScopeResolver


class AssistantLogRepository(AccessScopedRepository[AssistantLog]):
    """Append-only history of assistant prompts and replies, newest first."""

    entity = Entity.ASSISTANT_LOGS
    table = "assistant_logs"
    record_model = AssistantLog
    default_order = (Order("created_at", descending=True),)

    def __init__(
        self,
        store: RecordStore,
        limit: int = 50,
        resolver: Optional[ScopeResolver] = None,
    ) -> None:
        super().__init__(store, resolver)
        self.fetch_limit = limit

    async def _before_create(self, caller: CallerContext, values: Dict[str, Any]) -> Dict[str, Any]:
        if not values.get("prompt") or values.get("response") is None:
            raise ValidationError("prompt and response are required", field="prompt")
        values["user_id"] = caller.caller_id
        return values

    async def save_interaction(
        self, caller: CallerContext, prompt: str, response: str
    ) -> Result[AssistantLog]:
        return await self.create(caller, {"prompt": prompt, "response": response})
