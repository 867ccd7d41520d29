# src/edumanager/auth/context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from edumanager.schemas.enums import Role


@dataclass(frozen=True)
class CallerContext:
    """
    Who is asking. Passed explicitly into every repository operation.

    ``caller_id`` is ``None`` when no session is resolved; such callers are
    refused before the store is contacted.
    """

    caller_id: Optional[str]
    role: Role
    full_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.caller_id)

    @classmethod
    def anonymous(cls) -> "CallerContext":
        return cls(caller_id=None, role=Role.STUDENT)
