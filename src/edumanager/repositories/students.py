# src/edumanager/repositories/students.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from edumanager.auth.context import CallerContext
from edumanager.auth.identity import IdentityProvider
from edumanager.schemas.enums import Role
from edumanager.schemas.payloads import StudentCreate
from edumanager.schemas.records import Student
from edumanager.store.base import RecordStore

from .base import AccessScopedRepository
from .policy import Entity, ScopeResolver


class StudentRepository(AccessScopedRepository[Student]):
    """
    Student roster.

    Creating a student first registers a User account with a temporary
    password, then inserts the roster row pointing at it. If the insert
    fails the account is left in place.
    """

    entity = Entity.STUDENTS
    table = "students"
    record_model = Student
    create_model = StudentCreate
    embed = ("user", "school_class")

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityProvider,
        temp_password: str,
        resolver: Optional[ScopeResolver] = None,
    ) -> None:
        super().__init__(store, resolver)
        self._identity = identity
        self._temp_password = temp_password

    async def _before_create(self, caller: CallerContext, values: Dict[str, Any]) -> Dict[str, Any]:
        full_name = values.pop("full_name")
        email = values.pop("email")
        account = await self._identity.sign_up(
            email, self._temp_password, {"full_name": full_name, "role": Role.STUDENT}
        )
        if not account.ok:
            raise account.error
        values["user_id"] = account.data.id
        return values

    def by_class(self, class_id: str) -> List[Student]:
        return [s for s in self.items if s.class_id == class_id]
