# src/edumanager/auth/identity.py
"""
Identity provider interface and a store-backed adapter.

The adapter keeps accounts in the ``users`` table with a PBKDF2 password
hash. There are no session tokens; each provider instance tracks one
signed-in caller.
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Any, Mapping, Optional, Protocol

from edumanager.exceptions import (
    EduManagerError,
    NotAuthenticatedError,
    ValidationError,
)
from edumanager.observability import get_logger
from edumanager.result import Result
from edumanager.schemas.enums import Role
from edumanager.schemas.records import User
from edumanager.store.base import Filter, RecordStore

from .context import CallerContext

logger = get_logger(__name__)

PBKDF2_ROUNDS = 260000

_PROFILE_FIELDS = ("full_name", "role", "phone", "address", "date_of_birth")


def hash_password(password: str, rounds: int = PBKDF2_ROUNDS) -> str:
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), rounds)
    return f"pbkdf2_sha256${rounds}${salt}${dk.hex()}"


def verify_password(password: str, encoded: Optional[str]) -> bool:
    if not encoded:
        return False
    try:
        algorithm, rounds, salt, expected = encoded.split("$", 3)
        if algorithm != "pbkdf2_sha256":
            return False
        dk = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt), int(rounds)
        )
    except ValueError:
        return False
    return hmac.compare_digest(dk.hex(), expected)


class IdentityProvider(Protocol):
    @property
    def current_caller(self) -> CallerContext: ...

    async def sign_in(self, email: str, password: str) -> Result[CallerContext]: ...

    async def sign_up(
        self, email: str, password: str, profile: Mapping[str, Any]
    ) -> Result[User]: ...

    async def sign_out(self) -> Result[bool]: ...


class StoreIdentityProvider:
    """Accounts live in the record store's ``users`` table."""

    def __init__(self, store: RecordStore, rounds: int = PBKDF2_ROUNDS) -> None:
        self._store = store
        self._rounds = rounds
        self._current = CallerContext.anonymous()

    @property
    def current_caller(self) -> CallerContext:
        return self._current

    async def sign_in(self, email: str, password: str) -> Result[CallerContext]:
        try:
            rows = await self._store.select(
                "users", filters=[Filter.eq("email", email.strip().lower())], limit=1
            )
        except EduManagerError as e:
            logger.error(f"Error signing in: {e}")
            return Result.failure(e)

        if not rows or not verify_password(password, rows[0].get("password_hash")):
            logger.info("Sign-in rejected")
            return Result.failure(NotAuthenticatedError(operation="sign_in"))

        row = rows[0]
        self._current = CallerContext(
            caller_id=row["id"], role=Role(row["role"]), full_name=row.get("full_name")
        )
        logger.info(f"Signed in {row['id']} as {row['role']}")
        return Result.success(self._current)

    async def sign_up(
        self, email: str, password: str, profile: Mapping[str, Any]
    ) -> Result[User]:
        """
        Register a new account. Does not change the signed-in caller.

        ``profile`` supplies ``full_name`` and ``role`` (default student) plus
        optional contact fields.
        """
        email = email.strip().lower()
        if not password:
            return Result.failure(ValidationError("Password is required", field="password"))
        if not profile.get("full_name"):
            return Result.failure(ValidationError("Full name is required", field="full_name"))
        try:
            role = Role(profile.get("role", Role.STUDENT))
        except ValueError as e:
            return Result.failure(
                ValidationError(f"Unknown role: {profile.get('role')}", field="role", cause=e)
            )

        try:
            existing = await self._store.select("users", filters=[Filter.eq("email", email)], limit=1)
            if existing:
                return Result.failure(
                    ValidationError("Email is already registered", field="email")
                )
            payload = {k: profile[k] for k in _PROFILE_FIELDS if profile.get(k) is not None}
            payload.update(
                email=email,
                role=role.value,
                password_hash=hash_password(password, self._rounds),
            )
            row = await self._store.insert("users", payload)
        except EduManagerError as e:
            logger.error(f"Error signing up: {e}")
            return Result.failure(e)

        logger.info(f"Registered {role.value} account {row['id']}")
        return Result.success(User.model_validate(row))

    async def sign_out(self) -> Result[bool]:
        self._current = CallerContext.anonymous()
        return Result.success(True)
