# tests/conftest.py
"""
Fixtures for an in-process EduManager stack.

Every test gets a fresh in-memory SQLite database (aiosqlite), a record store
over it, and a small seeded school:

- one admin
- a teacher who owns class 7A, and a teacher with no classes
- students alice and bob in 7A, carol in 9B (9B has no teacher)
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict

import pytest

from edumanager.auth import CallerContext, StoreIdentityProvider
from edumanager.db.session import create_engine, init_models, make_sessionmaker
from edumanager.repositories import RepositoryFactory
from edumanager.schemas.enums import Role
from edumanager.settings import Settings
from edumanager.store import SQLAlchemyRecordStore

TEST_PASSWORD = "test-password"
# keeps sign-up fast; production uses the module default
FAST_ROUNDS = 1000


# =========================
# Logging -> stdout
# =========================
@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    """Send test logs to stdout so they show up under pytest -s or log_cli=true."""
    root = logging.getLogger()
    if not any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
        for h in root.handlers
    ):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(os.getenv("TEST_LOG_LEVEL", "INFO").upper())


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture(scope="session", autouse=True)
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        OPENAI_API_KEY=None,
        FLUTTERWAVE_SECRET_KEY="FLWSECK_TEST-secret",
        PUBLIC_URL="https://portal.school.edu/",
        STUDENT_TEMP_PASSWORD="temp123456",
        ASSISTANT_LOG_LIMIT=50,
    )


@pytest.fixture
async def store():
    engine = create_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_models(engine)
    yield SQLAlchemyRecordStore(make_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture
def identity(store) -> StoreIdentityProvider:
    return StoreIdentityProvider(store, rounds=FAST_ROUNDS)


@pytest.fixture
def factory(store, identity, settings) -> RepositoryFactory:
    return RepositoryFactory(store, identity, settings)


@dataclass
class School:
    admin: CallerContext
    teacher: CallerContext
    idle_teacher: CallerContext
    class_7a: str
    class_9b: str
    students: Dict[str, CallerContext] = field(default_factory=dict)
    # student name -> students.id
    roster_ids: Dict[str, str] = field(default_factory=dict)


async def _account(identity, email: str, full_name: str, role: Role) -> CallerContext:
    result = await identity.sign_up(email, TEST_PASSWORD, {"full_name": full_name, "role": role})
    user = result.unwrap()
    return CallerContext(caller_id=user.id, role=role, full_name=full_name)


@pytest.fixture
async def school(store, identity) -> School:
    admin = await _account(identity, "admin@school.edu", "Ada Admin", Role.ADMIN)
    teacher = await _account(identity, "tess@school.edu", "Tess Teacher", Role.TEACHER)
    idle_teacher = await _account(identity, "ivan@school.edu", "Ivan Idle", Role.TEACHER)

    class_7a = await store.insert(
        "classes",
        {"name": "7A", "grade_level": 7, "academic_year": "2024-2025", "teacher_id": teacher.caller_id},
    )
    class_9b = await store.insert(
        "classes", {"name": "9B", "grade_level": 9, "academic_year": "2024-2025"}
    )

    seeded = School(
        admin=admin,
        teacher=teacher,
        idle_teacher=idle_teacher,
        class_7a=class_7a["id"],
        class_9b=class_9b["id"],
    )
    for name, class_id in (("alice", seeded.class_7a), ("bob", seeded.class_7a), ("carol", seeded.class_9b)):
        caller = await _account(identity, f"{name}@school.edu", name.title(), Role.STUDENT)
        row = await store.insert(
            "students",
            {
                "user_id": caller.caller_id,
                "student_id": f"STU-{name.upper()}",
                "class_id": class_id,
                "parent_name": f"{name.title()} Parent",
            },
        )
        seeded.students[name] = caller
        seeded.roster_ids[name] = row["id"]
    return seeded
