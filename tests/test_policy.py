# tests/test_policy.py
from __future__ import annotations

import pytest

from edumanager.auth import CallerContext
from edumanager.repositories.policy import (
    ACCESS_POLICY,
    PERMISSIONS,
    Action,
    Entity,
    Scope,
    ScopeResolver,
    can,
    permitted_actions,
    scope_for,
)
from edumanager.schemas.enums import Role
from edumanager.store import AnyOf, Filter
from tests import FlakyStore


def test_every_entity_and_role_has_a_scope_and_permissions():
    for entity in Entity:
        for role in Role:
            assert (entity, role) in PERMISSIONS
            if entity is not Entity.PAYMENTS:
                assert (entity, role) in ACCESS_POLICY


def test_payments_have_permissions_but_no_row_scope():
    assert not any(entity is Entity.PAYMENTS for entity, _ in ACCESS_POLICY)
    assert permitted_actions(Role.STUDENT, Entity.PAYMENTS) == frozenset()
    assert can(Role.TEACHER, Action.CREATE, Entity.PAYMENTS)


@pytest.mark.parametrize(
    "role, action, entity, allowed",
    [
        (Role.ADMIN, Action.DELETE, Entity.STUDENTS, True),
        (Role.TEACHER, Action.CREATE, Entity.STUDENTS, False),
        (Role.STUDENT, Action.READ, Entity.STUDENTS, True),
        (Role.TEACHER, Action.MARK, Entity.ATTENDANCE, True),
        (Role.STUDENT, Action.MARK, Entity.ATTENDANCE, False),
        (Role.STUDENT, Action.UPDATE, Entity.PERFORMANCE, False),
        (Role.TEACHER, Action.UPDATE, Entity.TIMETABLE, True),
        (Role.TEACHER, Action.CREATE, Entity.SUBJECTS, False),
        (Role.STUDENT, Action.UPDATE, Entity.USER_SETTINGS, True),
        (Role.ADMIN, Action.DELETE, Entity.USER_SETTINGS, False),
        (Role.ADMIN, Action.UPDATE, Entity.ASSISTANT_LOGS, False),
        (Role.STUDENT, Action.READ, Entity.PAYMENTS, False),
        (Role.TEACHER, Action.CREATE, Entity.PAYMENTS, True),
    ],
)
def test_can(role, action, entity, allowed):
    assert can(role, action, entity) is allowed


def test_permitted_actions_accepts_raw_values():
    assert permitted_actions("student", "attendance") == frozenset({Action.READ})
    assert Action.MARK in permitted_actions(Role.ADMIN, Entity.ATTENDANCE)


def test_scope_table():
    assert scope_for(Entity.STUDENTS, Role.TEACHER) is Scope.TEACHER_CLASSES
    assert scope_for(Entity.PERFORMANCE, Role.TEACHER) is Scope.TEACHER_STUDENTS
    assert scope_for(Entity.TIMETABLE, Role.TEACHER) is Scope.SELF_OR_TEACHER_CLASSES
    assert scope_for(Entity.CLASSES, Role.STUDENT) is Scope.ENROLLED_CLASS
    assert scope_for(Entity.USER_SETTINGS, Role.ADMIN) is Scope.SELF
    assert all(scope_for(Entity.SUBJECTS, role) is Scope.ALL for role in Role)


@pytest.mark.anyio
async def test_admin_and_self_scopes_need_no_lookups(store, school):
    flaky = FlakyStore(store)
    resolver = ScopeResolver(flaky)

    assert (await resolver.resolve(Entity.STUDENTS, school.admin)).filters == ()
    own = await resolver.resolve(Entity.ATTENDANCE, school.students["alice"])
    assert own.filters == (Filter.eq("user_id", school.students["alice"].caller_id),)
    assert flaky.calls == []


@pytest.mark.anyio
async def test_teacher_scopes_follow_their_classes(store, school):
    resolver = ScopeResolver(store)
    teacher = school.teacher

    students = await resolver.resolve(Entity.STUDENTS, teacher)
    assert students.filters == (Filter.in_("class_id", [school.class_7a]),)

    timetable = await resolver.resolve(Entity.TIMETABLE, teacher)
    assert timetable.filters == (
        AnyOf.of(Filter.eq("user_id", teacher.caller_id), Filter.in_("class_id", [school.class_7a])),
    )

    performance = await resolver.resolve(Entity.PERFORMANCE, teacher)
    (condition,) = performance.filters
    assert condition.column == "user_id"
    assert set(condition.value) == {
        school.students["alice"].caller_id,
        school.students["bob"].caller_id,
    }

    classes = await resolver.resolve(Entity.CLASSES, teacher)
    assert classes.filters == (Filter.eq("teacher_id", teacher.caller_id),)


@pytest.mark.anyio
async def test_teacher_without_classes_sees_nothing(store, school):
    resolver = ScopeResolver(store)
    for entity in (Entity.STUDENTS, Entity.ATTENDANCE, Entity.TIMETABLE, Entity.PERFORMANCE):
        assert (await resolver.resolve(entity, school.idle_teacher)).empty


@pytest.mark.anyio
async def test_teacher_with_empty_class_sees_no_performance(store, school, identity):
    user = (await identity.sign_up("nia@school.edu", "pw", {"full_name": "Nia", "role": Role.TEACHER})).unwrap()
    await store.insert("classes", {"name": "6C", "grade_level": 6, "teacher_id": user.id})
    teacher = CallerContext(caller_id=user.id, role=Role.TEACHER)

    resolver = ScopeResolver(store)
    assert (await resolver.resolve(Entity.PERFORMANCE, teacher)).empty
    assert not (await resolver.resolve(Entity.ATTENDANCE, teacher)).empty


@pytest.mark.anyio
async def test_student_sees_only_enrolled_class(store, school, identity):
    resolver = ScopeResolver(store)
    scoped = await resolver.resolve(Entity.CLASSES, school.students["carol"])
    assert scoped.filters == (Filter.eq("id", school.class_9b),)

    user = (await identity.sign_up("new@school.edu", "pw", {"full_name": "New Kid"})).unwrap()
    unenrolled = CallerContext(caller_id=user.id, role=Role.STUDENT)
    assert (await resolver.resolve(Entity.CLASSES, unenrolled)).empty
