# tests/test_attendance.py
from __future__ import annotations

from datetime import date

import pytest

from edumanager.exceptions import PermissionDeniedError, StoreError, ValidationError
from edumanager.repositories import AttendanceRepository, RepositoryStatus
from edumanager.schemas.enums import AttendanceStatus
from edumanager.store import Filter
from tests import FlakyStore

pytestmark = pytest.mark.anyio

DAY = date(2024, 9, 9)


async def test_mark_one_keeps_one_record_per_student_and_day(factory, store, school):
    repo = factory.attendance
    alice = school.students["alice"].caller_id

    first = (await repo.mark_one(school.teacher, alice, DAY, "absent")).unwrap()
    assert first.class_id == school.class_7a
    assert first.recorded_by == school.teacher.caller_id

    second = (await repo.mark_one(school.teacher, alice, DAY, AttendanceStatus.LATE, remarks="bus")).unwrap()
    assert second.id == first.id
    assert second.status is AttendanceStatus.LATE
    assert [r.status for r in repo.items] == [AttendanceStatus.LATE]

    rows = await store.select("attendance", filters=[Filter.eq("user_id", alice)])
    assert len(rows) == 1


async def test_mark_one_validates_and_guards(factory, school):
    repo = factory.attendance
    alice = school.students["alice"].caller_id

    bad = await repo.mark_one(school.teacher, alice, DAY, "asleep")
    assert isinstance(bad.error, ValidationError)
    assert bad.error.field == "status"

    denied = await repo.mark_one(school.students["alice"], alice, DAY, "present")
    assert isinstance(denied.error, PermissionDeniedError)
    assert repo.items == []


async def test_mark_one_uses_the_given_class(factory, school):
    carol = school.students["carol"].caller_id
    record = (await factory.attendance.mark_one(school.admin, carol, DAY, "present", class_id=school.class_7a)).unwrap()
    assert record.class_id == school.class_7a


async def test_mark_bulk_writes_every_row_and_refreshes(factory, school):
    repo = factory.attendance
    count = await repo.mark_bulk(
        school.teacher,
        school.class_7a,
        DAY,
        None,
        {school.roster_ids["alice"]: "present", school.roster_ids["bob"]: AttendanceStatus.EXCUSED},
    )
    assert count.data == 2
    assert {r.status for r in repo.items} == {AttendanceStatus.PRESENT, AttendanceStatus.EXCUSED}
    assert {r.recorded_by for r in repo.items} == {school.teacher.caller_id}

    # re-marking the same day replaces rather than duplicates
    await repo.mark_bulk(
        school.teacher, school.class_7a, DAY, None, {school.roster_ids["alice"]: "late"}
    )
    assert len(repo.items) == 2
    assert {r.status for r in repo.for_user(school.students["alice"].caller_id)} == {AttendanceStatus.LATE}


async def test_mark_bulk_is_all_or_nothing(factory, store, school):
    repo = factory.attendance

    invalid = await repo.mark_bulk(
        school.teacher, school.class_7a, DAY, None, {school.roster_ids["alice"]: "asleep"}
    )
    assert isinstance(invalid.error, ValidationError)

    unknown = await repo.mark_bulk(
        school.teacher,
        school.class_7a,
        DAY,
        None,
        {school.roster_ids["alice"]: "present", "ghost": "present"},
    )
    assert isinstance(unknown.error, StoreError)
    assert await store.select("attendance") == []
    assert repo.items == []


async def test_mark_bulk_reports_the_committed_count_when_the_refresh_fails(store, school):
    flaky = FlakyStore(store, fail_on=("select",))
    repo = AttendanceRepository(flaky)

    result = await repo.mark_bulk(
        school.teacher, school.class_7a, DAY, None, {school.roster_ids["alice"]: "present"}
    )
    assert result.ok and result.data == 1
    assert repo.status is RepositoryStatus.ERROR
    assert isinstance(repo.last_error, StoreError)
    assert len(await store.select("attendance")) == 1


async def test_attendance_scopes_and_stats(store, school):
    admin_repo = AttendanceRepository(store)
    for name, status in (("alice", "present"), ("bob", "late"), ("carol", "absent")):
        await admin_repo.mark_one(school.admin, school.students[name].caller_id, DAY, status)

    teacher_repo = AttendanceRepository(store)
    teacher_view = (await teacher_repo.fetch(school.teacher)).unwrap()
    assert len(teacher_view) == 2
    assert teacher_repo.stats().attendance_rate == 100.0

    carol_repo = AttendanceRepository(store)
    carol_view = (await carol_repo.fetch(school.students["carol"])).unwrap()
    assert [r.status for r in carol_view] == [AttendanceStatus.ABSENT]
    assert carol_repo.stats().attendance_rate == 0.0

    assert (await AttendanceRepository(store).fetch(school.idle_teacher)).unwrap() == []

    await admin_repo.fetch(school.admin)
    assert len(admin_repo.todays_attendance_for(DAY)) == 3
    assert admin_repo.todays_attendance_for(date(2024, 9, 10)) == []
