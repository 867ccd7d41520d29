# tests/test_aggregation.py
from __future__ import annotations

from datetime import date, time

import pytest

from edumanager.analytics import (
    STATUS_COLORS,
    attendance_distribution,
    attendance_overview,
    attendance_stats,
    payment_summary,
    performance_overview,
    performance_stats,
    round_half_up,
    sort_timetable,
    todays_timetable,
    weekly_attendance_series,
)
from edumanager.schemas.enums import AttendanceStatus, DayOfWeek, PaymentStatus
from edumanager.schemas.records import (
    AttendanceRecord,
    PaymentRecord,
    PerformanceRecord,
    TimetableEntry,
)


def _attendance(status, day=date(2024, 9, 9), user_id="u1"):
    return AttendanceRecord(user_id=user_id, date=day, status=status)


def _performance(subject, score, max_score=100, grade="B"):
    return PerformanceRecord(user_id="u1", subject=subject, grade=grade, score=score, max_score=max_score)


def _entry(day, start, subject="Maths"):
    return TimetableEntry(
        user_id="t1", subject=subject, day=day, start_time=start, end_time=time(start.hour, 50)
    )


def _payment(amount, status):
    return PaymentRecord(
        tx_ref=f"tx-{amount}-{status}",
        student_id="s1",
        student_name="Alice",
        email="alice@school.edu",
        amount=amount,
        status=status,
    )


@pytest.mark.parametrize(
    "value, expected",
    [(80.0, 80.0), (66.666, 66.7), (0.05, 0.1), (12.25, 12.3), (99.94, 99.9)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_attendance_stats_counts_late_as_attended():
    records = [_attendance(s) for s in ("present", "present", "present", "late", "absent")]
    stats = attendance_stats(records)
    assert stats.total_days == 5
    assert (stats.present_days, stats.late_days, stats.absent_days) == (3, 1, 1)
    assert stats.attendance_rate == 80.0


def test_attendance_stats_empty():
    stats = attendance_stats([])
    assert stats.total_days == 0
    assert stats.attendance_rate == 0.0


def test_attendance_rate_rounds_to_one_decimal():
    records = [_attendance(s) for s in ("present", "late", "excused")]
    assert attendance_stats(records).attendance_rate == 66.7


def test_weekly_series_always_has_seven_days():
    monday = date(2024, 9, 9)
    records = [
        _attendance("present", monday),
        _attendance("late", monday, user_id="u2"),
        _attendance("absent", date(2024, 9, 11)),
        _attendance("present", date(2024, 9, 2)),  # previous week
    ]
    series = weekly_attendance_series(records, anchor=date(2024, 9, 12))
    assert [b.label for b in series] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert series[0].date == monday
    assert (series[0].present, series[0].late) == (1, 1)
    assert series[2].absent == 1
    assert sum(b.present for b in series) == 1

    empty = weekly_attendance_series([], anchor=monday)
    assert len(empty) == 7
    assert all(b.present == b.absent == b.late == b.excused == 0 for b in empty)


def test_attendance_distribution_colours():
    slices = attendance_distribution([_attendance("present"), _attendance("absent")])
    assert [s.name for s in slices] == ["Present", "Late", "Absent", "Excused"]
    assert {s.name: s.value for s in slices} == {"Present": 1, "Late": 0, "Absent": 1, "Excused": 0}
    assert slices[0].color == STATUS_COLORS[AttendanceStatus.PRESENT]


def test_attendance_overview_mirrors_stats():
    overview = attendance_overview([_attendance("present"), _attendance("absent")])
    assert overview.total_records == 2
    assert overview.attendance_rate == 50.0


def test_performance_stats_uses_percentages():
    records = [_performance("Maths", 45, 50, grade="A"), _performance("English", 80)]
    stats = performance_stats(records)
    assert stats.average_score == 85.0
    assert stats.total_records == 2
    assert stats.recent_grade == "A"
    assert stats.subject_stats["Maths"].average == 90.0
    assert stats.subject_stats["English"].scores == [80.0]


def test_performance_subject_average_is_not_rounded():
    stats = performance_stats([_performance("Maths", 2, 3), _performance("Maths", 1, 3)])
    assert stats.subject_stats["Maths"].count == 2
    assert stats.subject_stats["Maths"].average == pytest.approx(50.0)
    assert stats.average_score == 50.0

    uneven = performance_stats([_performance("Maths", 2, 3)])
    assert uneven.subject_stats["Maths"].average == pytest.approx(66.6667, rel=1e-4)
    assert uneven.average_score == 66.7


def test_performance_stats_empty():
    stats = performance_stats([])
    assert stats.average_score == 0
    assert stats.recent_grade == "N/A"
    assert stats.subject_stats == {}


def test_performance_overview():
    overview = performance_overview([_performance("Maths", 45, 50), _performance("Art", 60)])
    assert overview.highest_percentage == 90.0
    assert overview.lowest_percentage == 60.0
    assert overview.subjects == ["Art", "Maths"]
    assert performance_overview([]).total_records == 0


def test_timetable_sorting_and_today():
    entries = [
        _entry(DayOfWeek.FRIDAY, time(8)),
        _entry(DayOfWeek.MONDAY, time(11)),
        _entry(DayOfWeek.MONDAY, time(9)),
    ]
    ordered = sort_timetable(entries)
    assert [(e.day, e.start_time) for e in ordered] == [
        (DayOfWeek.MONDAY, time(9)),
        (DayOfWeek.MONDAY, time(11)),
        (DayOfWeek.FRIDAY, time(8)),
    ]
    assert [e.start_time for e in todays_timetable(entries, DayOfWeek.MONDAY)] == [time(9), time(11)]
    # 2024-09-13 was a Friday
    assert [e.day for e in todays_timetable(entries, date(2024, 9, 13))] == [DayOfWeek.FRIDAY]
    assert todays_timetable(entries, DayOfWeek.SUNDAY) == []


def test_payment_summary():
    summary = payment_summary(
        [
            _payment(100.0, PaymentStatus.COMPLETED),
            _payment(50.0, PaymentStatus.PENDING),
            _payment(25.0, PaymentStatus.FAILED),
        ]
    )
    assert (summary.count, summary.completed, summary.pending, summary.failed) == (3, 1, 1, 1)
    assert summary.total_amount == 175.0
    assert summary.completed_amount == 100.0
