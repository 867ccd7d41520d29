# src/edumanager/analytics/aggregation.py
"""
Aggregation engine.

Pure functions over cached record sets. Nothing here touches the store or
keeps state; every call recomputes from its input. Inputs are assumed to
arrive in fetch order (newest first) and are never re-sorted.
"""
from __future__ import annotations

import datetime as dt
import math
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from edumanager.schemas.enums import AttendanceStatus, DayOfWeek, PaymentStatus
from edumanager.schemas.records import (
    AttendanceRecord,
    PaymentRecord,
    PerformanceRecord,
    TimetableEntry,
)

# pie-chart colours per attendance status
STATUS_COLORS: Dict[AttendanceStatus, str] = {
    AttendanceStatus.PRESENT: "#10b981",
    AttendanceStatus.LATE: "#f59e0b",
    AttendanceStatus.ABSENT: "#ef4444",
    AttendanceStatus.EXCUSED: "#3b82f6",
}

_DAY_INDEX = {day: index for index, day in enumerate(DayOfWeek)}


def round_half_up(value: float, digits: int = 1) -> float:
    """Round halves away from zero for positive values (0.05 -> 0.1)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------
class AttendanceStats(BaseModel):
    total_days: int = 0
    present_days: int = 0
    late_days: int = 0
    absent_days: int = 0
    excused_days: int = 0
    attendance_rate: float = 0.0


class SubjectStat(BaseModel):
    count: int
    total: float
    average: float
    scores: List[float] = Field(default_factory=list)


class PerformanceStats(BaseModel):
    average_score: float = 0.0
    total_records: int = 0
    recent_grade: str = "N/A"
    subject_stats: Dict[str, SubjectStat] = Field(default_factory=dict)


class DailyAttendance(BaseModel):
    label: str
    date: dt.date
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0


class DistributionSlice(BaseModel):
    name: str
    value: int
    color: str


class PerformanceOverview(BaseModel):
    total_records: int = 0
    average_percentage: float = 0.0
    highest_percentage: float = 0.0
    lowest_percentage: float = 0.0
    subjects: List[str] = Field(default_factory=list)


class AttendanceOverview(BaseModel):
    total_records: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    attendance_rate: float = 0.0


class PaymentSummary(BaseModel):
    count: int = 0
    completed: int = 0
    pending: int = 0
    failed: int = 0
    total_amount: float = 0.0
    completed_amount: float = 0.0


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------
def _status_counts(records: Iterable[AttendanceRecord]) -> Counter:
    return Counter(AttendanceStatus(r.status) for r in records)


def attendance_stats(records: Sequence[AttendanceRecord]) -> AttendanceStats:
    """
    Per-status counts and the attendance rate.

    Late counts as attended: rate = (present + late) / total * 100, rounded
    to one decimal. The rate is 0 when there are no records.
    """
    counts = _status_counts(records)
    total = len(records)
    present = counts[AttendanceStatus.PRESENT]
    late = counts[AttendanceStatus.LATE]
    rate = (present + late) / total * 100 if total > 0 else 0.0
    return AttendanceStats(
        total_days=total,
        present_days=present,
        late_days=late,
        absent_days=counts[AttendanceStatus.ABSENT],
        excused_days=counts[AttendanceStatus.EXCUSED],
        attendance_rate=round_half_up(rate),
    )


def todays_attendance(
    records: Iterable[AttendanceRecord], day: Optional[date] = None
) -> List[AttendanceRecord]:
    day = day or date.today()
    return [r for r in records if r.date == day]


def weekly_attendance_series(
    records: Iterable[AttendanceRecord], anchor: Optional[date] = None
) -> List[DailyAttendance]:
    """
    Seven buckets, Monday to Sunday, for the week containing ``anchor``.

    Days without records stay at zero, so the series always has seven entries.
    """
    anchor = anchor or date.today()
    monday = anchor - timedelta(days=anchor.weekday())
    buckets = [
        DailyAttendance(label=day.value[:3], date=monday + timedelta(days=offset))
        for offset, day in enumerate(DayOfWeek)
    ]
    by_date = {bucket.date: bucket for bucket in buckets}
    for record in records:
        bucket = by_date.get(record.date)
        if bucket is None:
            continue
        status = AttendanceStatus(record.status).value
        setattr(bucket, status, getattr(bucket, status) + 1)
    return buckets


def attendance_distribution(records: Sequence[AttendanceRecord]) -> List[DistributionSlice]:
    counts = _status_counts(records)
    return [
        DistributionSlice(name=status.value.capitalize(), value=counts[status], color=color)
        for status, color in STATUS_COLORS.items()
    ]


def attendance_overview(records: Sequence[AttendanceRecord]) -> AttendanceOverview:
    stats = attendance_stats(records)
    return AttendanceOverview(
        total_records=stats.total_days,
        present=stats.present_days,
        absent=stats.absent_days,
        late=stats.late_days,
        excused=stats.excused_days,
        attendance_rate=stats.attendance_rate,
    )


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------
def performance_stats(records: Sequence[PerformanceRecord]) -> PerformanceStats:
    """
    Average percentage across records, per-subject averages and the most
    recent grade (the first record).

    Empty input gives an average of 0 and a recent grade of ``"N/A"``.
    """
    if not records:
        return PerformanceStats()

    percentages = [r.percentage for r in records]
    subjects: Dict[str, List[float]] = {}
    for record, pct in zip(records, percentages):
        subjects.setdefault(record.subject, []).append(pct)

    return PerformanceStats(
        average_score=round_half_up(sum(percentages) / len(percentages)),
        total_records=len(records),
        recent_grade=records[0].grade,
        subject_stats={
            subject: SubjectStat(
                count=len(scores),
                total=sum(scores),
                average=sum(scores) / len(scores),
                scores=scores,
            )
            for subject, scores in subjects.items()
        },
    )


def performance_overview(records: Sequence[PerformanceRecord]) -> PerformanceOverview:
    if not records:
        return PerformanceOverview()
    percentages = [r.percentage for r in records]
    return PerformanceOverview(
        total_records=len(records),
        average_percentage=round_half_up(sum(percentages) / len(percentages)),
        highest_percentage=round_half_up(max(percentages)),
        lowest_percentage=round_half_up(min(percentages)),
        subjects=sorted({r.subject for r in records}),
    )


# ---------------------------------------------------------------------------
# Timetable
# ---------------------------------------------------------------------------
def sort_timetable(entries: Iterable[TimetableEntry]) -> List[TimetableEntry]:
    return sorted(entries, key=lambda e: (_DAY_INDEX[DayOfWeek(e.day)], e.start_time))


def todays_timetable(
    entries: Iterable[TimetableEntry], day: Union[DayOfWeek, date, None] = None
) -> List[TimetableEntry]:
    """Entries for ``day`` (a weekday or a calendar date), by start time."""
    if day is None:
        day = date.today()
    if isinstance(day, date):
        day = DayOfWeek.from_weekday(day.weekday())
    day = DayOfWeek(day)
    return sorted((e for e in entries if e.day == day), key=lambda e: e.start_time)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
def payment_summary(payments: Iterable[PaymentRecord]) -> PaymentSummary:
    summary = PaymentSummary()
    for payment in payments:
        summary.count += 1
        summary.total_amount += payment.amount
        if payment.status == PaymentStatus.COMPLETED:
            summary.completed += 1
            summary.completed_amount += payment.amount
        elif payment.status == PaymentStatus.FAILED:
            summary.failed += 1
        else:
            summary.pending += 1
    return summary
