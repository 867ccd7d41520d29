"""
Statistics derived from cached record sets.
"""

from .aggregation import (
    STATUS_COLORS,
    AttendanceOverview,
    AttendanceStats,
    DailyAttendance,
    DistributionSlice,
    PaymentSummary,
    PerformanceOverview,
    PerformanceStats,
    SubjectStat,
    attendance_distribution,
    attendance_overview,
    attendance_stats,
    payment_summary,
    performance_overview,
    performance_stats,
    round_half_up,
    sort_timetable,
    todays_attendance,
    todays_timetable,
    weekly_attendance_series,
)

__all__ = [
    "STATUS_COLORS",
    "AttendanceOverview",
    "AttendanceStats",
    "DailyAttendance",
    "DistributionSlice",
    "PaymentSummary",
    "PerformanceOverview",
    "PerformanceStats",
    "SubjectStat",
    "attendance_distribution",
    "attendance_overview",
    "attendance_stats",
    "payment_summary",
    "performance_overview",
    "performance_stats",
    "round_half_up",
    "sort_timetable",
    "todays_attendance",
    "todays_timetable",
    "weekly_attendance_series",
]
