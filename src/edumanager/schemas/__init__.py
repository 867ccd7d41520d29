from .enums import (
    AttendanceStatus,
    DayOfWeek,
    PaymentStatus,
    Role,
    StudentStatus,
    ThemeOption,
)
from .payloads import (
    ClassCreate,
    PerformanceCreate,
    SettingsUpdate,
    StudentCreate,
    SubjectCreate,
    TimetableEntryCreate,
)
from .records import (
    AssistantLog,
    AttendanceRecord,
    PaymentRecord,
    PerformanceRecord,
    RecordModel,
    SchoolClass,
    Student,
    Subject,
    TimetableEntry,
    User,
    UserSettings,
)

__all__ = [
    "AttendanceStatus",
    "DayOfWeek",
    "PaymentStatus",
    "Role",
    "StudentStatus",
    "ThemeOption",
    "ClassCreate",
    "PerformanceCreate",
    "SettingsUpdate",
    "StudentCreate",
    "SubjectCreate",
    "TimetableEntryCreate",
    "AssistantLog",
    "AttendanceRecord",
    "PaymentRecord",
    "PerformanceRecord",
    "RecordModel",
    "SchoolClass",
    "Student",
    "Subject",
    "TimetableEntry",
    "User",
    "UserSettings",
]
