# src/edumanager/schemas/records.py
"""
Read models held in repository caches.

Rows come back from the record store as plain dicts; these models validate
them and give the aggregation engine typed fields.
"""
from __future__ import annotations

import datetime as dt
from datetime import date, datetime, time, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import (
    AttendanceStatus,
    DayOfWeek,
    PaymentStatus,
    Role,
    StudentStatus,
    ThemeOption,
)


class RecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore", frozen=True)

    id: Optional[str] = None


class User(RecordModel):
    full_name: str
    email: str
    role: Role
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    created_at: Optional[datetime] = None


class SchoolClass(RecordModel):
    name: str
    grade_level: int = Field(..., ge=6, le=12)
    academic_year: str
    teacher_id: Optional[str] = None
    max_students: int = 30
    created_at: Optional[datetime] = None
    teacher: Optional[User] = None
    student_count: int = 0


class Student(RecordModel):
    user_id: str
    student_id: str
    class_id: Optional[str] = None
    parent_name: Optional[str] = None
    parent_email: Optional[str] = None
    parent_phone: Optional[str] = None
    enrollment_date: date
    status: StudentStatus = StudentStatus.ACTIVE
    created_at: Optional[datetime] = None
    user: Optional[User] = None
    school_class: Optional[SchoolClass] = None


class Subject(RecordModel):
    name: str
    code: str
    description: Optional[str] = None
    grade_levels: List[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class TimetableEntry(RecordModel):
    user_id: str
    subject: str
    subject_id: Optional[str] = None
    day: DayOfWeek
    start_time: time
    end_time: time
    location: str = ""
    class_id: Optional[str] = None
    created_at: Optional[datetime] = None


class AttendanceRecord(RecordModel):
    user_id: str
    date: dt.date
    status: AttendanceStatus
    remarks: Optional[str] = None
    recorded_by: Optional[str] = None
    class_id: Optional[str] = None
    created_at: Optional[datetime] = None


class PerformanceRecord(RecordModel):
    user_id: str
    subject: str
    subject_id: Optional[str] = None
    grade: str
    score: float
    max_score: float
    remarks: Optional[str] = None
    recorded_by: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @property
    def percentage(self) -> float:
        return self.score / self.max_score * 100


class AssistantLog(RecordModel):
    user_id: str
    prompt: str
    response: str
    created_at: Optional[datetime] = None


class UserSettings(RecordModel):
    user_id: str
    theme: ThemeOption = ThemeOption.SYSTEM
    notifications_enabled: bool = True
    language: str = "en"
    updated_at: Optional[datetime] = None

    @classmethod
    def defaults(cls, user_id: str) -> "UserSettings":
        """Unsaved settings shown until the user changes something."""
        return cls(user_id=user_id)


class PaymentRecord(BaseModel):
    """Payment tracked in memory while the gateway round-trip completes."""

    model_config = ConfigDict(frozen=True)

    tx_ref: str
    student_id: str
    student_name: str
    email: str
    amount: float = Field(..., gt=0)
    currency: str = "NGN"
    description: str = ""
    status: PaymentStatus = PaymentStatus.PENDING
    link: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
