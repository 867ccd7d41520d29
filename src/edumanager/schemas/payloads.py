# src/edumanager/schemas/payloads.py
"""
Input payloads for repository ``create`` calls.

Validators here are the repository-level preconditions: score bounds on
performance records and time ordering on timetable entries.
"""
from __future__ import annotations

from datetime import date, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from .enums import DayOfWeek, StudentStatus, ThemeOption


class Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class StudentCreate(Payload):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    student_id: str = Field(..., min_length=1)
    class_id: Optional[str] = None
    parent_name: str = Field(..., min_length=1)
    parent_email: Optional[EmailStr] = None
    parent_phone: Optional[str] = None
    enrollment_date: date = Field(default_factory=date.today)
    status: StudentStatus = StudentStatus.ACTIVE


class ClassCreate(Payload):
    name: str = Field(..., min_length=1)
    grade_level: int = Field(..., ge=6, le=12)
    academic_year: str = "2024-2025"
    teacher_id: Optional[str] = None
    max_students: int = Field(30, gt=0)


class SubjectCreate(Payload):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    description: Optional[str] = None
    grade_levels: List[int] = Field(default_factory=list)


class TimetableEntryCreate(Payload):
    user_id: str
    subject: str = Field(..., min_length=1)
    subject_id: Optional[str] = None
    day: DayOfWeek
    start_time: time
    end_time: time
    location: str = ""
    class_id: Optional[str] = None

    @model_validator(mode="after")
    def _start_before_end(self) -> "TimetableEntryCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self


class PerformanceCreate(Payload):
    user_id: str
    subject: str = Field(..., min_length=1)
    subject_id: Optional[str] = None
    grade: str = Field(..., min_length=1)
    score: float = Field(..., ge=0)
    max_score: float = Field(100, gt=0)
    remarks: Optional[str] = None
    recorded_by: Optional[str] = None

    @model_validator(mode="after")
    def _score_within_max(self) -> "PerformanceCreate":
        if self.score > self.max_score:
            raise ValueError("score must not exceed max_score")
        return self


class SettingsUpdate(Payload):
    theme: Optional[ThemeOption] = None
    notifications_enabled: Optional[bool] = None
    language: Optional[str] = None
