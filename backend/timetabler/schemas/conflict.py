from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from timetabler.schemas.common import parse_academic_year


class ConflictAxis(str, Enum):
    faculty = "FACULTY_DOUBLE_BOOKED"
    classroom = "CLASSROOM_DOUBLE_BOOKED"
    section = "SECTION_DOUBLE_BOOKED"


class ConflictReason(BaseModel):
    axis: ConflictAxis
    entry_id: str | None = None
    day_of_week: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    subject_code: str | None = None
    section: str | None = None
    message: str


class ConflictCandidate(BaseModel):
    faculty_id: str = Field(min_length=1, max_length=36)
    classroom_id: str = Field(min_length=1, max_length=36)
    slot_id: str = Field(min_length=1, max_length=36)
    semester: int = Field(ge=1)
    academic_year: str
    subject_id: str | None = Field(default=None, max_length=36)
    section: str | None = Field(default=None, max_length=20)
    exclude_entry_id: str | None = Field(default=None, max_length=36)

    @field_validator("faculty_id", "classroom_id", "slot_id", "subject_id", "exclude_entry_id", mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("academic_year")
    @classmethod
    def validate_academic_year(cls, value: str) -> str:
        start_year, end_year = parse_academic_year(value)
        return f"{start_year}-{end_year}"


class ScheduledClass(BaseModel):
    entry_id: str
    subject_code: str
    subject_name: str
    section: str
    day_of_week: str
    start_time: str
    end_time: str
    room_number: str | None = None
    faculty_name: str | None = None


class ConflictReport(BaseModel):
    conflicting: bool
    reasons: list[ConflictReason] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    faculty_schedule: list[ScheduledClass] = Field(default_factory=list)
    classroom_usage: list[ScheduledClass] = Field(default_factory=list)
