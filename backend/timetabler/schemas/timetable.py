from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from timetabler.schemas.common import DAY_VALUES, normalize_day, parse_academic_year

IDENTIFIER_FIELDS = ("subject_id", "faculty_id", "classroom_id", "slot_id")


def _coerce_identifier(value):
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


class EntryCreate(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    faculty_id: str = Field(min_length=1, max_length=36)
    classroom_id: str = Field(min_length=1, max_length=36)
    slot_id: str = Field(min_length=1, max_length=36)
    section: str = Field(default="A", max_length=20)
    semester: int
    academic_year: str
    max_students: int | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator(*IDENTIFIER_FIELDS, mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        return _coerce_identifier(value)

    @field_validator("section", mode="before")
    @classmethod
    def normalize_section(cls, value):
        if value is None:
            return "A"
        cleaned = str(value).strip()
        if not cleaned:
            raise ValueError("Section cannot be empty")
        return cleaned

    @field_validator("academic_year")
    @classmethod
    def validate_academic_year(cls, value: str) -> str:
        start_year, end_year = parse_academic_year(value)
        return f"{start_year}-{end_year}"

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class EntryUpdate(BaseModel):
    subject_id: str | None = Field(default=None, min_length=1, max_length=36)
    faculty_id: str | None = Field(default=None, min_length=1, max_length=36)
    classroom_id: str | None = Field(default=None, min_length=1, max_length=36)
    slot_id: str | None = Field(default=None, min_length=1, max_length=36)
    section: str | None = Field(default=None, max_length=20)
    semester: int | None = None
    academic_year: str | None = None
    max_students: int | None = None
    notes: str | None = None

    @field_validator(*IDENTIFIER_FIELDS, mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        return _coerce_identifier(value)


class EntryOut(BaseModel):
    id: str
    subject_id: str
    faculty_id: str
    classroom_id: str
    slot_id: str
    section: str
    semester: int
    academic_year: str
    max_students: int | None = None
    notes: str | None = None
    is_active: bool
    created_by_id: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class EntryView(BaseModel):
    id: str
    subject_id: str
    subject_code: str
    subject_name: str
    department: str
    credits: int
    faculty_id: str
    faculty_name: str
    employee_id: str
    faculty_department: str
    classroom_id: str
    room_number: str
    building: str
    classroom_capacity: int
    capacity: int
    slot_id: str
    day_of_week: str
    start_time: str
    end_time: str
    slot_name: str
    section: str
    semester: int
    academic_year: str
    max_students: int | None = None
    notes: str | None = None
    is_active: bool
    created_by_id: str | None = None
    created_at: datetime | None = None
    enrolled_students: int = 0
    occupancy_percent: float = 0.0


class EntrySortKey(str, Enum):
    day_time = "day_time"
    subject_code = "subject_code"
    faculty_name = "faculty_name"
    room_number = "room_number"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class EntryStatusFilter(str, Enum):
    active = "active"
    inactive = "inactive"
    all = "all"


class EntryFilters(BaseModel):
    department: str | None = None
    semester: int | None = None
    academic_year: str | None = None
    section: str | None = None
    day_of_week: str | None = None
    faculty_id: str | None = None
    classroom_id: str | None = None
    subject_id: str | None = None
    search: str | None = None
    status: EntryStatusFilter = EntryStatusFilter.active

    @field_validator(
        "department", "academic_year", "section", "faculty_id", "classroom_id", "subject_id", "search",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            cleaned = value.strip()
            return cleaned or None
        return value

    @field_validator("day_of_week", mode="before")
    @classmethod
    def validate_day(cls, value):
        if value is None:
            return None
        day = normalize_day(str(value))
        if not day:
            return None
        if day not in DAY_VALUES:
            raise ValueError("Invalid day value")
        return day


class EntryPage(BaseModel):
    items: list[EntryView] = Field(default_factory=list)
    total: int
    page: int
    page_size: int
    total_pages: int


class EntryWriteResponse(BaseModel):
    id: str
    warnings: list[str] = Field(default_factory=list)


class TimetableStats(BaseModel):
    academic_year: str
    active_entries: int
    subjects_scheduled: int
    faculty_assigned: int
    classrooms_in_use: int
    classrooms_available: int
