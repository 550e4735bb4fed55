from pydantic import BaseModel, Field

from timetabler.models.classroom import ClassroomStatus, ClassroomType


class SubjectOut(BaseModel):
    id: str
    code: str
    name: str
    department: str
    credits: int
    semester: int | None = None

    model_config = {"from_attributes": True}


class FacultyOut(BaseModel):
    id: str
    employee_id: str
    name: str
    email: str | None = None
    department: str

    model_config = {"from_attributes": True}


class ClassroomOut(BaseModel):
    id: str
    room_number: str
    building: str
    capacity: int
    type: ClassroomType
    status: ClassroomStatus

    model_config = {"from_attributes": True}


class TimeSlotOut(BaseModel):
    id: str
    day_of_week: str
    start_time: str
    end_time: str
    slot_name: str

    model_config = {"from_attributes": True}


class ResourceCatalogOut(BaseModel):
    subjects: list[SubjectOut] = Field(default_factory=list)
    faculty: list[FacultyOut] = Field(default_factory=list)
    classrooms: list[ClassroomOut] = Field(default_factory=list)
    time_slots: list[TimeSlotOut] = Field(default_factory=list)
    subjects_by_department: dict[str, list[SubjectOut]] = Field(default_factory=dict)
    faculty_by_department: dict[str, list[FacultyOut]] = Field(default_factory=dict)
    time_slots_by_day: dict[str, list[TimeSlotOut]] = Field(default_factory=dict)
    current_academic_year: str
    current_semester: int


class FilterOptionsOut(BaseModel):
    academic_years: list[str] = Field(default_factory=list)
    semesters: list[int] = Field(default_factory=list)
    departments: list[str] = Field(default_factory=list)
    days_of_week: list[str] = Field(default_factory=list)
    sections: list[str] = Field(default_factory=list)
