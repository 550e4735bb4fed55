"""Read-only lookups over subjects, faculty, classrooms and time slots."""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import case, select
from sqlalchemy.orm import Session

from timetabler.core.config import Settings, get_settings
from timetabler.core.exceptions import NotFoundError, ValidationError
from timetabler.models.classroom import Classroom, ClassroomStatus
from timetabler.models.faculty import Faculty, FacultySubject
from timetabler.models.subject import Subject
from timetabler.models.time_slot import TimeSlot
from timetabler.models.timetable_entry import TimetableEntry, active_entries
from timetabler.schemas.catalog import (
    ClassroomOut,
    FacultyOut,
    FilterOptionsOut,
    ResourceCatalogOut,
    SubjectOut,
    TimeSlotOut,
)
from timetabler.schemas.common import DAY_ORDER


def day_order_expression(column):
    return case({day: index for index, day in enumerate(DAY_ORDER)}, value=column, else_=len(DAY_ORDER))


class ResourceCatalog:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def get_resource_catalog(self) -> ResourceCatalogOut:
        subjects = [
            SubjectOut.model_validate(item)
            for item in self.db.execute(
                select(Subject).where(Subject.is_active.is_(True)).order_by(Subject.department, Subject.code)
            ).scalars()
        ]
        faculty = [
            FacultyOut.model_validate(item)
            for item in self.db.execute(
                select(Faculty).where(Faculty.is_active.is_(True)).order_by(Faculty.department, Faculty.name)
            ).scalars()
        ]
        classrooms = [
            ClassroomOut.model_validate(item)
            for item in self.db.execute(
                select(Classroom)
                .where(Classroom.is_active.is_(True), Classroom.status == ClassroomStatus.available)
                .order_by(Classroom.building, Classroom.room_number)
            ).scalars()
        ]
        time_slots = [
            TimeSlotOut.model_validate(item)
            for item in self.db.execute(
                select(TimeSlot)
                .where(TimeSlot.is_active.is_(True))
                .order_by(day_order_expression(TimeSlot.day_of_week), TimeSlot.start_time)
            ).scalars()
        ]

        subjects_by_department: dict[str, list[SubjectOut]] = defaultdict(list)
        for subject in subjects:
            subjects_by_department[subject.department].append(subject)
        faculty_by_department: dict[str, list[FacultyOut]] = defaultdict(list)
        for member in faculty:
            faculty_by_department[member.department].append(member)
        time_slots_by_day: dict[str, list[TimeSlotOut]] = defaultdict(list)
        for slot in time_slots:
            time_slots_by_day[slot.day_of_week].append(slot)

        return ResourceCatalogOut(
            subjects=subjects,
            faculty=faculty,
            classrooms=classrooms,
            time_slots=time_slots,
            subjects_by_department=dict(subjects_by_department),
            faculty_by_department=dict(faculty_by_department),
            time_slots_by_day=dict(time_slots_by_day),
            current_academic_year=self.settings.current_academic_year,
            current_semester=self.settings.current_semester,
        )

    def faculty_for_subject(self, subject_id: str) -> list[FacultyOut]:
        self.require_subject(subject_id)
        rows = self.db.execute(
            select(Faculty)
            .join(FacultySubject, FacultySubject.faculty_id == Faculty.id)
            .where(
                FacultySubject.subject_id == subject_id,
                FacultySubject.is_active.is_(True),
                Faculty.is_active.is_(True),
            )
            .order_by(Faculty.name)
        ).scalars()
        return [FacultyOut.model_validate(item) for item in rows]

    def filter_options(self) -> FilterOptionsOut:
        base = (
            select(TimetableEntry)
            .where(active_entries())
            .subquery()
        )
        academic_years = self.db.execute(
            select(base.c.academic_year).distinct().order_by(base.c.academic_year.desc())
        ).scalars()
        semesters = self.db.execute(select(base.c.semester).distinct().order_by(base.c.semester)).scalars()
        sections = self.db.execute(select(base.c.section).distinct().order_by(base.c.section)).scalars()
        departments = self.db.execute(
            select(Subject.department)
            .join(base, base.c.subject_id == Subject.id)
            .distinct()
            .order_by(Subject.department)
        ).scalars()
        days = set(
            self.db.execute(
                select(TimeSlot.day_of_week).join(base, base.c.slot_id == TimeSlot.id).distinct()
            ).scalars()
        )
        return FilterOptionsOut(
            academic_years=list(academic_years),
            semesters=list(semesters),
            departments=list(departments),
            days_of_week=[day for day in DAY_ORDER if day in days],
            sections=list(sections),
        )

    # Reference validation used by the write path. A missing or deactivated resource is
    # reported as not found, naming the input field it came from.

    def require_subject(self, subject_id: str, field: str = "subject_id") -> Subject:
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError("Subject", subject_id, field=field)
        if not subject.is_active:
            raise NotFoundError(
                "Subject", subject_id, field=field, reason=f"Subject {subject.code} - {subject.name} is not active"
            )
        return subject

    def require_faculty(self, faculty_id: str, field: str = "faculty_id") -> Faculty:
        faculty = self.db.get(Faculty, faculty_id)
        if faculty is None:
            raise NotFoundError("Faculty", faculty_id, field=field)
        if not faculty.is_active:
            raise NotFoundError(
                "Faculty", faculty_id, field=field, reason=f"Faculty member {faculty.name} is not active"
            )
        return faculty

    def require_classroom(self, classroom_id: str, field: str = "classroom_id") -> Classroom:
        classroom = self.db.get(Classroom, classroom_id)
        if classroom is None:
            raise NotFoundError("Classroom", classroom_id, field=field)
        label = f"{classroom.room_number} ({classroom.building})"
        if not classroom.is_active:
            raise NotFoundError("Classroom", classroom_id, field=field, reason=f"Classroom {label} is not active")
        if classroom.status != ClassroomStatus.available:
            raise ValidationError(field, f"Classroom {label} is currently {classroom.status.value}")
        return classroom

    def require_time_slot(self, slot_id: str, field: str = "slot_id") -> TimeSlot:
        slot = self.db.get(TimeSlot, slot_id)
        if slot is None:
            raise NotFoundError("TimeSlot", slot_id, field=field)
        if not slot.is_active:
            raise NotFoundError(
                "TimeSlot",
                slot_id,
                field=field,
                reason=(
                    f"Time slot {slot.slot_name} ({slot.day_of_week} {slot.start_time}-{slot.end_time}) "
                    "is not active"
                ),
            )
        return slot

    def require_assignment(self, faculty: Faculty, subject: Subject) -> None:
        assignment = self.db.execute(
            select(FacultySubject.id).where(
                FacultySubject.faculty_id == faculty.id,
                FacultySubject.subject_id == subject.id,
                FacultySubject.is_active.is_(True),
            )
        ).first()
        if assignment is None:
            raise ValidationError(
                "faculty_id",
                f"Faculty member '{faculty.name}' is not assigned to teach '{subject.code} - {subject.name}'",
            )
