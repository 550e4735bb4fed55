from __future__ import annotations

import math

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.orm import Session

from timetabler.core.config import Settings, get_settings
from timetabler.core.exceptions import NotFoundError
from timetabler.models.classroom import Classroom, ClassroomStatus
from timetabler.models.faculty import Faculty
from timetabler.models.subject import Subject
from timetabler.models.time_slot import TimeSlot
from timetabler.models.timetable_entry import TimetableEntry, active_entries
from timetabler.schemas.timetable import (
    EntryFilters,
    EntryPage,
    EntrySortKey,
    EntryStatusFilter,
    EntryView,
    SortOrder,
    TimetableStats,
)
from timetabler.services.catalog import day_order_expression
from timetabler.services.enrollment import enrolled_counts


def _joined_entries():
    return (
        select(TimetableEntry, Subject, Faculty, Classroom, TimeSlot)
        .join(Subject, Subject.id == TimetableEntry.subject_id)
        .join(Faculty, Faculty.id == TimetableEntry.faculty_id)
        .join(Classroom, Classroom.id == TimetableEntry.classroom_id)
        .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
    )


def _contains_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filter_clauses(filters: EntryFilters) -> list:
    clauses = []
    if filters.status == EntryStatusFilter.active:
        clauses.append(active_entries())
    elif filters.status == EntryStatusFilter.inactive:
        clauses.append(TimetableEntry.is_active.is_(False))
    if filters.department:
        clauses.append(Subject.department == filters.department)
    if filters.semester is not None:
        clauses.append(TimetableEntry.semester == filters.semester)
    if filters.academic_year:
        clauses.append(TimetableEntry.academic_year == filters.academic_year)
    if filters.section:
        clauses.append(TimetableEntry.section == filters.section)
    if filters.day_of_week:
        clauses.append(TimeSlot.day_of_week == filters.day_of_week)
    if filters.faculty_id:
        clauses.append(TimetableEntry.faculty_id == filters.faculty_id)
    if filters.classroom_id:
        clauses.append(TimetableEntry.classroom_id == filters.classroom_id)
    if filters.subject_id:
        clauses.append(TimetableEntry.subject_id == filters.subject_id)
    if filters.search:
        pattern = _contains_pattern(filters.search)
        clauses.append(
            or_(
                Subject.code.ilike(pattern, escape="\\"),
                Subject.name.ilike(pattern, escape="\\"),
                Faculty.name.ilike(pattern, escape="\\"),
                Classroom.room_number.ilike(pattern, escape="\\"),
                Classroom.building.ilike(pattern, escape="\\"),
            )
        )
    return clauses


def _sort_columns(sort_key: EntrySortKey, sort_order: SortOrder) -> list:
    if sort_key == EntrySortKey.subject_code:
        primary = [Subject.code]
    elif sort_key == EntrySortKey.faculty_name:
        primary = [Faculty.name]
    elif sort_key == EntrySortKey.room_number:
        primary = [Classroom.room_number]
    else:
        primary = [day_order_expression(TimeSlot.day_of_week), TimeSlot.start_time]
    if sort_order == SortOrder.desc:
        primary = [column.desc() for column in primary]
    # Stable tie-break so consecutive pages never repeat or skip rows.
    return [*primary, Subject.code, TimetableEntry.id]


class QueryService:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def list_entries(
        self,
        filters: EntryFilters | None = None,
        page: int = 1,
        page_size: int | None = None,
        sort_key: EntrySortKey = EntrySortKey.day_time,
        sort_order: SortOrder = SortOrder.asc,
    ) -> EntryPage:
        filters = filters or EntryFilters()
        page = max(1, int(page or 1))
        page_size = page_size or self.settings.default_page_size
        page_size = max(1, min(int(page_size), self.settings.max_page_size))

        clauses = _filter_clauses(filters)
        count_query = (
            select(func.count(TimetableEntry.id))
            .select_from(TimetableEntry)
            .join(Subject, Subject.id == TimetableEntry.subject_id)
            .join(Faculty, Faculty.id == TimetableEntry.faculty_id)
            .join(Classroom, Classroom.id == TimetableEntry.classroom_id)
            .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
            .where(*clauses)
        )
        total = int(self.db.execute(count_query).scalar_one() or 0)

        rows = self.db.execute(
            _joined_entries()
            .where(*clauses)
            .order_by(*_sort_columns(sort_key, sort_order))
            .limit(page_size)
            .offset((page - 1) * page_size)
        ).all()

        return EntryPage(
            items=self._views(rows),
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    def get_entry(self, entry_id: str) -> EntryView:
        row = self.db.execute(_joined_entries().where(TimetableEntry.id == entry_id)).first()
        if row is None:
            raise NotFoundError("TimetableEntry", entry_id)
        return self._views([row])[0]

    def timetable_stats(self, academic_year: str | None = None) -> TimetableStats:
        academic_year = academic_year or self.settings.current_academic_year
        scope = (active_entries(), TimetableEntry.academic_year == academic_year)
        active_count, subject_count, faculty_count, classroom_count = self.db.execute(
            select(
                func.count(TimetableEntry.id),
                func.count(distinct(TimetableEntry.subject_id)),
                func.count(distinct(TimetableEntry.faculty_id)),
                func.count(distinct(TimetableEntry.classroom_id)),
            ).where(*scope)
        ).one()
        available = self.db.execute(
            select(func.count(Classroom.id)).where(
                Classroom.is_active.is_(True), Classroom.status == ClassroomStatus.available
            )
        ).scalar_one()
        return TimetableStats(
            academic_year=academic_year,
            active_entries=int(active_count or 0),
            subjects_scheduled=int(subject_count or 0),
            faculty_assigned=int(faculty_count or 0),
            classrooms_in_use=int(classroom_count or 0),
            classrooms_available=int(available or 0),
        )

    def _views(self, rows) -> list[EntryView]:
        counts = enrolled_counts(
            self.db,
            [
                (entry.subject_id, entry.section, entry.semester, entry.academic_year)
                for entry, *_ in rows
            ],
        )
        views: list[EntryView] = []
        for entry, subject, faculty, classroom, slot in rows:
            capacity = entry.max_students or classroom.capacity
            enrolled = counts.get((entry.subject_id, entry.section, entry.semester, entry.academic_year), 0)
            views.append(
                EntryView(
                    id=entry.id,
                    subject_id=subject.id,
                    subject_code=subject.code,
                    subject_name=subject.name,
                    department=subject.department,
                    credits=subject.credits,
                    faculty_id=faculty.id,
                    faculty_name=faculty.name,
                    employee_id=faculty.employee_id,
                    faculty_department=faculty.department,
                    classroom_id=classroom.id,
                    room_number=classroom.room_number,
                    building=classroom.building,
                    classroom_capacity=classroom.capacity,
                    capacity=capacity,
                    slot_id=slot.id,
                    day_of_week=slot.day_of_week,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    slot_name=slot.slot_name,
                    section=entry.section,
                    semester=entry.semester,
                    academic_year=entry.academic_year,
                    max_students=entry.max_students,
                    notes=entry.notes,
                    is_active=entry.is_active,
                    created_by_id=entry.created_by_id,
                    created_at=entry.created_at,
                    enrolled_students=enrolled,
                    occupancy_percent=round(enrolled / capacity * 100, 1) if capacity else 0.0,
                )
            )
        return views
