from __future__ import annotations

from typing import List

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from timetabler.core.config import Settings, get_settings
from timetabler.core.exceptions import NotFoundError
from timetabler.models.classroom import Classroom
from timetabler.models.faculty import Faculty
from timetabler.models.subject import Subject
from timetabler.models.time_slot import TimeSlot
from timetabler.models.timetable_entry import TimetableEntry, active_entries
from timetabler.schemas.common import format_time_12h, parse_time_to_minutes, slots_overlap
from timetabler.schemas.conflict import (
    ConflictAxis,
    ConflictCandidate,
    ConflictReason,
    ConflictReport,
    ScheduledClass,
)


class ConflictService:
    """Finds active entries that would collide with a candidate assignment.

    Only reads. Two entries collide on an axis when they share the axis resource
    (faculty member, classroom, or optionally section) in the same term and their
    slots overlap on the same day. Slots are compared by their stored window, not by
    id, because the catalog does not guarantee non-overlapping slot boundaries.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def detect_conflicts(
        self,
        candidate: ConflictCandidate,
        exclude_entry_id: str | None = None,
        slot: TimeSlot | None = None,
    ) -> ConflictReport:
        if exclude_entry_id is not None:
            candidate = candidate.model_copy(update={"exclude_entry_id": str(exclude_entry_id)})
        slot = slot or self._load_slot(candidate.slot_id)
        reasons = self.find_reasons(candidate, slot)
        return ConflictReport(conflicting=bool(reasons), reasons=reasons)

    def find_reasons(self, candidate: ConflictCandidate, slot: TimeSlot) -> List[ConflictReason]:
        start, end = parse_time_to_minutes(slot.start_time), parse_time_to_minutes(slot.end_time)
        check_section = self.settings.detect_section_conflicts and candidate.section and candidate.subject_id
        candidate_department = None
        if check_section:
            subject = self.db.get(Subject, candidate.subject_id)
            candidate_department = subject.department if subject is not None else None

        axis_filters = [
            TimetableEntry.faculty_id == candidate.faculty_id,
            TimetableEntry.classroom_id == candidate.classroom_id,
        ]
        if check_section:
            axis_filters.append(TimetableEntry.section == candidate.section)

        faculty_hits: List[ConflictReason] = []
        classroom_hits: List[ConflictReason] = []
        section_hits: List[ConflictReason] = []

        for entry, other_slot, subject, faculty, classroom in self._same_day_rows(candidate, slot, or_(*axis_filters)):
            other_start = parse_time_to_minutes(other_slot.start_time)
            other_end = parse_time_to_minutes(other_slot.end_time)
            if not slots_overlap(start, end, other_start, other_end):
                continue

            window = (
                f"{other_slot.day_of_week} {format_time_12h(other_slot.start_time)} - "
                f"{format_time_12h(other_slot.end_time)}"
            )
            subject_label = f"{subject.code} - {subject.name}" if subject is not None else entry.subject_id
            room_label = f"{classroom.room_number} ({classroom.building})" if classroom is not None else entry.classroom_id
            faculty_label = faculty.name if faculty is not None else entry.faculty_id

            def reason(axis: ConflictAxis, message: str) -> ConflictReason:
                return ConflictReason(
                    axis=axis,
                    entry_id=entry.id,
                    day_of_week=other_slot.day_of_week,
                    start_time=other_slot.start_time,
                    end_time=other_slot.end_time,
                    subject_code=subject.code if subject is not None else None,
                    section=entry.section,
                    message=message,
                )

            if entry.faculty_id == candidate.faculty_id:
                faculty_hits.append(
                    reason(
                        ConflictAxis.faculty,
                        f"Faculty conflict: {faculty_label} is already teaching {subject_label} "
                        f"(Section {entry.section}) in {room_label} on {window} (entry #{entry.id})",
                    )
                )
            if entry.classroom_id == candidate.classroom_id:
                classroom_hits.append(
                    reason(
                        ConflictAxis.classroom,
                        f"Classroom conflict: {room_label} is already booked for {subject_label} "
                        f"with {faculty_label} (Section {entry.section}) on {window} (entry #{entry.id})",
                    )
                )
            if (
                check_section
                and entry.section == candidate.section
                and subject is not None
                and subject.department == candidate_department
            ):
                section_hits.append(
                    reason(
                        ConflictAxis.section,
                        f"Section conflict: Section {entry.section} already attends {subject_label} "
                        f"on {window} (entry #{entry.id})",
                    )
                )

        return faculty_hits + classroom_hits + section_hits

    def daily_schedule(self, candidate: ConflictCandidate, slot: TimeSlot) -> tuple[list[ScheduledClass], list[ScheduledClass]]:
        """Other active classes of the faculty member and the classroom on the candidate's day."""
        faculty_schedule: list[ScheduledClass] = []
        classroom_usage: list[ScheduledClass] = []
        axis = or_(
            TimetableEntry.faculty_id == candidate.faculty_id,
            TimetableEntry.classroom_id == candidate.classroom_id,
        )
        for entry, other_slot, subject, faculty, classroom in self._same_day_rows(candidate, slot, axis):
            if other_slot.id == slot.id:
                continue
            item = ScheduledClass(
                entry_id=entry.id,
                subject_code=subject.code if subject is not None else "",
                subject_name=subject.name if subject is not None else "",
                section=entry.section,
                day_of_week=other_slot.day_of_week,
                start_time=other_slot.start_time,
                end_time=other_slot.end_time,
                room_number=classroom.room_number if classroom is not None else None,
                faculty_name=faculty.name if faculty is not None else None,
            )
            if entry.faculty_id == candidate.faculty_id:
                faculty_schedule.append(item)
            if entry.classroom_id == candidate.classroom_id:
                classroom_usage.append(item)
        return faculty_schedule, classroom_usage

    def _same_day_rows(self, candidate: ConflictCandidate, slot: TimeSlot, axis_clause):
        query = (
            select(TimetableEntry, TimeSlot, Subject, Faculty, Classroom)
            .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
            .outerjoin(Subject, Subject.id == TimetableEntry.subject_id)
            .outerjoin(Faculty, Faculty.id == TimetableEntry.faculty_id)
            .outerjoin(Classroom, Classroom.id == TimetableEntry.classroom_id)
            .where(
                active_entries(),
                TimetableEntry.semester == candidate.semester,
                TimetableEntry.academic_year == candidate.academic_year,
                TimeSlot.day_of_week == slot.day_of_week,
                axis_clause,
            )
            .order_by(TimeSlot.start_time, TimetableEntry.created_at, TimetableEntry.id)
        )
        if candidate.exclude_entry_id:
            query = query.where(TimetableEntry.id != candidate.exclude_entry_id)
        return self.db.execute(query).all()

    def _load_slot(self, slot_id: str) -> TimeSlot:
        slot = self.db.get(TimeSlot, slot_id)
        if slot is None:
            raise NotFoundError("TimeSlot", slot_id, field="slot_id")
        return slot
