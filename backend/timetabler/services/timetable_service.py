"""Entry lifecycle: create, update, deactivate, activate and hard-delete timetable entries.

Every state change that can introduce a double booking (create, update, activate) runs
inside one transaction that locks the referenced faculty and classroom rows, re-runs the
conflict detector, writes, and commits. The partial unique indexes on
``timetable_entries`` are the storage backstop; a violation of either is reported to the
caller as a ``ConflictError`` like any other conflict.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from timetabler.core.config import Settings, get_settings
from timetabler.core.exceptions import (
    AppError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from timetabler.core.results import OperationResult
from timetabler.models.classroom import Classroom
from timetabler.models.faculty import Faculty
from timetabler.models.subject import Subject
from timetabler.models.time_slot import TimeSlot
from timetabler.models.timetable_entry import CLASSROOM_SLOT_INDEX, FACULTY_SLOT_INDEX, TimetableEntry
from timetabler.schemas.common import parse_academic_year
from timetabler.schemas.conflict import ConflictAxis, ConflictCandidate, ConflictReason, ConflictReport
from timetabler.schemas.timetable import EntryCreate, EntryUpdate
from timetabler.services.audit import entry_snapshot, log_activity
from timetabler.services.catalog import ResourceCatalog
from timetabler.services.conflict_service import ConflictService
from timetabler.services.enrollment import enrolled_count

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "subject_id",
    "faculty_id",
    "classroom_id",
    "slot_id",
    "section",
    "semester",
    "academic_year",
    "max_students",
    "notes",
)


@dataclass
class ValidatedEntry:
    fields: EntryCreate
    subject: Subject
    faculty: Faculty
    classroom: Classroom
    slot: TimeSlot
    candidate: ConflictCandidate


def to_validation_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0]
    location = first.get("loc") or ("input",)
    field = str(location[0])
    message = str(first.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return ValidationError(field, message)


class TimetableService:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.catalog = ResourceCatalog(db, self.settings)
        self.conflicts = ConflictService(db, self.settings)

    # Public operations

    def create_entry(self, fields: EntryCreate | Mapping[str, Any], actor_id: str | None = None) -> OperationResult[str]:
        return self._guard("create", lambda: self._create(fields, actor_id))

    def update_entry(
        self,
        entry_id: str,
        fields: EntryUpdate | EntryCreate | Mapping[str, Any],
        actor_id: str | None = None,
    ) -> OperationResult[None]:
        return self._guard("update", lambda: self._update(entry_id, fields, actor_id), entry_id=entry_id)

    def deactivate_entry(self, entry_id: str, actor_id: str | None = None) -> OperationResult[None]:
        return self._guard("deactivate", lambda: self._deactivate(entry_id, actor_id), entry_id=entry_id)

    def activate_entry(self, entry_id: str, actor_id: str | None = None) -> OperationResult[None]:
        return self._guard("activate", lambda: self._activate(entry_id, actor_id), entry_id=entry_id)

    def delete_entry(self, entry_id: str, actor_id: str | None = None) -> OperationResult[None]:
        return self._guard("delete", lambda: self._hard_delete(entry_id, actor_id), entry_id=entry_id)

    def check_conflicts(
        self,
        candidate_fields: ConflictCandidate | Mapping[str, Any],
        exclude_entry_id: str | None = None,
    ) -> ConflictReport:
        """Answer whether a combination is currently free, without writing anything."""
        if isinstance(candidate_fields, ConflictCandidate):
            candidate = candidate_fields
        else:
            try:
                candidate = ConflictCandidate.model_validate(dict(candidate_fields))
            except PydanticValidationError as exc:
                raise to_validation_error(exc) from exc
        if exclude_entry_id is not None:
            candidate = candidate.model_copy(update={"exclude_entry_id": str(exclude_entry_id)})

        faculty = self.catalog.require_faculty(candidate.faculty_id)
        classroom = self.catalog.require_classroom(candidate.classroom_id)
        slot = self.catalog.require_time_slot(candidate.slot_id)

        report = self.conflicts.detect_conflicts(candidate, slot=slot)
        report.faculty_schedule, report.classroom_usage = self.conflicts.daily_schedule(candidate, slot)
        if not report.conflicting and candidate.subject_id:
            subject = self.db.get(Subject, candidate.subject_id)
            if subject is not None:
                report.warnings = self._advisories(
                    subject=subject,
                    faculty=faculty,
                    classroom=classroom,
                    section=candidate.section or "A",
                    semester=candidate.semester,
                    academic_year=candidate.academic_year,
                    max_students=None,
                )
        return report

    # Operation bodies. They raise expected AppErrors; _guard turns those into results.

    def _create(self, raw_fields, actor_id: str | None) -> OperationResult[str]:
        fields = self._parse_create(raw_fields)
        validated = self._validate(fields, exclude_entry_id=None)

        entry = TimetableEntry(
            id=str(uuid.uuid4()),
            subject_id=fields.subject_id,
            faculty_id=fields.faculty_id,
            classroom_id=fields.classroom_id,
            slot_id=fields.slot_id,
            section=fields.section,
            semester=fields.semester,
            academic_year=fields.academic_year,
            max_students=fields.max_students,
            notes=fields.notes,
            is_active=True,
            created_by_id=actor_id,
        )
        self.db.add(entry)
        log_activity(
            self.db,
            actor_id=actor_id,
            action="timetable.create",
            entity_id=entry.id,
            description=f"Created timetable: {self._describe(validated)}",
            new_values=entry_snapshot(entry),
        )
        warnings = self._advisories_for(validated)
        self._commit(validated.candidate, validated.slot)
        logger.info("Created timetable entry %s (actor=%s)", entry.id, actor_id)
        return OperationResult.success(entry.id, warnings)

    def _update(self, entry_id: str, raw_fields, actor_id: str | None) -> OperationResult[None]:
        entry = self._load_entry(entry_id)
        current = {name: getattr(entry, name) for name in EDITABLE_FIELDS}
        merged = {**current, **self._parse_patch(raw_fields)}
        fields = self._parse_create(merged)
        validated = self._validate(fields, exclude_entry_id=entry.id)

        old_values = entry_snapshot(entry)
        for name in EDITABLE_FIELDS:
            setattr(entry, name, getattr(fields, name))
        entry.modified_by_id = actor_id
        log_activity(
            self.db,
            actor_id=actor_id,
            action="timetable.update",
            entity_id=entry.id,
            description=f"Updated timetable: {self._describe(validated)}",
            old_values=old_values,
            new_values=entry_snapshot(entry),
        )
        warnings = self._advisories_for(validated)
        self._commit(validated.candidate, validated.slot)
        logger.info("Updated timetable entry %s (actor=%s)", entry.id, actor_id)
        return OperationResult.success(None, warnings)

    def _deactivate(self, entry_id: str, actor_id: str | None) -> OperationResult[None]:
        entry = self._load_entry(entry_id)
        if not entry.is_active:
            return OperationResult.success()
        entry.is_active = False
        entry.modified_by_id = actor_id
        log_activity(
            self.db,
            actor_id=actor_id,
            action="timetable.deactivate",
            entity_id=entry.id,
            old_values={"is_active": True},
            new_values={"is_active": False},
        )
        self._commit(None, None)
        logger.info("Deactivated timetable entry %s (actor=%s)", entry.id, actor_id)
        return OperationResult.success()

    def _activate(self, entry_id: str, actor_id: str | None) -> OperationResult[None]:
        entry = self._load_entry(entry_id)
        if entry.is_active:
            return OperationResult.success()

        slot = self.db.get(TimeSlot, entry.slot_id)
        if slot is None:
            raise NotFoundError("TimeSlot", entry.slot_id, field="slot_id")
        candidate = self._candidate(entry, exclude_entry_id=entry.id)
        self._lock_resources(entry.faculty_id, entry.classroom_id)
        reasons = self.conflicts.find_reasons(candidate, slot)
        if reasons:
            raise ConflictError(reasons)

        entry.is_active = True
        entry.modified_by_id = actor_id
        log_activity(
            self.db,
            actor_id=actor_id,
            action="timetable.activate",
            entity_id=entry.id,
            old_values={"is_active": False},
            new_values={"is_active": True},
        )
        self._commit(candidate, slot)
        logger.info("Activated timetable entry %s (actor=%s)", entry.id, actor_id)
        return OperationResult.success()

    def _hard_delete(self, entry_id: str, actor_id: str | None) -> OperationResult[None]:
        entry = self._load_entry(entry_id)
        old_values = entry_snapshot(entry)
        removed = self.db.execute(delete(TimetableEntry).where(TimetableEntry.id == entry_id))
        if removed.rowcount == 0:
            raise NotFoundError("TimetableEntry", entry_id)
        log_activity(
            self.db,
            actor_id=actor_id,
            action="timetable.delete",
            entity_id=entry_id,
            description="Deleted timetable entry permanently",
            old_values=old_values,
        )
        self._commit(None, None)
        logger.info("Deleted timetable entry %s (actor=%s)", entry_id, actor_id)
        return OperationResult.success()

    # Validation

    def _validate(self, fields: EntryCreate, *, exclude_entry_id: str | None) -> ValidatedEntry:
        if not self.settings.min_semester <= fields.semester <= self.settings.max_semester:
            raise ValidationError(
                "semester",
                f"Semester must be between {self.settings.min_semester} and {self.settings.max_semester}",
            )
        self._check_academic_year_window(fields.academic_year)

        subject = self.catalog.require_subject(fields.subject_id)
        faculty = self.catalog.require_faculty(fields.faculty_id)
        classroom = self.catalog.require_classroom(fields.classroom_id)
        slot = self.catalog.require_time_slot(fields.slot_id)

        if self.settings.enforce_faculty_subject_assignment:
            self.catalog.require_assignment(faculty, subject)

        if fields.max_students is not None and fields.max_students > classroom.capacity:
            raise ValidationError(
                "max_students",
                f"Maximum students ({fields.max_students}) cannot exceed classroom capacity ({classroom.capacity})",
            )

        candidate = ConflictCandidate(
            faculty_id=fields.faculty_id,
            classroom_id=fields.classroom_id,
            slot_id=fields.slot_id,
            semester=fields.semester,
            academic_year=fields.academic_year,
            subject_id=fields.subject_id,
            section=fields.section,
            exclude_entry_id=exclude_entry_id,
        )
        self._lock_resources(faculty.id, classroom.id)
        reasons = self.conflicts.find_reasons(candidate, slot)
        if reasons:
            raise ConflictError(reasons)

        return ValidatedEntry(
            fields=fields,
            subject=subject,
            faculty=faculty,
            classroom=classroom,
            slot=slot,
            candidate=candidate,
        )

    def _check_academic_year_window(self, academic_year: str) -> None:
        window = self.settings.academic_year_window_years
        if window <= 0:
            return
        start_year, _ = parse_academic_year(academic_year)
        current_year = date.today().year
        if start_year < current_year - window or start_year > current_year + window:
            raise ValidationError("academic_year", "Academic year seems unreasonable. Please check the year range.")

    def _parse_create(self, raw_fields) -> EntryCreate:
        if isinstance(raw_fields, EntryCreate):
            return raw_fields
        try:
            return EntryCreate.model_validate(dict(raw_fields))
        except PydanticValidationError as exc:
            raise to_validation_error(exc) from exc

    def _parse_patch(self, raw_fields) -> dict[str, Any]:
        if isinstance(raw_fields, EntryCreate):
            return raw_fields.model_dump()
        if isinstance(raw_fields, EntryUpdate):
            return raw_fields.model_dump(exclude_unset=True)
        try:
            return EntryUpdate.model_validate(dict(raw_fields)).model_dump(exclude_unset=True)
        except PydanticValidationError as exc:
            raise to_validation_error(exc) from exc

    # Advisories never block a write.

    def _advisories_for(self, validated: ValidatedEntry) -> list[str]:
        return self._advisories(
            subject=validated.subject,
            faculty=validated.faculty,
            classroom=validated.classroom,
            section=validated.fields.section,
            semester=validated.fields.semester,
            academic_year=validated.fields.academic_year,
            max_students=validated.fields.max_students,
        )

    def _advisories(
        self,
        *,
        subject: Subject,
        faculty: Faculty,
        classroom: Classroom,
        section: str,
        semester: int,
        academic_year: str,
        max_students: int | None,
    ) -> list[str]:
        warnings: list[str] = []
        capacity = max_students or classroom.capacity
        enrolled = enrolled_count(
            self.db,
            subject_id=subject.id,
            section=section,
            semester=semester,
            academic_year=academic_year,
        )
        room = f"{classroom.room_number} ({classroom.building})"
        if enrolled > capacity:
            warnings.append(
                f"CAPACITY EXCEEDED: {enrolled} students enrolled but classroom {room} only has capacity for {capacity}"
            )
        elif enrolled > capacity * self.settings.near_capacity_ratio:
            warnings.append(f"NEAR CAPACITY: Classroom {classroom.room_number} is nearly full ({enrolled}/{capacity} students)")
        elif enrolled > capacity * self.settings.high_occupancy_ratio:
            warnings.append(f"HIGH OCCUPANCY: Classroom {classroom.room_number} is {enrolled}/{capacity} students")

        if faculty.department != subject.department:
            warnings.append(
                f"CROSS-DEPARTMENT: {faculty.name} from {faculty.department} teaching "
                f"{subject.department} subject ({subject.code} - {subject.name})"
            )
        return warnings

    # Storage helpers

    def _load_entry(self, entry_id: str) -> TimetableEntry:
        entry = self.db.get(TimetableEntry, entry_id)
        if entry is None:
            raise NotFoundError("TimetableEntry", entry_id)
        return entry

    def _lock_resources(self, faculty_id: str, classroom_id: str) -> None:
        # Faculty before classroom on every path so competing writers queue instead of deadlocking.
        # SQLite ignores FOR UPDATE; its transactions start with BEGIN IMMEDIATE instead.
        self.db.execute(select(Faculty.id).where(Faculty.id == faculty_id).with_for_update()).all()
        self.db.execute(select(Classroom.id).where(Classroom.id == classroom_id).with_for_update()).all()

    def _candidate(self, entry: TimetableEntry, exclude_entry_id: str | None) -> ConflictCandidate:
        return ConflictCandidate(
            faculty_id=entry.faculty_id,
            classroom_id=entry.classroom_id,
            slot_id=entry.slot_id,
            semester=entry.semester,
            academic_year=entry.academic_year,
            subject_id=entry.subject_id,
            section=entry.section,
            exclude_entry_id=exclude_entry_id,
        )

    def _commit(self, candidate: ConflictCandidate | None, slot: TimeSlot | None) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise self._conflict_from_integrity_error(exc, candidate, slot) from exc

    def _conflict_from_integrity_error(
        self,
        exc: IntegrityError,
        candidate: ConflictCandidate | None,
        slot: TimeSlot | None,
    ) -> AppError:
        detail = str(exc.orig) if exc.orig is not None else str(exc)
        axes: list[ConflictAxis] = []
        if FACULTY_SLOT_INDEX in detail or "timetable_entries.faculty_id" in detail:
            axes.append(ConflictAxis.faculty)
        if CLASSROOM_SLOT_INDEX in detail or "timetable_entries.classroom_id" in detail:
            axes.append(ConflictAxis.classroom)
        if not axes or candidate is None:
            logger.exception("Timetable write violated an unexpected constraint")
            return StorageError("Timetable entry could not be saved")

        reasons: list[ConflictReason] = []
        if slot is not None:
            reasons = [
                reason
                for reason in self.conflicts.find_reasons(candidate, slot)
                if reason.axis in axes
            ]
        if not reasons:
            reasons = [
                ConflictReason(
                    axis=axis,
                    message=(
                        f"{'Faculty member' if axis == ConflictAxis.faculty else 'Classroom'} "
                        "was booked for this time slot by a concurrent change"
                    ),
                )
                for axis in axes
            ]
        logger.warning("Uniqueness constraint rejected timetable write: %s", [axis.value for axis in axes])
        return ConflictError(reasons)

    def _guard(
        self,
        action: str,
        operation: Callable[[], OperationResult],
        entry_id: str | None = None,
    ) -> OperationResult:
        try:
            return operation()
        except (ValidationError, NotFoundError, ConflictError) as exc:
            self.db.rollback()
            logger.warning("Timetable %s rejected: %s", action, exc.message)
            return OperationResult.failure(exc)
        except StaleDataError:
            # The row vanished between read and write; a concurrent hard delete won.
            self.db.rollback()
            return OperationResult.failure(NotFoundError("TimetableEntry", entry_id or ""))
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Timetable %s failed in storage", action)
            raise StorageError(f"Timetable {action} failed") from exc

    @staticmethod
    def _describe(validated: ValidatedEntry) -> str:
        slot = validated.slot
        return (
            f"{validated.subject.code} - {validated.subject.name} taught by {validated.faculty.name} "
            f"in {validated.classroom.room_number} ({validated.classroom.building}) "
            f"on {slot.day_of_week} {slot.start_time}-{slot.end_time}"
        )
