from __future__ import annotations

from sqlalchemy.orm import Session

from timetabler.models.activity_log import ActivityLog
from timetabler.models.timetable_entry import TimetableEntry

SNAPSHOT_FIELDS = (
    "subject_id",
    "faculty_id",
    "classroom_id",
    "slot_id",
    "section",
    "semester",
    "academic_year",
    "max_students",
    "notes",
    "is_active",
)


def entry_snapshot(entry: TimetableEntry) -> dict:
    return {name: getattr(entry, name) for name in SNAPSHOT_FIELDS}


def log_activity(
    db: Session,
    *,
    actor_id: str | None,
    action: str,
    entity_id: str,
    entity_type: str = "timetable_entry",
    description: str | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> None:
    record = ActivityLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        old_values=old_values,
        new_values=new_values,
    )
    db.add(record)
