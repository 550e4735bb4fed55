from __future__ import annotations

import logging

from sqlalchemy import inspect

from timetabler.db.base import Base
from timetabler.db.session import engine
import timetabler.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "subjects": {"id", "code", "department", "is_active"},
    "faculty": {"id", "employee_id", "department", "is_active"},
    "classrooms": {"id", "room_number", "capacity", "status", "is_active"},
    "time_slots": {"id", "day_of_week", "start_time", "end_time", "is_active"},
    "timetable_entries": {
        "id",
        "subject_id",
        "faculty_id",
        "classroom_id",
        "slot_id",
        "section",
        "semester",
        "academic_year",
        "max_students",
        "is_active",
        "created_by_id",
    },
}

REQUIRED_INDEXES: dict[str, set[str]] = {
    "timetable_entries": {
        "uq_timetable_entries_active_faculty_slot",
        "uq_timetable_entries_active_classroom_slot",
    },
}


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def _assert_required_indexes() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        missing: list[str] = []
        for table_name, required in REQUIRED_INDEXES.items():
            existing = {item["name"] for item in inspector.get_indexes(table_name)}
            missing.extend(f"{table_name}.{name}" for name in sorted(required - existing))
        if missing:
            raise RuntimeError(f"Missing uniqueness indexes: {', '.join(missing)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _assert_required_columns()
        _assert_required_indexes()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
