import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetabler.db.base import Base

# Both indexes only cover active rows so a soft-deleted entry never blocks a new booking.
ACTIVE_ROWS_SQLITE = text("is_active = 1")
ACTIVE_ROWS_POSTGRES = text("is_active")

FACULTY_SLOT_INDEX = "uq_timetable_entries_active_faculty_slot"
CLASSROOM_SLOT_INDEX = "uq_timetable_entries_active_classroom_slot"


class TimetableEntry(Base):
    __tablename__ = "timetable_entries"
    __table_args__ = (
        Index(
            FACULTY_SLOT_INDEX,
            "faculty_id",
            "slot_id",
            "semester",
            "academic_year",
            unique=True,
            sqlite_where=ACTIVE_ROWS_SQLITE,
            postgresql_where=ACTIVE_ROWS_POSTGRES,
        ),
        Index(
            CLASSROOM_SLOT_INDEX,
            "classroom_id",
            "slot_id",
            "semester",
            "academic_year",
            unique=True,
            sqlite_where=ACTIVE_ROWS_SQLITE,
            postgresql_where=ACTIVE_ROWS_POSTGRES,
        ),
        Index("ix_timetable_entries_term", "semester", "academic_year", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    faculty_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    classroom_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    slot_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    section: Mapped[str] = mapped_column(String(20), nullable=False, default="A")
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    max_students: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    modified_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


def active_entries():
    """Predicate shared by every read that must only see binding entries."""
    return TimetableEntry.is_active.is_(True)
