import pytest
from sqlalchemy import literal_column, select

from timetabler.core.config import Settings
from timetabler.core.exceptions import ConflictError, NotFoundError, ValidationError
from timetabler.models import ActivityLog, Enrollment, TimeSlot, TimetableEntry
from timetabler.schemas.common import parse_time_to_minutes, slots_overlap
from timetabler.services.timetable_service import TimetableService

ACADEMIC_YEAR = "2025-2026"


def _enroll(db, count: int, *, subject_id="1", section="A", semester=1, academic_year=ACADEMIC_YEAR) -> None:
    db.add_all(
        Enrollment(
            student_id=f"student-{index}",
            subject_id=subject_id,
            section=section,
            semester=semester,
            academic_year=academic_year,
        )
        for index in range(count)
    )
    db.commit()


def _actions(db, entry_id: str) -> list[str]:
    return list(
        db.execute(
            select(ActivityLog.action).where(ActivityLog.entity_id == entry_id).order_by(literal_column("rowid"))
        ).scalars()
    )


def test_create_entry_persists_active_entry(db, timetable, entry_fields):
    result = timetable.create_entry(entry_fields(section=None, notes="  Bring lab kits  "), actor_id="admin-1")

    assert result.ok
    entry = db.get(TimetableEntry, result.value)
    assert entry.is_active is True
    assert entry.section == "A"
    assert entry.notes == "Bring lab kits"
    assert entry.created_by_id == "admin-1"
    assert _actions(db, entry.id) == ["timetable.create"]


@pytest.mark.parametrize(
    ("academic_year", "reason"),
    [
        ("2025-2027", "Academic year end year must be exactly one year after start year"),
        ("2025/26", "Academic year must be in YYYY-YYYY format (e.g., 2025-2026)"),
    ],
)
def test_create_rejects_malformed_academic_year(timetable, entry_fields, academic_year, reason):
    result = timetable.create_entry(entry_fields(academic_year=academic_year))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "academic_year"
    assert result.error.reason == reason


def test_create_rejects_academic_year_outside_window(db, entry_fields):
    service = TimetableService(db, Settings(academic_year_window_years=5))

    result = service.create_entry(entry_fields(academic_year="2000-2001"))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "academic_year"


@pytest.mark.parametrize("semester", [0, 3])
def test_create_rejects_semester_out_of_bounds(timetable, entry_fields, semester):
    result = timetable.create_entry(entry_fields(semester=semester))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "semester"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"subject_id": "999"}, "subject_id"),
        ({"subject_id": "4"}, "subject_id"),
        ({"faculty_id": "999"}, "faculty_id"),
        ({"faculty_id": "6"}, "faculty_id"),
        ({"classroom_id": "999"}, "classroom_id"),
        ({"classroom_id": "6"}, "classroom_id"),
        ({"slot_id": "999"}, "slot_id"),
        ({"slot_id": "5"}, "slot_id"),
    ],
)
def test_create_rejects_missing_or_inactive_references(db, timetable, entry_fields, overrides, field):
    result = timetable.create_entry(entry_fields(**overrides))

    assert isinstance(result.error, NotFoundError)
    assert result.error.field == field
    assert db.execute(select(TimetableEntry)).first() is None


def test_create_rejects_classroom_under_maintenance(timetable, entry_fields):
    result = timetable.create_entry(entry_fields(classroom_id="5"))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "classroom_id"
    assert "maintenance" in result.error.reason


def test_create_rejects_unassigned_faculty(timetable, entry_fields):
    result = timetable.create_entry(entry_fields(faculty_id="5", subject_id="1"))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "faculty_id"
    assert "not assigned" in result.error.reason


def test_assignment_check_can_be_disabled(db, entry_fields):
    service = TimetableService(db, Settings(academic_year_window_years=0, enforce_faculty_subject_assignment=False))

    assert service.create_entry(entry_fields(faculty_id="5", subject_id="1")).ok


def test_blank_section_is_rejected(timetable, entry_fields):
    result = timetable.create_entry(entry_fields(section="   "))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "section"
    assert result.error.reason == "Section cannot be empty"


def test_max_students_is_bounded_by_classroom_capacity(timetable, entry_fields):
    over = timetable.create_entry(entry_fields(max_students=41))
    exact = timetable.create_entry(entry_fields(max_students=40))

    assert isinstance(over.error, ValidationError)
    assert over.error.field == "max_students"
    assert over.error.reason == "Maximum students (41) cannot exceed classroom capacity (40)"
    assert exact.ok


def test_max_students_must_be_positive(timetable, entry_fields):
    result = timetable.create_entry(entry_fields(max_students=0))

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "max_students"


def test_rejected_create_writes_nothing(db, timetable, entry_fields):
    first = timetable.create_entry(entry_fields()).unwrap()

    rejected = timetable.create_entry(entry_fields(classroom_id="9"))

    assert isinstance(rejected.error, ConflictError)
    assert db.execute(select(TimetableEntry.id)).scalars().all() == [first]
    assert db.execute(select(ActivityLog)).scalars().all()[0].action == "timetable.create"
    assert len(db.execute(select(ActivityLog)).scalars().all()) == 1


def test_update_to_own_values_never_conflicts(timetable, entry_fields):
    entry_id = timetable.create_entry(entry_fields()).unwrap()

    assert timetable.update_entry(entry_id, entry_fields()).ok
    assert timetable.update_entry(entry_id, {}).ok


def test_update_applies_patch(db, timetable, entry_fields):
    entry_id = timetable.create_entry(entry_fields()).unwrap()

    result = timetable.update_entry(entry_id, {"slot_id": "4", "section": "B"}, actor_id="admin-2")

    assert result.ok
    entry = db.get(TimetableEntry, entry_id)
    db.refresh(entry)
    assert (entry.slot_id, entry.section, entry.classroom_id) == ("4", "B", "3")
    assert entry.modified_by_id == "admin-2"
    assert _actions(db, entry_id) == ["timetable.create", "timetable.update"]


def test_update_into_conflict_leaves_entry_unchanged(db, timetable, entry_fields):
    booked = timetable.create_entry(entry_fields(slot_id="1")).unwrap()
    moving = timetable.create_entry(entry_fields(classroom_id="9", slot_id="4")).unwrap()

    result = timetable.update_entry(moving, {"slot_id": "2"})

    assert isinstance(result.error, ConflictError)
    assert result.error.reasons[0].entry_id == booked
    entry = db.get(TimetableEntry, moving)
    db.refresh(entry)
    assert entry.slot_id == "4"


def test_update_missing_entry_is_not_found(timetable):
    result = timetable.update_entry("missing", {"section": "B"})

    assert isinstance(result.error, NotFoundError)


def test_deactivate_then_activate_restores_entry(db, timetable, entry_fields):
    entry_id = timetable.create_entry(entry_fields(max_students=30, notes="Core")).unwrap()
    before = {
        name: getattr(db.get(TimetableEntry, entry_id), name)
        for name in ("subject_id", "faculty_id", "classroom_id", "slot_id", "section", "max_students", "notes")
    }

    assert timetable.deactivate_entry(entry_id).ok
    assert timetable.activate_entry(entry_id).ok

    entry = db.get(TimetableEntry, entry_id)
    db.refresh(entry)
    assert entry.is_active is True
    assert {name: getattr(entry, name) for name in before} == before
    assert _actions(db, entry_id) == ["timetable.create", "timetable.deactivate", "timetable.activate"]


def test_reactivation_fails_when_slot_was_taken(timetable, entry_fields):
    original = timetable.create_entry(entry_fields()).unwrap()
    timetable.deactivate_entry(original).unwrap()
    replacement = timetable.create_entry(entry_fields(classroom_id="9")).unwrap()

    result = timetable.activate_entry(original)

    assert isinstance(result.error, ConflictError)
    assert [reason.entry_id for reason in result.error.reasons] == [replacement]


def test_deactivate_and_activate_are_idempotent(timetable, entry_fields):
    entry_id = timetable.create_entry(entry_fields()).unwrap()

    assert timetable.activate_entry(entry_id).ok
    assert timetable.deactivate_entry(entry_id).ok
    assert timetable.deactivate_entry(entry_id).ok


def test_deactivate_unknown_or_deleted_entry_is_not_found(timetable, entry_fields):
    missing = timetable.deactivate_entry("does-not-exist")
    assert isinstance(missing.error, NotFoundError)

    entry_id = timetable.create_entry(entry_fields()).unwrap()
    timetable.delete_entry(entry_id).unwrap()

    again = timetable.deactivate_entry(entry_id)
    assert isinstance(again.error, NotFoundError)
    assert again.error.resource_id == entry_id


def test_hard_delete_removes_row_and_logs(db, timetable, entry_fields):
    entry_id = timetable.create_entry(entry_fields()).unwrap()

    assert timetable.delete_entry(entry_id, actor_id="admin-1").ok

    assert db.get(TimetableEntry, entry_id) is None
    assert _actions(db, entry_id) == ["timetable.create", "timetable.delete"]
    assert isinstance(timetable.delete_entry(entry_id).error, NotFoundError)


def test_unwrap_raises_the_failure(timetable):
    with pytest.raises(NotFoundError):
        timetable.delete_entry("missing").unwrap()


def test_cross_department_assignment_warns(timetable, entry_fields):
    result = timetable.create_entry(entry_fields(subject_id="3"))

    assert result.ok
    assert result.warnings == [
        "CROSS-DEPARTMENT: Alice Rao from Computer Science teaching Mathematics subject (MA101 - Calculus)"
    ]


@pytest.mark.parametrize(
    ("enrolled", "max_students", "prefix"),
    [
        (35, 30, "CAPACITY EXCEEDED"),
        (37, None, "NEAR CAPACITY"),
        (33, None, "HIGH OCCUPANCY"),
    ],
)
def test_capacity_advisories(db, timetable, entry_fields, enrolled, max_students, prefix):
    _enroll(db, enrolled)

    result = timetable.create_entry(entry_fields(max_students=max_students))

    assert result.ok
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith(prefix)


def test_low_occupancy_has_no_warnings(db, timetable, entry_fields):
    _enroll(db, 10)

    result = timetable.create_entry(entry_fields())

    assert result.ok
    assert result.warnings == []


def _double_bookings(db) -> list[tuple[str, str]]:
    rows = db.execute(
        select(TimetableEntry, TimeSlot)
        .join(TimeSlot, TimeSlot.id == TimetableEntry.slot_id)
        .where(TimetableEntry.is_active.is_(True))
    ).all()
    clashes = []
    for index, (left, left_slot) in enumerate(rows):
        for right, right_slot in rows[index + 1:]:
            same_term = (left.semester, left.academic_year) == (right.semester, right.academic_year)
            overlapping = left_slot.day_of_week == right_slot.day_of_week and slots_overlap(
                parse_time_to_minutes(left_slot.start_time),
                parse_time_to_minutes(left_slot.end_time),
                parse_time_to_minutes(right_slot.start_time),
                parse_time_to_minutes(right_slot.end_time),
            )
            shared = left.faculty_id == right.faculty_id or left.classroom_id == right.classroom_id
            if same_term and overlapping and shared:
                clashes.append((left.id, right.id))
    return clashes


def test_operation_sequence_never_double_books(db, timetable, entry_fields):
    ids: dict[str, str] = {}

    def create(name, **overrides):
        result = timetable.create_entry(entry_fields(**overrides))
        if result.ok:
            ids[name] = result.value

    create("a", slot_id="1")
    create("b", classroom_id="9", slot_id="2")
    create("c", faculty_id="8", classroom_id="3", slot_id="2")
    create("d", faculty_id="8", classroom_id="9", slot_id="3")
    assert _double_bookings(db) == []

    timetable.deactivate_entry(ids["a"])
    create("e", faculty_id="8", classroom_id="3", slot_id="1")
    create("f", classroom_id="4", slot_id="2")
    assert _double_bookings(db) == []

    timetable.activate_entry(ids["a"])
    timetable.update_entry(ids["d"], {"slot_id": "2"})
    timetable.update_entry(ids["f"], {"slot_id": "3", "classroom_id": "9"})
    assert _double_bookings(db) == []
    assert set(ids) == {"a", "d", "e", "f"}
    assert db.get(TimetableEntry, ids["a"]).is_active is False
