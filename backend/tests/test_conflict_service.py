import pytest

from timetabler.core.config import Settings
from timetabler.core.exceptions import ConflictError, NotFoundError
from timetabler.schemas.conflict import ConflictAxis, ConflictCandidate
from timetabler.services.conflict_service import ConflictService
from timetabler.services.timetable_service import TimetableService


def _candidate(**overrides) -> ConflictCandidate:
    fields = {
        "faculty_id": "7",
        "classroom_id": "3",
        "slot_id": "1",
        "semester": 1,
        "academic_year": "2025-2026",
    }
    fields.update(overrides)
    return ConflictCandidate(**fields)


def test_overlapping_slots_double_book_faculty(timetable, entry_fields):
    first = timetable.create_entry(entry_fields(faculty_id=7, classroom_id=3, slot_id="1"))
    assert first.ok
    assert first.value

    second = timetable.create_entry(entry_fields(faculty_id=7, classroom_id=9, slot_id="2"))

    assert not second.ok
    assert isinstance(second.error, ConflictError)
    assert [reason.axis for reason in second.error.reasons] == [ConflictAxis.faculty]
    assert second.error.reasons[0].entry_id == first.value


def test_overlapping_slots_double_book_classroom(timetable, entry_fields):
    first = timetable.create_entry(entry_fields(faculty_id=7, classroom_id=3, slot_id="1"))
    second = timetable.create_entry(entry_fields(faculty_id=8, classroom_id=3, slot_id="2"))

    assert not second.ok
    assert [reason.axis for reason in second.error.reasons] == [ConflictAxis.classroom]
    assert second.error.reasons[0].entry_id == first.value


def test_every_conflicting_entry_is_reported_in_axis_order(db, timetable, entry_fields, settings):
    faculty_entry = timetable.create_entry(entry_fields(faculty_id="7", classroom_id="3", slot_id="1")).unwrap()
    room_entry = timetable.create_entry(entry_fields(faculty_id="8", classroom_id="9", slot_id="2")).unwrap()

    report = ConflictService(db, settings).detect_conflicts(_candidate(faculty_id="7", classroom_id="9", slot_id="1"))

    assert report.conflicting is True
    assert [(reason.axis, reason.entry_id) for reason in report.reasons] == [
        (ConflictAxis.faculty, faculty_entry),
        (ConflictAxis.classroom, room_entry),
    ]


def test_same_entry_can_conflict_on_both_axes(db, timetable, entry_fields, settings):
    existing = timetable.create_entry(entry_fields()).unwrap()

    report = ConflictService(db, settings).detect_conflicts(_candidate())

    assert [reason.axis for reason in report.reasons] == [ConflictAxis.faculty, ConflictAxis.classroom]
    assert {reason.entry_id for reason in report.reasons} == {existing}


def test_conflict_message_describes_existing_booking(db, timetable, entry_fields, settings):
    timetable.create_entry(entry_fields()).unwrap()

    report = ConflictService(db, settings).detect_conflicts(_candidate(classroom_id="9"))

    message = report.reasons[0].message
    assert message.startswith("Faculty conflict: Alice Rao is already teaching CS101 - Data Structures (Section A)")
    assert "A-101 (Main)" in message
    assert "Monday 9:00 AM - 10:00 AM" in message


def test_back_to_back_slots_do_not_conflict(db, timetable, entry_fields, settings):
    timetable.create_entry(entry_fields(slot_id="1")).unwrap()

    report = ConflictService(db, settings).detect_conflicts(_candidate(slot_id="3"))

    assert report.conflicting is False
    assert report.reasons == []


def test_other_terms_and_days_do_not_conflict(db, timetable, entry_fields, settings):
    timetable.create_entry(entry_fields()).unwrap()
    service = ConflictService(db, settings)

    assert not service.detect_conflicts(_candidate(semester=2)).conflicting
    assert not service.detect_conflicts(_candidate(academic_year="2026-2027")).conflicting
    assert not service.detect_conflicts(_candidate(slot_id="4")).conflicting


def test_inactive_entries_are_ignored(db, timetable, entry_fields, settings):
    entry_id = timetable.create_entry(entry_fields()).unwrap()
    timetable.deactivate_entry(entry_id).unwrap()

    report = ConflictService(db, settings).detect_conflicts(_candidate())

    assert report.conflicting is False


def test_excluded_entry_never_conflicts_with_itself(db, timetable, entry_fields, settings):
    entry_id = timetable.create_entry(entry_fields()).unwrap()

    report = ConflictService(db, settings).detect_conflicts(_candidate(), exclude_entry_id=entry_id)

    assert report.conflicting is False


def test_unknown_slot_raises_not_found(db, settings):
    with pytest.raises(NotFoundError) as exc_info:
        ConflictService(db, settings).detect_conflicts(_candidate(slot_id="missing"))

    assert exc_info.value.field == "slot_id"


def test_section_is_not_part_of_the_key_by_default(db, timetable, entry_fields, settings):
    timetable.create_entry(entry_fields(subject_id="1", section="A")).unwrap()

    report = ConflictService(db, settings).detect_conflicts(
        _candidate(faculty_id="8", classroom_id="9", slot_id="2", subject_id="2", section="A")
    )

    assert report.conflicting is False


def test_section_conflicts_when_enabled(db, entry_fields):
    strict = Settings(academic_year_window_years=0, detect_section_conflicts=True)
    service = TimetableService(db, strict)
    existing = service.create_entry(entry_fields(subject_id="1", section="A")).unwrap()
    detector = ConflictService(db, strict)

    same_section = detector.detect_conflicts(
        _candidate(faculty_id="8", classroom_id="9", slot_id="2", subject_id="2", section="A")
    )
    other_section = detector.detect_conflicts(
        _candidate(faculty_id="8", classroom_id="9", slot_id="2", subject_id="2", section="B")
    )
    other_department = detector.detect_conflicts(
        _candidate(faculty_id="5", classroom_id="9", slot_id="2", subject_id="3", section="A")
    )

    assert [(reason.axis, reason.entry_id) for reason in same_section.reasons] == [
        (ConflictAxis.section, existing)
    ]
    assert other_section.conflicting is False
    assert other_department.conflicting is False


def test_check_conflicts_lists_same_day_schedule(timetable, entry_fields):
    afternoon = timetable.create_entry(entry_fields(classroom_id="9", slot_id="6")).unwrap()
    tuesday = timetable.create_entry(entry_fields(slot_id="4")).unwrap()

    report = timetable.check_conflicts(
        {"faculty_id": 7, "classroom_id": 3, "slot_id": 1, "semester": 1, "academic_year": "2025-2026"}
    )

    assert report.conflicting is False
    assert [item.entry_id for item in report.faculty_schedule] == [afternoon]
    assert report.faculty_schedule[0].room_number == "A-102"
    assert tuesday not in [item.entry_id for item in report.classroom_usage]
    assert report.classroom_usage == []


def test_check_conflicts_adds_advisories_for_free_slot(timetable):
    report = timetable.check_conflicts(
        {
            "faculty_id": "7",
            "classroom_id": "3",
            "slot_id": "1",
            "semester": 1,
            "academic_year": "2025-2026",
            "subject_id": "3",
        }
    )

    assert report.conflicting is False
    assert any(warning.startswith("CROSS-DEPARTMENT") for warning in report.warnings)
