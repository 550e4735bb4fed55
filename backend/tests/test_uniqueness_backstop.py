"""Writes that slip past the pre-check are still stopped, by the partial unique indexes or the write lock."""

import threading

from sqlalchemy import select

from timetabler.core.exceptions import ConflictError
from timetabler.models import TimetableEntry
from timetabler.schemas.conflict import ConflictAxis
from timetabler.services.timetable_service import TimetableService


def _blind_first_check(monkeypatch, timetable):
    """Simulate a concurrent writer: the pre-check sees nothing, later lookups see the truth."""
    real_find_reasons = timetable.conflicts.find_reasons
    calls = {"count": 0}

    def find_reasons(candidate, slot):
        calls["count"] += 1
        if calls["count"] == 1:
            return []
        return real_find_reasons(candidate, slot)

    monkeypatch.setattr(timetable.conflicts, "find_reasons", find_reasons)


def test_faculty_index_violation_becomes_conflict(monkeypatch, db, timetable, entry_fields):
    existing = timetable.create_entry(entry_fields()).unwrap()
    _blind_first_check(monkeypatch, timetable)

    result = timetable.create_entry(entry_fields(classroom_id="9"))

    assert isinstance(result.error, ConflictError)
    assert [(reason.axis, reason.entry_id) for reason in result.error.reasons] == [
        (ConflictAxis.faculty, existing)
    ]
    assert db.execute(select(TimetableEntry.id)).scalars().all() == [existing]


def test_classroom_index_violation_becomes_conflict(monkeypatch, timetable, entry_fields):
    existing = timetable.create_entry(entry_fields()).unwrap()
    _blind_first_check(monkeypatch, timetable)

    result = timetable.create_entry(entry_fields(faculty_id="8"))

    assert isinstance(result.error, ConflictError)
    assert [(reason.axis, reason.entry_id) for reason in result.error.reasons] == [
        (ConflictAxis.classroom, existing)
    ]


def test_generic_reason_when_winner_is_not_visible(monkeypatch, timetable, entry_fields):
    timetable.create_entry(entry_fields()).unwrap()
    monkeypatch.setattr(timetable.conflicts, "find_reasons", lambda candidate, slot: [])

    result = timetable.create_entry(entry_fields(classroom_id="9"))

    assert isinstance(result.error, ConflictError)
    assert result.error.reasons[0].axis == ConflictAxis.faculty
    assert result.error.reasons[0].entry_id is None
    assert "concurrent change" in result.error.message


def test_session_is_usable_after_backstop_rejection(monkeypatch, timetable, entry_fields):
    timetable.create_entry(entry_fields()).unwrap()
    monkeypatch.setattr(timetable.conflicts, "find_reasons", lambda candidate, slot: [])
    assert not timetable.create_entry(entry_fields(classroom_id="9")).ok

    monkeypatch.undo()
    assert timetable.create_entry(entry_fields(slot_id="4")).ok


def test_inactive_rows_do_not_hold_the_index(timetable, entry_fields):
    first = timetable.create_entry(entry_fields()).unwrap()
    timetable.deactivate_entry(first).unwrap()

    assert timetable.create_entry(entry_fields()).ok


def test_overlapping_slot_writers_are_serialized(monkeypatch, file_session_factory, settings, entry_fields):
    first_session = file_session_factory()
    second_session = file_session_factory()
    first = TimetableService(first_session, settings)
    second = TimetableService(second_session, settings)
    outcomes = {}

    # Monday 09:30-10:30 overlaps the first writer's Monday 09:00-10:00 for the same faculty member.
    competitor = threading.Thread(
        target=lambda: outcomes.update(second=second.create_entry(entry_fields(classroom_id="9", slot_id="2")))
    )
    real_find_reasons = first.conflicts.find_reasons

    def find_reasons(candidate, slot):
        reasons = real_find_reasons(candidate, slot)
        if competitor.ident is None:
            # Let the competitor run between this check and the insert.
            competitor.start()
            competitor.join(timeout=0.5)
        return reasons

    monkeypatch.setattr(first.conflicts, "find_reasons", find_reasons)
    try:
        outcomes["first"] = first.create_entry(entry_fields())
        competitor.join(timeout=15)
    finally:
        first_session.close()
        second_session.close()

    assert outcomes["first"].ok
    assert isinstance(outcomes["second"].error, ConflictError)
    assert [reason.axis for reason in outcomes["second"].error.reasons] == [ConflictAxis.faculty]

    with file_session_factory() as session:
        booked = session.execute(
            select(TimetableEntry.slot_id).where(TimetableEntry.faculty_id == "7", TimetableEntry.is_active.is_(True))
        ).scalars().all()
    assert booked == ["1"]
