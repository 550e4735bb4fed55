"""Seed a demo catalog (subjects, faculty, classrooms, time slots) for local development.

Run:
  PYTHONPATH=backend python scripts/seed_catalog.py
"""

from __future__ import annotations

import os

from sqlalchemy import func, select

from timetabler.db.bootstrap import ensure_runtime_schema_compatibility
from timetabler.db.session import SessionLocal
from timetabler.models.classroom import Classroom, ClassroomType
from timetabler.models.faculty import Faculty, FacultySubject
from timetabler.models.subject import Subject
from timetabler.models.time_slot import TimeSlot

MOCK_EMAIL_DOMAIN = os.getenv("SEED_MOCK_EMAIL_DOMAIN", "university.edu").strip().lower() or "university.edu"
WORKING_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
PERIODS = [
    ("Period 1", "08:50", "09:40"),
    ("Period 2", "09:40", "10:30"),
    ("Period 3", "10:50", "11:40"),
    ("Period 4", "11:40", "12:30"),
    ("Period 5", "13:25", "14:15"),
    ("Period 6", "14:15", "15:05"),
    ("Lab Block", "13:25", "15:05"),
]

SUBJECTS: list[tuple[str, str, str, int, int]] = [
    ("CSE101", "Problem Solving and C Programming", "Computer Science", 4, 1),
    ("CSE102", "Data Structures", "Computer Science", 4, 2),
    ("CSE201", "Database Management Systems", "Computer Science", 4, 1),
    ("CSE202", "Operating Systems", "Computer Science", 4, 2),
    ("MAT101", "Calculus", "Mathematics", 3, 1),
    ("MAT102", "Linear Algebra", "Mathematics", 3, 2),
    ("PHY101", "Engineering Physics", "Physics", 3, 1),
]

FACULTY: list[tuple[str, str, str, list[str]]] = [
    ("EMP1001", "Dr. Meera Iyer", "Computer Science", ["CSE101", "CSE102"]),
    ("EMP1002", "Dr. Arjun Nair", "Computer Science", ["CSE201", "CSE202", "MAT102"]),
    ("EMP1003", "Kavya Raman", "Computer Science", ["CSE101", "CSE201"]),
    ("EMP2001", "Dr. Farhan Ali", "Mathematics", ["MAT101", "MAT102"]),
    ("EMP3001", "Dr. Lakshmi Menon", "Physics", ["PHY101"]),
]


def mock_email(name: str) -> str:
    local = ".".join(part for part in name.lower().replace("dr.", "").split() if part)
    return f"{local}@{MOCK_EMAIL_DOMAIN}"


def upsert_subjects(session) -> dict[str, Subject]:
    by_code: dict[str, Subject] = {}
    for code, name, department, credits, semester in SUBJECTS:
        subject = session.execute(select(Subject).where(Subject.code == code)).scalar_one_or_none()
        if subject is None:
            subject = Subject(code=code)
            session.add(subject)
        subject.name = name
        subject.department = department
        subject.credits = credits
        subject.semester = semester
        subject.is_active = True
        by_code[code] = subject
    session.flush()
    return by_code


def upsert_faculty(session, subjects: dict[str, Subject]) -> None:
    for employee_id, name, department, subject_codes in FACULTY:
        member = session.execute(select(Faculty).where(Faculty.employee_id == employee_id)).scalar_one_or_none()
        if member is None:
            member = Faculty(employee_id=employee_id)
            session.add(member)
        member.name = name
        member.email = mock_email(name)
        member.department = department
        member.is_active = True
        session.flush()

        for code in subject_codes:
            subject = subjects[code]
            assignment = session.execute(
                select(FacultySubject).where(
                    FacultySubject.faculty_id == member.id,
                    FacultySubject.subject_id == subject.id,
                )
            ).scalar_one_or_none()
            if assignment is None:
                session.add(FacultySubject(faculty_id=member.id, subject_id=subject.id))
            else:
                assignment.is_active = True


def upsert_classrooms(session) -> None:
    rooms = [
        (f"{wing}{floor}0{index}", "Academic Block", [60, 65, 70][index - 1], ClassroomType.lecture)
        for floor in range(1, 3)
        for wing in ["A", "B"]
        for index in range(1, 4)
    ]
    rooms += [(f"LAB-{index}", "Laboratory Wing", 40, ClassroomType.lab) for index in range(1, 4)]
    rooms.append(("SEM-1", "Academic Block", 30, ClassroomType.seminar))

    for room_number, building, capacity, room_type in rooms:
        room = session.execute(
            select(Classroom).where(Classroom.room_number == room_number, Classroom.building == building)
        ).scalar_one_or_none()
        if room is None:
            room = Classroom(room_number=room_number, building=building)
            session.add(room)
        room.capacity = capacity
        room.type = room_type
        room.is_active = True


def upsert_time_slots(session) -> None:
    for day in WORKING_DAYS:
        for slot_name, start_time, end_time in PERIODS:
            slot = session.execute(
                select(TimeSlot).where(
                    TimeSlot.day_of_week == day,
                    TimeSlot.start_time == start_time,
                    TimeSlot.end_time == end_time,
                )
            ).scalar_one_or_none()
            if slot is None:
                session.add(
                    TimeSlot(day_of_week=day, start_time=start_time, end_time=end_time, slot_name=slot_name)
                )
            else:
                slot.slot_name = slot_name
                slot.is_active = True


def main() -> None:
    ensure_runtime_schema_compatibility()
    with SessionLocal() as session:
        subjects = upsert_subjects(session)
        upsert_faculty(session, subjects)
        upsert_classrooms(session)
        upsert_time_slots(session)
        session.commit()

        counts = {
            "subjects": session.execute(select(func.count(Subject.id))).scalar_one(),
            "faculty": session.execute(select(func.count(Faculty.id))).scalar_one(),
            "assignments": session.execute(select(func.count(FacultySubject.id))).scalar_one(),
            "classrooms": session.execute(select(func.count(Classroom.id))).scalar_one(),
            "time_slots": session.execute(select(func.count(TimeSlot.id))).scalar_one(),
        }

    print("Catalog seeded successfully.")
    for name, total in counts.items():
        print(f"  {name}: {total}")


if __name__ == "__main__":
    main()
