import os

# Must be set before timetabler.db.session builds its engine.
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["BOOTSTRAP_SCHEMA_ON_STARTUP"] = "false"

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from timetabler.api.deps import (  # noqa: E402
    get_bulk_operator,
    get_catalog,
    get_db,
    get_query_service,
    get_timetable_service,
)
from timetabler.core.config import Settings  # noqa: E402
from timetabler.db.base import Base  # noqa: E402
from timetabler.db.session import serialize_sqlite_transactions  # noqa: E402
from timetabler.main import app  # noqa: E402
from timetabler.models import (  # noqa: E402
    Classroom,
    ClassroomStatus,
    ClassroomType,
    Faculty,
    FacultySubject,
    Subject,
    TimeSlot,
)
from timetabler.services.bulk import BulkOperator  # noqa: E402
from timetabler.services.catalog import ResourceCatalog  # noqa: E402
from timetabler.services.query_service import QueryService  # noqa: E402
from timetabler.services.timetable_service import TimetableService  # noqa: E402

ACADEMIC_YEAR = "2025-2026"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    serialize_sqlite_transactions(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory, seed_catalog):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings():
    # No year window so assertions do not depend on today's date.
    return Settings(academic_year_window_years=0)


def _seed(session_factory) -> None:
    session: Session = session_factory()
    session.add_all(
        [
            Subject(id="1", code="CS101", name="Data Structures", department="Computer Science", credits=4, semester=1),
            Subject(id="2", code="CS201", name="Algorithms", department="Computer Science", credits=4, semester=1),
            Subject(id="3", code="MA101", name="Calculus", department="Mathematics", credits=3, semester=1),
            Subject(id="4", code="PH101", name="Physics I", department="Physics", credits=3, is_active=False),
            Faculty(id="7", employee_id="EMP007", name="Alice Rao", email="alice@example.edu", department="Computer Science"),
            Faculty(id="8", employee_id="EMP008", name="Ben Ortiz", email="ben@example.edu", department="Computer Science"),
            Faculty(id="5", employee_id="EMP005", name="Chen Wu", email="chen@example.edu", department="Mathematics"),
            Faculty(id="6", employee_id="EMP006", name="Dana Park", department="Physics", is_active=False),
            FacultySubject(faculty_id="7", subject_id="1"),
            FacultySubject(faculty_id="7", subject_id="2"),
            FacultySubject(faculty_id="7", subject_id="3"),
            FacultySubject(faculty_id="8", subject_id="1"),
            FacultySubject(faculty_id="8", subject_id="2"),
            FacultySubject(faculty_id="5", subject_id="3"),
            Classroom(id="3", room_number="A-101", building="Main", capacity=40, type=ClassroomType.lecture),
            Classroom(id="9", room_number="A-102", building="Main", capacity=60, type=ClassroomType.lecture),
            Classroom(id="4", room_number="LAB-1", building="Science", capacity=20, type=ClassroomType.lab),
            Classroom(
                id="5",
                room_number="B-201",
                building="Annex",
                capacity=30,
                type=ClassroomType.seminar,
                status=ClassroomStatus.maintenance,
            ),
            Classroom(id="6", room_number="B-202", building="Annex", capacity=30, is_active=False),
            TimeSlot(id="1", day_of_week="Monday", start_time="09:00", end_time="10:00", slot_name="Period 1"),
            TimeSlot(id="2", day_of_week="Monday", start_time="09:30", end_time="10:30", slot_name="Period 1B"),
            TimeSlot(id="3", day_of_week="Monday", start_time="10:00", end_time="11:00", slot_name="Period 2"),
            TimeSlot(id="4", day_of_week="Tuesday", start_time="09:00", end_time="10:00", slot_name="Period 1"),
            TimeSlot(
                id="5", day_of_week="Wednesday", start_time="09:00", end_time="10:00", slot_name="Period 1", is_active=False
            ),
            TimeSlot(id="6", day_of_week="Monday", start_time="14:00", end_time="15:00", slot_name="Period 5"),
        ]
    )
    session.commit()
    session.close()


@pytest.fixture()
def seed_catalog(session_factory):
    _seed(session_factory)


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file database, each with its own connection, for interleaved writers."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'timetable.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    serialize_sqlite_transactions(engine)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    _seed(factory)
    yield factory
    engine.dispose()


@pytest.fixture()
def entry_fields():
    def build(**overrides):
        fields = {
            "subject_id": "1",
            "faculty_id": "7",
            "classroom_id": "3",
            "slot_id": "1",
            "section": "A",
            "semester": 1,
            "academic_year": ACADEMIC_YEAR,
        }
        fields.update(overrides)
        return fields

    return build


@pytest.fixture()
def timetable(db, settings):
    return TimetableService(db, settings)


@pytest.fixture()
def queries(db, settings):
    return QueryService(db, settings)


@pytest.fixture()
def client(session_factory, seed_catalog, settings):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_timetable_service] = lambda db=Depends(get_db): TimetableService(db, settings)
    app.dependency_overrides[get_query_service] = lambda db=Depends(get_db): QueryService(db, settings)
    app.dependency_overrides[get_bulk_operator] = lambda db=Depends(get_db): BulkOperator(db, settings)
    app.dependency_overrides[get_catalog] = lambda db=Depends(get_db): ResourceCatalog(db, settings)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
