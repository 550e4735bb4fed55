from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from timetabler.db.session import SessionLocal
from timetabler.services.bulk import BulkOperator
from timetabler.services.catalog import ResourceCatalog
from timetabler.services.query_service import QueryService
from timetabler.services.timetable_service import TimetableService


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor_id(x_actor_id: str | None = Header(default=None, max_length=36)) -> str | None:
    # Identity is established upstream; the gateway forwards the acting user's id.
    if x_actor_id is None:
        return None
    return x_actor_id.strip() or None


def get_timetable_service(db: Session = Depends(get_db)) -> TimetableService:
    return TimetableService(db)


def get_query_service(db: Session = Depends(get_db)) -> QueryService:
    return QueryService(db)


def get_bulk_operator(db: Session = Depends(get_db)) -> BulkOperator:
    return BulkOperator(db)


def get_catalog(db: Session = Depends(get_db)) -> ResourceCatalog:
    return ResourceCatalog(db)
