from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError as PydanticValidationError

from timetabler.api.deps import get_actor_id, get_bulk_operator, get_query_service, get_timetable_service
from timetabler.core.exceptions import ValidationError
from timetabler.schemas.bulk import BulkRequest, BulkResult
from timetabler.schemas.conflict import ConflictCandidate, ConflictReport
from timetabler.schemas.timetable import (
    EntryCreate,
    EntryFilters,
    EntryPage,
    EntrySortKey,
    EntryStatusFilter,
    EntryUpdate,
    EntryView,
    EntryWriteResponse,
    SortOrder,
    TimetableStats,
)
from timetabler.services.bulk import BulkOperator
from timetabler.services.query_service import QueryService
from timetabler.services.timetable_service import TimetableService, to_validation_error

router = APIRouter()


def _entry_filters(
    department: str | None = None,
    semester: int | None = None,
    academic_year: str | None = None,
    section: str | None = None,
    day_of_week: str | None = None,
    faculty_id: str | None = None,
    classroom_id: str | None = None,
    subject_id: str | None = None,
    search: str | None = Query(default=None, max_length=200),
    status_filter: EntryStatusFilter = Query(default=EntryStatusFilter.active, alias="status"),
) -> EntryFilters:
    try:
        return EntryFilters(
            department=department,
            semester=semester,
            academic_year=academic_year,
            section=section,
            day_of_week=day_of_week,
            faculty_id=faculty_id,
            classroom_id=classroom_id,
            subject_id=subject_id,
            search=search,
            status=status_filter,
        )
    except PydanticValidationError as exc:
        raise to_validation_error(exc) from exc


@router.get("/entries", response_model=EntryPage)
def list_entries(
    filters: EntryFilters = Depends(_entry_filters),
    page: int = 1,
    page_size: int | None = None,
    sort_key: EntrySortKey = EntrySortKey.day_time,
    sort_order: SortOrder = SortOrder.asc,
    queries: QueryService = Depends(get_query_service),
) -> EntryPage:
    return queries.list_entries(filters, page=page, page_size=page_size, sort_key=sort_key, sort_order=sort_order)


@router.post("/entries", response_model=EntryWriteResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: EntryCreate,
    actor_id: str | None = Depends(get_actor_id),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryWriteResponse:
    result = service.create_entry(payload, actor_id=actor_id)
    return EntryWriteResponse(id=result.unwrap(), warnings=result.warnings)


@router.post("/entries/bulk-delete", response_model=BulkResult)
def bulk_delete_entries(
    payload: BulkRequest,
    actor_id: str | None = Depends(get_actor_id),
    operator: BulkOperator = Depends(get_bulk_operator),
) -> BulkResult:
    return operator.bulk_delete(payload.ids, actor_id=actor_id).unwrap()


@router.post("/entries/bulk-export", response_model=BulkResult)
def bulk_export_entries(
    payload: BulkRequest,
    operator: BulkOperator = Depends(get_bulk_operator),
) -> BulkResult:
    return operator.bulk_export(payload.ids).unwrap()


@router.get("/entries/{entry_id}", response_model=EntryView)
def get_entry(entry_id: str, queries: QueryService = Depends(get_query_service)) -> EntryView:
    return queries.get_entry(entry_id)


@router.put("/entries/{entry_id}", response_model=EntryWriteResponse)
def replace_entry(
    entry_id: str,
    payload: EntryCreate,
    actor_id: str | None = Depends(get_actor_id),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryWriteResponse:
    result = service.update_entry(entry_id, payload, actor_id=actor_id)
    result.unwrap()
    return EntryWriteResponse(id=entry_id, warnings=result.warnings)


@router.patch("/entries/{entry_id}", response_model=EntryWriteResponse)
def update_entry(
    entry_id: str,
    payload: EntryUpdate,
    actor_id: str | None = Depends(get_actor_id),
    service: TimetableService = Depends(get_timetable_service),
) -> EntryWriteResponse:
    if not payload.model_fields_set:
        raise ValidationError("body", "No fields to update")
    result = service.update_entry(entry_id, payload, actor_id=actor_id)
    result.unwrap()
    return EntryWriteResponse(id=entry_id, warnings=result.warnings)


@router.post("/entries/{entry_id}/deactivate")
def deactivate_entry(
    entry_id: str,
    actor_id: str | None = Depends(get_actor_id),
    service: TimetableService = Depends(get_timetable_service),
) -> dict:
    service.deactivate_entry(entry_id, actor_id=actor_id).unwrap()
    return {"id": entry_id, "is_active": False}


@router.post("/entries/{entry_id}/activate")
def activate_entry(
    entry_id: str,
    actor_id: str | None = Depends(get_actor_id),
    service: TimetableService = Depends(get_timetable_service),
) -> dict:
    service.activate_entry(entry_id, actor_id=actor_id).unwrap()
    return {"id": entry_id, "is_active": True}


@router.delete("/entries/{entry_id}")
def delete_entry(
    entry_id: str,
    actor_id: str | None = Depends(get_actor_id),
    service: TimetableService = Depends(get_timetable_service),
) -> dict:
    service.delete_entry(entry_id, actor_id=actor_id).unwrap()
    return {"id": entry_id, "deleted": True}


@router.post("/conflicts/check", response_model=ConflictReport)
def check_conflicts(
    payload: ConflictCandidate,
    service: TimetableService = Depends(get_timetable_service),
) -> ConflictReport:
    return service.check_conflicts(payload)


@router.get("/stats", response_model=TimetableStats)
def timetable_stats(
    academic_year: str | None = None,
    queries: QueryService = Depends(get_query_service),
) -> TimetableStats:
    return queries.timetable_stats(academic_year)
