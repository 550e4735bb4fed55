from fastapi import APIRouter, Depends

from timetabler.api.deps import get_catalog
from timetabler.schemas.catalog import FacultyOut, FilterOptionsOut, ResourceCatalogOut
from timetabler.services.catalog import ResourceCatalog

router = APIRouter()


@router.get("", response_model=ResourceCatalogOut)
def get_resource_catalog(catalog: ResourceCatalog = Depends(get_catalog)) -> ResourceCatalogOut:
    return catalog.get_resource_catalog()


@router.get("/filter-options", response_model=FilterOptionsOut)
def get_filter_options(catalog: ResourceCatalog = Depends(get_catalog)) -> FilterOptionsOut:
    return catalog.filter_options()


@router.get("/subjects/{subject_id}/faculty", response_model=list[FacultyOut])
def list_subject_faculty(subject_id: str, catalog: ResourceCatalog = Depends(get_catalog)) -> list[FacultyOut]:
    return catalog.faculty_for_subject(subject_id)
