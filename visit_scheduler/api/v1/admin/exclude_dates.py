from typing import List

from fastapi import APIRouter, Depends

from visit_scheduler.api.deps import get_exclude_date_service
from visit_scheduler.schemas.exclude_date import ExcludeDate
from visit_scheduler.services.exclude_date_service import ExcludeDateService

router = APIRouter(prefix="/admin", tags=["Admin - Exclude Dates"])


# ---------------------------------------------------------------------------
# Prison exclude dates
# ---------------------------------------------------------------------------


@router.get("/prisons/{prison_code}/exclude-dates", response_model=List[ExcludeDate])
def get_prison_exclude_dates(
    prison_code: str,
    service: ExcludeDateService = Depends(get_exclude_date_service),
):
    return service.get_prison_exclude_dates(prison_code)


@router.put("/prisons/{prison_code}/exclude-dates/add", response_model=List[ExcludeDate])
def add_prison_exclude_date(
    prison_code: str,
    data: ExcludeDate,
    service: ExcludeDateService = Depends(get_exclude_date_service),
):
    """Close the prison for visits on a date. Booked visits on it are flagged for review."""
    return service.add_prison_exclude_date(prison_code, data)


@router.put("/prisons/{prison_code}/exclude-dates/remove", response_model=List[ExcludeDate])
def remove_prison_exclude_date(
    prison_code: str,
    data: ExcludeDate,
    service: ExcludeDateService = Depends(get_exclude_date_service),
):
    return service.remove_prison_exclude_date(prison_code, data)


# ---------------------------------------------------------------------------
# Session template exclude dates
# ---------------------------------------------------------------------------


@router.get("/session-templates/{reference}/exclude-dates", response_model=List[ExcludeDate])
def get_session_template_exclude_dates(
    reference: str,
    service: ExcludeDateService = Depends(get_exclude_date_service),
):
    return service.get_session_template_exclude_dates(reference)


@router.put("/session-templates/{reference}/exclude-dates/add", response_model=List[ExcludeDate])
def add_session_template_exclude_date(
    reference: str,
    data: ExcludeDate,
    service: ExcludeDateService = Depends(get_exclude_date_service),
):
    return service.add_session_template_exclude_date(reference, data)


@router.put("/session-templates/{reference}/exclude-dates/remove", response_model=List[ExcludeDate])
def remove_session_template_exclude_date(
    reference: str,
    data: ExcludeDate,
    service: ExcludeDateService = Depends(get_exclude_date_service),
):
    return service.remove_session_template_exclude_date(reference, data)
