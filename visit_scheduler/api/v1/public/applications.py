from fastapi import APIRouter, Depends, status

from visit_scheduler.api.deps import get_application_service
from visit_scheduler.schemas.application import (
    Application as ApplicationSchema,
    ApplicationChange,
    ApplicationCreate,
)
from visit_scheduler.services.application_service import ApplicationService
from visit_scheduler.services.dto_builder import build_application

router = APIRouter(prefix="/applications", tags=["Applications"])


# ---------------------------------------------------------------------------
# POST /applications/slot/reserve: hold a slot for a new visit
# ---------------------------------------------------------------------------


@router.post("/slot/reserve", response_model=ApplicationSchema, status_code=status.HTTP_201_CREATED)
def reserve_slot(
    data: ApplicationCreate,
    service: ApplicationService = Depends(get_application_service),
):
    """
    Reserve a capacity unit on a session slot.

    Fails with 409 when the slot is full for the requested restriction;
    retry with `allow_over_booking` to book over capacity.
    """
    application = service.reserve(data)
    return build_application(service.db, application)


# ---------------------------------------------------------------------------
# POST /applications/{booking_reference}/change: re-open a booked visit
# ---------------------------------------------------------------------------


@router.post("/{booking_reference}/change", response_model=ApplicationSchema, status_code=status.HTTP_201_CREATED)
def change_booked_visit(
    booking_reference: str,
    data: ApplicationCreate,
    service: ApplicationService = Depends(get_application_service),
):
    application = service.reserve(data, booking_reference=booking_reference)
    return build_application(service.db, application)


# ---------------------------------------------------------------------------
# PUT /applications/{reference}/slot/change: amend an unbooked application
# ---------------------------------------------------------------------------


@router.put("/{reference}/slot/change", response_model=ApplicationSchema)
def change_application(
    reference: str,
    data: ApplicationChange,
    service: ApplicationService = Depends(get_application_service),
):
    application = service.change(reference, data)
    return build_application(service.db, application)


@router.get("/{reference}", response_model=ApplicationSchema)
def get_application(
    reference: str,
    service: ApplicationService = Depends(get_application_service),
):
    return build_application(service.db, service.get_application(reference))
