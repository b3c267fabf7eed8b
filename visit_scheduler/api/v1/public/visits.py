from fastapi import APIRouter, Depends

from visit_scheduler.api.deps import get_application_service
from visit_scheduler.schemas.visit import CancelResponse, Visit as VisitSchema, VisitCancel
from visit_scheduler.services.application_service import ApplicationService
from visit_scheduler.services.dto_builder import build_visit

router = APIRouter(prefix="/visits", tags=["Visits"])


@router.put("/{application_reference}/book", response_model=VisitSchema)
def book_visit(
    application_reference: str,
    service: ApplicationService = Depends(get_application_service),
):
    """Turn a reserved application into a booked visit. Capacity is not re-checked."""
    visit = service.complete(application_reference)
    return build_visit(service.db, visit)


@router.put("/{reference}/cancel", response_model=CancelResponse)
def cancel_visit(
    reference: str,
    data: VisitCancel = VisitCancel(),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Cancel a booked visit, or delete an application that was never booked.
    The capacity unit is released either way.
    """
    visit = service.cancel(reference, data.cancel_reason)
    return CancelResponse(
        reference=reference,
        cancelled=True,
        visit=build_visit(service.db, visit) if visit else None,
    )


@router.get("/{reference}", response_model=VisitSchema)
def get_visit(
    reference: str,
    service: ApplicationService = Depends(get_application_service),
):
    return build_visit(service.db, service.get_visit(reference))
