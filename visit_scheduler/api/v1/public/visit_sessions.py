from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from visit_scheduler.api.deps import get_session_service
from visit_scheduler.schemas.visit_session import VisitSession
from visit_scheduler.services.session_service import SessionService

router = APIRouter(prefix="/visit-sessions", tags=["Visit Sessions"])


@router.get("", response_model=List[VisitSession])
def list_visit_sessions(
    prison_code: str = Query(..., alias="prisonId"),
    prisoner_id: Optional[str] = Query(None, alias="prisonerId"),
    service: SessionService = Depends(get_session_service),
):
    """Bookable sessions within the booking window, with current booked counts."""
    return service.get_visit_sessions(prison_code, prisoner_id)
