from typing import List

from fastapi import APIRouter, Depends, Query, status

from visit_scheduler.api.deps import get_session_template_service
from visit_scheduler.schemas.session_template import (
    SessionTemplate as SessionTemplateSchema,
    SessionTemplateCreate,
    SessionTemplateUpdate,
)
from visit_scheduler.services.session_template_service import SessionTemplateService

router = APIRouter(prefix="/admin/session-templates", tags=["Admin - Session Templates"])


# ---------------------------------------------------------------------------
# Session template CRUD
# ---------------------------------------------------------------------------


@router.post("", response_model=SessionTemplateSchema, status_code=status.HTTP_201_CREATED)
def create_session_template(
    data: SessionTemplateCreate,
    override: bool = Query(False, description="Create even if it overlaps existing templates"),
    service: SessionTemplateService = Depends(get_session_template_service),
):
    return service.create(data, override=override)


@router.get("", response_model=List[SessionTemplateSchema])
def list_session_templates(
    prison_code: str = Query(..., alias="prisonCode"),
    active_only: bool = Query(True, alias="activeOnly"),
    service: SessionTemplateService = Depends(get_session_template_service),
):
    return service.list_for_prison(prison_code, active_only)


@router.get("/{reference}", response_model=SessionTemplateSchema)
def get_session_template(
    reference: str,
    service: SessionTemplateService = Depends(get_session_template_service),
):
    return service.get(reference)


@router.put("/{reference}", response_model=SessionTemplateSchema)
def update_session_template(
    reference: str,
    data: SessionTemplateUpdate,
    override: bool = Query(False, description="Update even if it overlaps existing templates"),
    service: SessionTemplateService = Depends(get_session_template_service),
):
    """
    Update a session template.

    Changes to times, valid from date, frequency or capacity are refused
    once the template has booked visits they would invalidate.
    """
    return service.update(reference, data, override=override)


@router.put("/{reference}/deactivate", response_model=SessionTemplateSchema)
def deactivate_session_template(
    reference: str,
    service: SessionTemplateService = Depends(get_session_template_service),
):
    return service.deactivate(reference)
