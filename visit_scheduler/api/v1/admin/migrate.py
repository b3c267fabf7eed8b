from fastapi import APIRouter, Depends, status

from visit_scheduler.api.deps import get_migration_service
from visit_scheduler.schemas.migration import MigrateVisitRequest
from visit_scheduler.schemas.visit import Visit as VisitSchema
from visit_scheduler.services.dto_builder import build_visit
from visit_scheduler.services.migration_service import MigrationService

router = APIRouter(prefix="/migrate", tags=["Migration"])


@router.post("/visits", response_model=VisitSchema, status_code=status.HTTP_201_CREATED)
def migrate_visit(
    data: MigrateVisitRequest,
    service: MigrationService = Depends(get_migration_service),
):
    """
    Import a visit booked in the legacy system. The session template with the
    closest times the prisoner may use is chosen; 422 when none is close enough.
    """
    visit = service.migrate_visit(data)
    return build_visit(service.db, visit)
