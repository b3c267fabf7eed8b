from fastapi import APIRouter, Depends, status

from visit_scheduler.api.deps import get_session_group_service
from visit_scheduler.schemas.session_template import (
    CategoryGroup,
    CategoryGroupCreate,
    IncentiveGroup,
    IncentiveGroupCreate,
    LocationGroup,
    LocationGroupCreate,
)
from visit_scheduler.services.session_group_service import SessionGroupService

router = APIRouter(prefix="/admin", tags=["Admin - Session Groups"])


@router.post("/location-groups", response_model=LocationGroup, status_code=status.HTTP_201_CREATED)
def create_location_group(
    data: LocationGroupCreate,
    service: SessionGroupService = Depends(get_session_group_service),
):
    return service.create_location_group(data)


@router.post("/category-groups", response_model=CategoryGroup, status_code=status.HTTP_201_CREATED)
def create_category_group(
    data: CategoryGroupCreate,
    service: SessionGroupService = Depends(get_session_group_service),
):
    return service.create_category_group(data)


@router.post("/incentive-groups", response_model=IncentiveGroup, status_code=status.HTTP_201_CREATED)
def create_incentive_group(
    data: IncentiveGroupCreate,
    service: SessionGroupService = Depends(get_session_group_service),
):
    return service.create_incentive_group(data)
