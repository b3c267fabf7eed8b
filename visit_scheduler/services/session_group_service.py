import logging
from typing import List, Type

from sqlalchemy.orm import Session

from visit_scheduler.core.exceptions import NotFoundError, ValidationError
from visit_scheduler.models.session_template import (
    PermittedSessionLocation, SessionCategory, SessionCategoryGroup,
    SessionIncentiveGroup, SessionIncentiveLevel, SessionLocationGroup,
)
from visit_scheduler.schemas.session_template import (
    CategoryGroupCreate, IncentiveGroupCreate, LocationGroupCreate,
)
from visit_scheduler.utils.reference import assign_reference

logger = logging.getLogger(__name__)


class SessionGroupService:
    """Location, category and incentive groups that session templates are scoped by."""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, group):
        try:
            self.db.add(group)
            assign_reference(self.db, group)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(group)
        logger.info("%s %s created for prison %s", type(group).__name__, group.reference, group.prison_code)
        return group

    def create_location_group(self, data: LocationGroupCreate) -> SessionLocationGroup:
        group = SessionLocationGroup(prison_code=data.prison_code, name=data.name)
        group.locations = [PermittedSessionLocation(**location.model_dump()) for location in data.locations]
        return self._save(group)

    def create_category_group(self, data: CategoryGroupCreate) -> SessionCategoryGroup:
        group = SessionCategoryGroup(prison_code=data.prison_code, name=data.name)
        group.categories = [SessionCategory(code=code) for code in dict.fromkeys(data.categories)]
        return self._save(group)

    def create_incentive_group(self, data: IncentiveGroupCreate) -> SessionIncentiveGroup:
        group = SessionIncentiveGroup(prison_code=data.prison_code, name=data.name)
        group.incentive_levels = [SessionIncentiveLevel(code=code) for code in dict.fromkeys(data.incentive_levels)]
        return self._save(group)

    def resolve(self, model: Type, prison_code: str, references: List[str]) -> list:
        """Load groups by reference, all of which must belong to prison_code."""
        if not references:
            return []
        groups = self.db.query(model).filter(model.reference.in_(references)).all()
        found = {group.reference: group for group in groups}
        missing = [ref for ref in references if ref not in found]
        if missing:
            raise NotFoundError(f"Session groups not found: {', '.join(missing)}")
        foreign = [group.reference for group in groups if group.prison_code != prison_code]
        if foreign:
            raise ValidationError([f"Session group {ref} does not belong to prison {prison_code}" for ref in foreign])
        return [found[ref] for ref in dict.fromkeys(references)]
