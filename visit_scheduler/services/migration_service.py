import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from visit_scheduler.clients.prisoner_search import PrisonerLookup
from visit_scheduler.core.exceptions import MigrationMatchError
from visit_scheduler.models.application import Application, ApplicationVisitor
from visit_scheduler.models.enums import DayOfWeek, VisitRestriction, VisitStatus
from visit_scheduler.models.session_template import SessionTemplate
from visit_scheduler.models.visit import Visit, VisitVisitor
from visit_scheduler.schemas.migration import MigrateVisitRequest
from visit_scheduler.schemas.prisoner import Prisoner
from visit_scheduler.services.slot_capacity import get_or_create_session_slot
from visit_scheduler.utils.migration_matcher import DEFAULT_MAX_PROXIMITY_MINUTES, best_match
from visit_scheduler.utils.reference import assign_reference
from visit_scheduler.utils.session_dates import is_active_for_date

logger = logging.getLogger(__name__)

MIGRATED_BY = "MIGRATION"


class MigrationService:
    """Imports visits booked in the legacy system onto the best matching session template."""

    def __init__(
        self,
        db: Session,
        prisoner_lookup: Optional[PrisonerLookup] = None,
        *,
        max_proximity_minutes: int = DEFAULT_MAX_PROXIMITY_MINUTES,
    ):
        self.db = db
        self.prisoner_lookup = prisoner_lookup
        self.max_proximity_minutes = max_proximity_minutes

    def get_candidate_templates(self, request: MigrateVisitRequest) -> List[SessionTemplate]:
        """
        Active templates of the visit's prison running on its day of week,
        not expired by its date, running that week and with capacity for the
        requested restriction. Templates that only become valid later are
        kept; the matcher rules them out.
        """
        visit_date = request.start_timestamp.date()
        capacity = (
            SessionTemplate.open_capacity
            if request.visit_restriction == VisitRestriction.OPEN
            else SessionTemplate.closed_capacity
        )
        templates = (
            self.db.query(SessionTemplate)
            .filter(
                SessionTemplate.prison_code == request.prison_code,
                SessionTemplate.active == True,  # noqa: E712
                SessionTemplate.day_of_week == DayOfWeek.of(visit_date),
                or_(SessionTemplate.valid_to_date.is_(None), SessionTemplate.valid_to_date >= visit_date),
                capacity > 0,
            )
            .all()
        )
        return [template for template in templates if is_active_for_date(visit_date, template)]

    def _get_prisoner(self, prisoner_id: str) -> Prisoner:
        prisoner = self.prisoner_lookup.get_prisoner(prisoner_id) if self.prisoner_lookup else None
        if prisoner is None:
            logger.info("Migration failed, prisoner %s cannot be found", prisoner_id)
            raise MigrationMatchError(f"Prisoner {prisoner_id} cannot be found")
        return prisoner

    def migrate_visit(self, request: MigrateVisitRequest) -> Visit:
        """Create a booked visit, and its completed application, for a legacy visit."""
        prisoner = self._get_prisoner(request.prisoner_id)
        template = best_match(
            request, prisoner, self.get_candidate_templates(request), self.max_proximity_minutes
        )

        try:
            slot = get_or_create_session_slot(self.db, template, request.start_timestamp.date())
            visit = Visit(
                prisoner_id=request.prisoner_id,
                prison_code=request.prison_code,
                session_slot_id=slot.id,
                restriction=request.visit_restriction,
                visit_status=VisitStatus.BOOKED,
                visit_room=request.visit_room,
                migrated=True,
            )
            visit.session_slot = slot
            if request.visit_contact is not None:
                visit.contact_name = request.visit_contact.name
                visit.contact_telephone = request.visit_contact.telephone
                visit.contact_email = request.visit_contact.email
            visit.visitors = [
                VisitVisitor(nomis_person_id=v.nomis_person_id, contact=v.visit_contact)
                for v in request.visitors
            ]
            if request.create_date_time is not None:
                visit.created_at = request.create_date_time
            self.db.add(visit)
            assign_reference(self.db, visit)

            application = Application(
                prisoner_id=visit.prisoner_id,
                prison_code=visit.prison_code,
                session_slot_id=slot.id,
                restriction=visit.restriction,
                reserved_slot=True,
                completed=True,
                visit_id=visit.id,
                contact_name=visit.contact_name,
                contact_telephone=visit.contact_telephone,
                contact_email=visit.contact_email,
                created_by=MIGRATED_BY,
            )
            application.visitors = [
                ApplicationVisitor(nomis_person_id=v.nomis_person_id, contact=v.visit_contact)
                for v in request.visitors
            ]
            self.db.add(application)
            assign_reference(self.db, application)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Migrated visit %s for prisoner %s onto session %s",
            visit.reference, visit.prisoner_id, template.reference,
        )
        return visit
