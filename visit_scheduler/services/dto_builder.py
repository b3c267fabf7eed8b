from typing import Optional

from sqlalchemy.orm import Session

from visit_scheduler.models.application import Application
from visit_scheduler.models.visit import Visit
from visit_scheduler.schemas.application import (
    Application as ApplicationSchema,
    ContactDetails,
    SupportDetails,
    Visitor,
)
from visit_scheduler.schemas.visit import Visit as VisitSchema


def _contact(entity) -> Optional[ContactDetails]:
    if entity.contact_name is None:
        return None
    return ContactDetails(
        name=entity.contact_name,
        telephone=entity.contact_telephone,
        email=entity.contact_email,
    )


def _support(entity) -> Optional[SupportDetails]:
    if not entity.support_description:
        return None
    return SupportDetails(description=entity.support_description)


def _visitors(entity):
    return [Visitor(nomis_person_id=v.nomis_person_id, visit_contact=v.contact) for v in entity.visitors]


def get_current_application(db: Session, visit: Visit) -> Optional[Application]:
    """The most recently completed application of a visit."""
    return (
        db.query(Application)
        .filter(Application.visit_id == visit.id, Application.completed == True)  # noqa: E712
        .order_by(Application.id.desc())
        .first()
    )


def build_application(db: Session, application: Application) -> ApplicationSchema:
    """Convert an Application ORM object to its schema representation."""
    slot = application.session_slot
    visit_reference = None
    if application.visit_id is not None:
        visit = db.get(Visit, application.visit_id)
        visit_reference = visit.reference if visit else None

    return ApplicationSchema(
        reference=application.reference,
        prisoner_id=application.prisoner_id,
        prison_code=application.prison_code,
        session_template_reference=slot.session_template.reference,
        session_date=slot.slot_date,
        start_timestamp=slot.slot_start,
        end_timestamp=slot.slot_end,
        restriction=application.restriction,
        reserved_slot=application.reserved_slot,
        completed=application.completed,
        visit_reference=visit_reference,
        visitors=_visitors(application),
        visit_contact=_contact(application),
        visitor_support=_support(application),
        created_at=application.created_at,
        modified_at=application.modified_at,
    )


def build_visit(db: Session, visit: Visit) -> VisitSchema:
    """Convert a Visit ORM object to its schema representation."""
    slot = visit.session_slot
    current = get_current_application(db, visit)

    return VisitSchema(
        reference=visit.reference,
        application_reference=current.reference if current else None,
        prisoner_id=visit.prisoner_id,
        prison_code=visit.prison_code,
        session_template_reference=slot.session_template.reference,
        visit_room=visit.visit_room,
        start_timestamp=slot.slot_start,
        end_timestamp=slot.slot_end,
        restriction=visit.restriction,
        visit_status=visit.visit_status,
        visitors=_visitors(visit),
        visit_contact=_contact(visit),
        visitor_support=_support(visit),
        migrated=visit.migrated,
        created_at=visit.created_at,
        modified_at=visit.modified_at,
        cancelled_at=visit.cancelled_at,
    )
