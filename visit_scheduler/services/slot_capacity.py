import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from visit_scheduler.core.exceptions import CapacityExceededError
from visit_scheduler.models.application import Application
from visit_scheduler.models.enums import VisitRestriction, VisitStatus
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.session_template import SessionTemplate
from visit_scheduler.models.visit import Visit
from visit_scheduler.utils.reference import reference_encoder

logger = logging.getLogger(__name__)


def get_session_slot(db: Session, template: SessionTemplate, slot_date: date) -> Optional[SessionSlot]:
    return (
        db.query(SessionSlot)
        .filter(
            SessionSlot.session_template_id == template.id,
            SessionSlot.slot_date == slot_date,
        )
        .first()
    )


def get_or_create_session_slot(db: Session, template: SessionTemplate, slot_date: date) -> SessionSlot:
    """
    Return the slot for (template, date), creating it on first use.

    Two requests may race to create the same slot; the loser's insert fails on
    the unique constraint inside its savepoint and it re-reads the winner's row.
    """
    slot = get_session_slot(db, template, slot_date)
    if slot:
        return slot

    slot = SessionSlot(
        session_template_id=template.id,
        prison_code=template.prison_code,
        slot_date=slot_date,
        slot_start=datetime.combine(slot_date, template.start_time),
        slot_end=datetime.combine(slot_date, template.end_time),
    )
    try:
        with db.begin_nested():
            db.add(slot)
            db.flush()
            slot.reference = reference_encoder.encode(slot.id)
            db.flush()
    except IntegrityError:
        logger.debug("Session slot for %s on %s created concurrently", template.reference, slot_date)
        slot = get_session_slot(db, template, slot_date)
        if slot is None:
            raise
    return slot


class SlotCapacityService:
    """Counts what is taken on a session slot and enforces its capacity."""

    def __init__(self, db: Session, expired_application_ttl_minutes: int = 24 * 60):
        self.db = db
        self.expired_application_ttl_minutes = expired_application_ttl_minutes

    def get_expired_application_cutoff(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(minutes=self.expired_application_ttl_minutes)

    def get_booked_count(self, session_slot_id: int, restriction: VisitRestriction) -> int:
        return (
            self.db.query(func.count(Visit.id))
            .filter(
                Visit.session_slot_id == session_slot_id,
                Visit.restriction == restriction,
                Visit.visit_status == VisitStatus.BOOKED,
            )
            .scalar()
        )

    def get_reserved_count(
        self,
        session_slot_id: int,
        restriction: VisitRestriction,
        excluded_application_id: Optional[int] = None,
    ) -> int:
        query = self.db.query(func.count(Application.id)).filter(
            Application.session_slot_id == session_slot_id,
            Application.restriction == restriction,
            Application.completed == False,  # noqa: E712
            Application.reserved_slot == True,  # noqa: E712
            Application.modified_at >= self.get_expired_application_cutoff(),
        )
        if excluded_application_id is not None:
            query = query.filter(Application.id != excluded_application_id)
        return query.scalar()

    def get_taken_count(
        self,
        session_slot_id: int,
        restriction: VisitRestriction,
        excluded_application_id: Optional[int] = None,
    ) -> int:
        return self.get_booked_count(session_slot_id, restriction) + self.get_reserved_count(
            session_slot_id, restriction, excluded_application_id
        )

    def check_capacity_for_reservation(
        self,
        template: SessionTemplate,
        session_slot: SessionSlot,
        restriction: VisitRestriction,
        excluded_application_id: Optional[int] = None,
    ) -> None:
        """
        Raise CapacityExceededError unless at least one unit is left.

        Locks the slot row first, so concurrent reservations against the same
        slot are serialized until the caller's transaction ends.
        """
        (
            self.db.query(SessionSlot)
            .filter(SessionSlot.id == session_slot.id)
            .with_for_update()
            .one()
        )

        capacity = template.open_capacity if restriction == VisitRestriction.OPEN else template.closed_capacity
        taken = self.get_taken_count(session_slot.id, restriction, excluded_application_id)
        remaining = capacity - taken
        if remaining < 1:
            message = (
                f"Application can not be reserved because capacity has been exceeded "
                f"for the slot {session_slot.reference}"
            )
            logger.debug(message)
            raise CapacityExceededError(message)
