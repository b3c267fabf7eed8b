import logging
from datetime import date, timedelta
from typing import Dict, Optional

from sqlalchemy.orm import Session

from visit_scheduler.clients.prisoner_search import PrisonerLookup, PrisonerSearchClient
from visit_scheduler.core.config import settings
from visit_scheduler.models.enums import NotificationEventType, VisitStatus
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.visit import Visit
from visit_scheduler.models.visit_notification_event import VisitNotificationEvent
from visit_scheduler.schemas.prisoner import Prisoner
from visit_scheduler.tasks.lock import run_locked_task
from visit_scheduler.utils.eligibility import is_eligible

logger = logging.getLogger(__name__)

FLAG_VISITS_TASK = "flagVisitsTask"


def _has_open_flag(db: Session, visit: Visit) -> bool:
    return (
        db.query(VisitNotificationEvent.id)
        .filter(
            VisitNotificationEvent.visit_id == visit.id,
            VisitNotificationEvent.event_type == NotificationEventType.PRISONER_NOT_ELIGIBLE,
            VisitNotificationEvent.resolved == False,  # noqa: E712
        )
        .first()
        is not None
    )


def flag_ineligible_visits(
    db: Session,
    prisoner_lookup: PrisonerLookup,
    days_ahead: int = 28,
    today: Optional[date] = None,
) -> int:
    """
    Re-check every booked visit from today to ``days_ahead`` days on and flag
    those whose prisoner no longer fits the session's eligibility groups.

    Each visit is checked on its own; a failure is logged and the sweep moves on.
    Returns the number of visits newly flagged.
    """
    today = today or date.today()
    visit_ids = [
        row[0]
        for row in db.query(Visit.id)
        .join(SessionSlot, Visit.session_slot_id == SessionSlot.id)
        .filter(
            Visit.visit_status == VisitStatus.BOOKED,
            SessionSlot.slot_date >= today,
            SessionSlot.slot_date <= today + timedelta(days=days_ahead),
        )
        .order_by(SessionSlot.slot_date)
        .all()
    ]

    prisoners: Dict[str, Optional[Prisoner]] = {}
    flagged = 0
    for visit_id in visit_ids:
        visit = db.get(Visit, visit_id)
        try:
            if visit.prisoner_id not in prisoners:
                prisoners[visit.prisoner_id] = prisoner_lookup.get_prisoner(visit.prisoner_id)
            prisoner = prisoners[visit.prisoner_id]
            if prisoner is None:
                logger.info("Prisoner %s for visit %s not found, skipping", visit.prisoner_id, visit.reference)
                continue

            template = visit.session_slot.session_template
            if is_eligible(prisoner, template) or _has_open_flag(db, visit):
                continue

            db.add(VisitNotificationEvent(
                visit_id=visit.id,
                event_type=NotificationEventType.PRISONER_NOT_ELIGIBLE,
                description=f"Prisoner {visit.prisoner_id} is no longer eligible for session {template.reference}",
            ))
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to check eligibility for visit %s", visit_id)
            continue

        flagged += 1
        logger.info("Visit %s flagged, prisoner %s not eligible", visit.reference, visit.prisoner_id)

    return flagged


def run_flag_ineligible_visits(session_factory) -> Optional[int]:
    lookup = PrisonerSearchClient(settings.PRISONER_SEARCH_URL, settings.PRISONER_SEARCH_TIMEOUT_SECONDS)
    return run_locked_task(
        session_factory,
        FLAG_VISITS_TASK,
        lambda db: flag_ineligible_visits(db, lookup, settings.FLAG_VISITS_DAYS_AHEAD),
        timedelta(seconds=settings.TASK_LOCK_AT_MOST_FOR_SECONDS),
    )
