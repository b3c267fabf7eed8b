import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from visit_scheduler.clients.prisoner_search import PrisonerLookup
from visit_scheduler.core.exceptions import NotFoundError
from visit_scheduler.models.enums import VisitRestriction
from visit_scheduler.models.session_template import SessionTemplate
from visit_scheduler.schemas.visit_session import VisitSession
from visit_scheduler.services.exclude_date_service import ExcludeDateService
from visit_scheduler.services.slot_capacity import SlotCapacityService, get_session_slot
from visit_scheduler.utils.eligibility import is_eligible
from visit_scheduler.utils.session_dates import occurrences_between

logger = logging.getLogger(__name__)


class SessionService:
    """Bookable occurrences of a prison's session templates within the booking window."""

    def __init__(
        self,
        db: Session,
        prisoner_lookup: Optional[PrisonerLookup] = None,
        *,
        policy_notice_days_min: int = 2,
        policy_notice_days_max: int = 28,
        expired_application_ttl_minutes: int = 24 * 60,
    ):
        self.db = db
        self.prisoner_lookup = prisoner_lookup
        self.policy_notice_days_min = policy_notice_days_min
        self.policy_notice_days_max = policy_notice_days_max
        self.slot_capacity = SlotCapacityService(db, expired_application_ttl_minutes)
        self.exclude_dates = ExcludeDateService(db)

    def _templates(self, prison_code: str) -> List[SessionTemplate]:
        return (
            self.db.query(SessionTemplate)
            .filter(SessionTemplate.prison_code == prison_code, SessionTemplate.active == True)  # noqa: E712
            .all()
        )

    def get_visit_sessions(
        self,
        prison_code: str,
        prisoner_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[VisitSession]:
        """
        Every occurrence between today + min notice and today + max notice of
        the active templates the prisoner is eligible for, ordered by start.
        Prison and template exclude dates are left out.
        Without a prisoner id no eligibility filter is applied.
        """
        today = today or date.today()
        window_start = today + timedelta(days=self.policy_notice_days_min)
        window_end = today + timedelta(days=self.policy_notice_days_max)

        templates = self._templates(prison_code)
        if prisoner_id:
            if self.prisoner_lookup is None:
                raise ValueError("A prisoner lookup is required to filter sessions by prisoner")
            prisoner = self.prisoner_lookup.get_prisoner(prisoner_id)
            if prisoner is None:
                raise NotFoundError(f"Prisoner {prisoner_id} not found")
            templates = [template for template in templates if is_eligible(prisoner, template)]

        sessions = []
        for template in templates:
            first_day = max(window_start, template.valid_from_date)
            last_day = window_end
            if template.valid_to_date is not None:
                last_day = min(last_day, template.valid_to_date)

            excluded = self.exclude_dates.get_excluded_dates(template)
            for session_date in occurrences_between(first_day, last_day, template):
                if session_date in excluded:
                    continue
                sessions.append(self._build_session(template, session_date))

        sessions.sort(key=lambda s: (s.start_timestamp, s.session_template_reference))
        logger.debug("Found %d visit sessions for prison %s", len(sessions), prison_code)
        return sessions

    def _build_session(self, template: SessionTemplate, session_date: date) -> VisitSession:
        open_count = closed_count = 0
        slot = get_session_slot(self.db, template, session_date)
        if slot is not None:
            open_count = self.slot_capacity.get_taken_count(slot.id, VisitRestriction.OPEN)
            closed_count = self.slot_capacity.get_taken_count(slot.id, VisitRestriction.CLOSED)

        return VisitSession(
            session_template_reference=template.reference,
            prison_code=template.prison_code,
            visit_room=template.visit_room,
            start_timestamp=datetime.combine(session_date, template.start_time),
            end_timestamp=datetime.combine(session_date, template.end_time),
            open_visit_capacity=template.open_capacity,
            open_visit_booked_count=open_count,
            closed_visit_capacity=template.closed_capacity,
            closed_visit_booked_count=closed_count,
        )
