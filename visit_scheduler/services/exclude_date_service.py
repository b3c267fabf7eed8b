import logging
from datetime import date
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from visit_scheduler.core.exceptions import NotFoundError, ValidationError
from visit_scheduler.models.enums import NotificationEventType, VisitStatus
from visit_scheduler.models.exclude_date import PrisonExcludeDate, SessionTemplateExcludeDate
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.session_template import SessionTemplate
from visit_scheduler.models.visit import Visit
from visit_scheduler.models.visit_notification_event import VisitNotificationEvent
from visit_scheduler.schemas.exclude_date import ExcludeDate

logger = logging.getLogger(__name__)


class ExcludeDateService:
    """
    Dates on which sessions do not run, either for a whole prison or for a
    single session template.

    Adding a date flags the booked visits that fall on it for review;
    removing it clears those flags again.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_template(self, reference: str) -> SessionTemplate:
        template = self.db.query(SessionTemplate).filter(SessionTemplate.reference == reference).first()
        if not template:
            raise NotFoundError(f"Session template {reference} not found")
        return template

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_prison_exclude_dates(self, prison_code: str) -> List[PrisonExcludeDate]:
        return (
            self.db.query(PrisonExcludeDate)
            .filter(PrisonExcludeDate.prison_code == prison_code)
            .order_by(PrisonExcludeDate.exclude_date.desc())
            .all()
        )

    def get_session_template_exclude_dates(self, reference: str) -> List[SessionTemplateExcludeDate]:
        template = self._get_template(reference)
        return (
            self.db.query(SessionTemplateExcludeDate)
            .filter(SessionTemplateExcludeDate.session_template_id == template.id)
            .order_by(SessionTemplateExcludeDate.exclude_date.desc())
            .all()
        )

    def get_excluded_dates(self, template: SessionTemplate) -> Set[date]:
        """Prison-wide and template exclude dates for the template."""
        prison_dates = self.db.query(PrisonExcludeDate.exclude_date).filter(
            PrisonExcludeDate.prison_code == template.prison_code
        )
        template_dates = self.db.query(SessionTemplateExcludeDate.exclude_date).filter(
            SessionTemplateExcludeDate.session_template_id == template.id
        )
        return {row[0] for row in prison_dates} | {row[0] for row in template_dates}

    def is_excluded_date(self, template: SessionTemplate, session_date: date) -> bool:
        return session_date in self.get_excluded_dates(template)

    # ------------------------------------------------------------------
    # Prison exclude dates
    # ------------------------------------------------------------------

    def add_prison_exclude_date(
        self, prison_code: str, data: ExcludeDate, today: Optional[date] = None
    ) -> List[PrisonExcludeDate]:
        existing = {row.exclude_date for row in self.get_prison_exclude_dates(prison_code)}
        self._validate_add(data.exclude_date, existing, f"prison - {prison_code}", today)

        try:
            self.db.add(PrisonExcludeDate(
                prison_code=prison_code, exclude_date=data.exclude_date, actioned_by=data.actioned_by,
            ))
            flagged = self._flag_visits(
                self._prison_visits(prison_code, data.exclude_date),
                NotificationEventType.PRISON_VISITS_BLOCKED_FOR_DATE,
                f"Prison {prison_code} is closed for visits on {data.exclude_date}",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Exclude date %s added to prison %s, %d booked visit(s) flagged",
            data.exclude_date, prison_code, flagged,
        )
        return self.get_prison_exclude_dates(prison_code)

    def remove_prison_exclude_date(self, prison_code: str, data: ExcludeDate) -> List[PrisonExcludeDate]:
        row = (
            self.db.query(PrisonExcludeDate)
            .filter(
                PrisonExcludeDate.prison_code == prison_code,
                PrisonExcludeDate.exclude_date == data.exclude_date,
            )
            .first()
        )
        if row is None:
            raise ValidationError([
                f"Exclude date {data.exclude_date} does not exist for prison - {prison_code}"
            ])

        try:
            self.db.delete(row)
            self._clear_flags(
                self._prison_visits(prison_code, data.exclude_date),
                NotificationEventType.PRISON_VISITS_BLOCKED_FOR_DATE,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Exclude date %s removed from prison %s", data.exclude_date, prison_code)
        return self.get_prison_exclude_dates(prison_code)

    # ------------------------------------------------------------------
    # Session template exclude dates
    # ------------------------------------------------------------------

    def add_session_template_exclude_date(
        self, reference: str, data: ExcludeDate, today: Optional[date] = None
    ) -> List[SessionTemplateExcludeDate]:
        template = self._get_template(reference)
        existing = {row.exclude_date for row in self.get_session_template_exclude_dates(reference)}
        self._validate_add(data.exclude_date, existing, f"session template - {reference}", today)

        try:
            self.db.add(SessionTemplateExcludeDate(
                session_template_id=template.id, exclude_date=data.exclude_date, actioned_by=data.actioned_by,
            ))
            flagged = self._flag_visits(
                self._session_visits(template, data.exclude_date),
                NotificationEventType.SESSION_VISITS_BLOCKED_FOR_DATE,
                f"Session {reference} does not run on {data.exclude_date}",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Exclude date %s added to session template %s, %d booked visit(s) flagged",
            data.exclude_date, reference, flagged,
        )
        return self.get_session_template_exclude_dates(reference)

    def remove_session_template_exclude_date(
        self, reference: str, data: ExcludeDate
    ) -> List[SessionTemplateExcludeDate]:
        template = self._get_template(reference)
        row = (
            self.db.query(SessionTemplateExcludeDate)
            .filter(
                SessionTemplateExcludeDate.session_template_id == template.id,
                SessionTemplateExcludeDate.exclude_date == data.exclude_date,
            )
            .first()
        )
        if row is None:
            raise ValidationError([
                f"Exclude date {data.exclude_date} does not exist for session template - {reference}"
            ])

        try:
            self.db.delete(row)
            self._clear_flags(
                self._session_visits(template, data.exclude_date),
                NotificationEventType.SESSION_VISITS_BLOCKED_FOR_DATE,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Exclude date %s removed from session template %s", data.exclude_date, reference)
        return self.get_session_template_exclude_dates(reference)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_add(exclude_date: date, existing: Set[date], owner: str, today: Optional[date]) -> None:
        if exclude_date < (today or date.today()):
            raise ValidationError([f"Cannot add exclude date {exclude_date} to {owner} as it is in the past"])
        if exclude_date in existing:
            raise ValidationError([f"Exclude date {exclude_date} has already been added to {owner}"])

    def _booked_visits_on(self, *criteria) -> List[Visit]:
        return (
            self.db.query(Visit)
            .join(SessionSlot, Visit.session_slot_id == SessionSlot.id)
            .filter(Visit.visit_status == VisitStatus.BOOKED, *criteria)
            .all()
        )

    def _prison_visits(self, prison_code: str, visit_date: date) -> List[Visit]:
        return self._booked_visits_on(SessionSlot.prison_code == prison_code, SessionSlot.slot_date == visit_date)

    def _session_visits(self, template: SessionTemplate, visit_date: date) -> List[Visit]:
        return self._booked_visits_on(
            SessionSlot.session_template_id == template.id, SessionSlot.slot_date == visit_date
        )

    def _flag_visits(self, visits: List[Visit], event_type: NotificationEventType, description: str) -> int:
        for visit in visits:
            self.db.add(VisitNotificationEvent(visit_id=visit.id, event_type=event_type, description=description))
        return len(visits)

    def _clear_flags(self, visits: List[Visit], event_type: NotificationEventType) -> None:
        visit_ids = [visit.id for visit in visits]
        if not visit_ids:
            return
        (
            self.db.query(VisitNotificationEvent)
            .filter(
                VisitNotificationEvent.visit_id.in_(visit_ids),
                VisitNotificationEvent.event_type == event_type,
                VisitNotificationEvent.resolved == False,  # noqa: E712
            )
            .delete(synchronize_session=False)
        )
