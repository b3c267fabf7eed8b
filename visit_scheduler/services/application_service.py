import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from visit_scheduler.core.exceptions import (
    ExpiredVisitAmendError, NotFoundError, ValidationError,
)
from visit_scheduler.models.application import Application, ApplicationVisitor
from visit_scheduler.models.enums import NotificationEventType, VisitRestriction, VisitStatus
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.session_template import SessionTemplate
from visit_scheduler.models.visit import Visit, VisitVisitor
from visit_scheduler.schemas.application import (
    ApplicationChange, ApplicationCreate, ContactDetails, SupportDetails, Visitor,
)
from visit_scheduler.services.exclude_date_service import ExcludeDateService
from visit_scheduler.services.notifications import LoggingNotifier, VisitEventNotifier
from visit_scheduler.services.slot_capacity import SlotCapacityService, get_or_create_session_slot
from visit_scheduler.utils.reference import assign_reference
from visit_scheduler.utils.session_dates import is_session_date

logger = logging.getLogger(__name__)

AMEND_EXPIRED_ERROR_MESSAGE = "Visit with reference - {} is in the past, it cannot be {}"


def _is_reservation_required(
    old_slot_id: int,
    old_restriction: VisitRestriction,
    new_slot_id: int,
    new_restriction: VisitRestriction,
) -> bool:
    return old_slot_id != new_slot_id or old_restriction != new_restriction


class ApplicationService:
    """
    Reservation state machine: an application is held by ``reserve``, edited
    by ``change``, turned into a booked visit by ``complete``, or removed by
    ``cancel`` and ``expire_stale_holds``.
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[VisitEventNotifier] = None,
        *,
        expired_application_ttl_minutes: int = 24 * 60,
        max_total_visitors: int = 6,
        min_support_description_length: int = 3,
    ):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.expired_application_ttl_minutes = expired_application_ttl_minutes
        self.max_total_visitors = max_total_visitors
        self.min_support_description_length = min_support_description_length
        self.slot_capacity = SlotCapacityService(db, expired_application_ttl_minutes)
        self.exclude_dates = ExcludeDateService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_session_template(self, reference: str) -> SessionTemplate:
        template = (
            self.db.query(SessionTemplate)
            .filter(SessionTemplate.reference == reference, SessionTemplate.active == True)  # noqa: E712
            .first()
        )
        if not template:
            raise NotFoundError(f"Session template {reference} not found")
        return template

    def get_application(self, reference: str) -> Application:
        application = self.db.query(Application).filter(Application.reference == reference).first()
        if not application:
            raise NotFoundError(f"Application (reference {reference}) not found")
        return application

    def get_visit(self, reference: str) -> Visit:
        visit = self.db.query(Visit).filter(Visit.reference == reference).first()
        if not visit:
            raise NotFoundError(f"Visit {reference} not found")
        return visit

    def get_booked_visit(self, reference: str) -> Visit:
        visit = (
            self.db.query(Visit)
            .filter(Visit.reference == reference, Visit.visit_status == VisitStatus.BOOKED)
            .first()
        )
        if not visit:
            raise NotFoundError(f"Visit {reference} not found")
        return visit

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_visitors_and_support(
        self,
        visitors: Optional[List[Visitor]],
        support: Optional[SupportDetails],
    ) -> List[str]:
        errors = []
        if support is not None:
            description = support.description.strip()
            if description and len(description) < self.min_support_description_length:
                errors.append("Support value description is too small")

        if visitors is not None:
            if not visitors:
                errors.append("An application must have at least one visitor")
            elif len(visitors) > self.max_total_visitors:
                errors.append(
                    f"This application has too many visitors, max visitors {self.max_total_visitors}"
                )
        return errors

    def _validate_session_date(self, template: SessionTemplate, session_date: date) -> List[str]:
        if not is_session_date(session_date, template):
            return [f"Session {template.reference} does not run on {session_date}"]
        if self.exclude_dates.is_excluded_date(template, session_date):
            return [f"Session {template.reference} is not available on excluded date {session_date}"]
        return []

    def _validate_not_double_booked(
        self,
        prisoner_id: str,
        slot: SessionSlot,
        excluded_visit_id: Optional[int] = None,
        excluded_application_id: Optional[int] = None,
    ) -> None:
        """A prisoner can hold or book a session slot only once."""
        visits = self.db.query(Visit.id).filter(
            Visit.prisoner_id == prisoner_id,
            Visit.session_slot_id == slot.id,
            Visit.visit_status == VisitStatus.BOOKED,
        )
        applications = self.db.query(Application.id).filter(
            Application.prisoner_id == prisoner_id,
            Application.session_slot_id == slot.id,
            Application.completed == False,  # noqa: E712
            Application.reserved_slot == True,  # noqa: E712
            Application.modified_at >= self.slot_capacity.get_expired_application_cutoff(),
        )
        if excluded_visit_id is not None:
            visits = visits.filter(Visit.id != excluded_visit_id)
            applications = applications.filter(
                or_(Application.visit_id.is_(None), Application.visit_id != excluded_visit_id)
            )
        if excluded_application_id is not None:
            applications = applications.filter(Application.id != excluded_application_id)

        if visits.first() is not None or applications.first() is not None:
            raise ValidationError([
                f"There is already a visit booked for prisoner - {prisoner_id} on session slot - {slot.reference}."
            ])

    def _validate_not_started(self, visit: Visit, action: str) -> None:
        if visit.session_slot.slot_start < datetime.now():
            raise ExpiredVisitAmendError(AMEND_EXPIRED_ERROR_MESSAGE.format(visit.reference, action))

    def _validate_booking_change(self, visit: Visit, prisoner_id: str, template: SessionTemplate) -> List[str]:
        errors = []
        if visit.prisoner_id != prisoner_id:
            errors.append(
                f"Given prisoner {prisoner_id} is different from the original booking "
                f"({visit.reference}) prisoner {visit.prisoner_id}"
            )
        if template.prison_code != visit.prison_code:
            errors.append(
                f"Given session {template.reference} has a different prison from the original booking "
                f"({visit.reference}) prison {template.prison_code} != {visit.prison_code}"
            )
        return errors

    # ------------------------------------------------------------------
    # Field helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_contact(entity, contact: Optional[ContactDetails]) -> None:
        if contact is not None:
            entity.contact_name = contact.name
            entity.contact_telephone = contact.telephone
            entity.contact_email = contact.email

    @staticmethod
    def _apply_support(entity, support: Optional[SupportDetails]) -> None:
        if support is not None:
            description = support.description.strip()
            entity.support_description = description or None

    @staticmethod
    def _application_visitors(visitors: List[Visitor]) -> List[ApplicationVisitor]:
        unique = {}
        for visitor in visitors:
            unique.setdefault(visitor.nomis_person_id, visitor)
        return [
            ApplicationVisitor(nomis_person_id=v.nomis_person_id, contact=v.visit_contact)
            for v in unique.values()
        ]

    # ------------------------------------------------------------------
    # reserve
    # ------------------------------------------------------------------

    def reserve(self, request: ApplicationCreate, booking_reference: Optional[str] = None) -> Application:
        """
        Hold a capacity unit on the session slot for (template, date).

        With ``booking_reference`` the application re-opens an existing booked
        visit; capacity is reserved only if the slot or restriction differs
        from the visit's own.
        """
        template = self.get_session_template(request.session_template_reference)
        restriction = request.application_restriction

        errors = self._validate_visitors_and_support(request.visitors, request.visitor_support)
        errors += self._validate_session_date(template, request.session_date)

        existing_visit = None
        if booking_reference:
            existing_visit = self.get_booked_visit(booking_reference)
            errors += self._validate_booking_change(existing_visit, request.prisoner_id, template)
        if errors:
            raise ValidationError(errors)
        if existing_visit:
            self._validate_not_started(existing_visit, "changed")

        try:
            slot = get_or_create_session_slot(self.db, template, request.session_date)
            self._validate_not_double_booked(
                request.prisoner_id, slot, excluded_visit_id=existing_visit.id if existing_visit else None
            )

            reserved_slot = True
            if existing_visit:
                reserved_slot = _is_reservation_required(
                    existing_visit.session_slot_id, existing_visit.restriction, slot.id, restriction
                )

            if reserved_slot and not request.allow_over_booking:
                self.slot_capacity.check_capacity_for_reservation(template, slot, restriction)

            application = Application(
                prisoner_id=request.prisoner_id,
                prison_code=template.prison_code,
                session_slot_id=slot.id,
                restriction=restriction,
                reserved_slot=reserved_slot,
                completed=False,
                visit_id=existing_visit.id if existing_visit else None,
                created_by=request.actioned_by,
            )
            application.session_slot = slot
            self._apply_contact(application, request.visit_contact)
            self._apply_support(application, request.visitor_support)
            application.visitors = self._application_visitors(request.visitors)

            self.db.add(application)
            assign_reference(self.db, application)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Application %s reserved for prisoner %s on slot %s (%s)",
            application.reference, application.prisoner_id, slot.reference, restriction.value,
        )
        if existing_visit:
            self.notifier.notify(
                NotificationEventType.APPLICATION_CHANGED,
                application.reference,
                visit_reference=existing_visit.reference,
            )
        else:
            self.notifier.notify(NotificationEventType.APPLICATION_RESERVED, application.reference)
        return application

    # ------------------------------------------------------------------
    # change
    # ------------------------------------------------------------------

    def change(self, application_reference: str, request: ApplicationChange) -> Application:
        """
        Apply the given changes to an incomplete application.

        Capacity is re-checked only when the resolved slot or the restriction
        changes; contact, visitor and support edits never re-check it.
        """
        application = self.get_application(application_reference)
        if application.completed:
            raise ValidationError([f"Application {application_reference} has already been completed"])

        current_slot: SessionSlot = application.session_slot
        current_template = current_slot.session_template
        template = (
            self.get_session_template(request.session_template_reference)
            if request.session_template_reference
            else current_template
        )
        session_date = request.session_date or current_slot.slot_date
        restriction = request.application_restriction or application.restriction
        slot_changed = template.id != current_template.id or session_date != current_slot.slot_date

        errors = self._validate_visitors_and_support(request.visitors, request.visitor_support)
        if template.prison_code != application.prison_code:
            errors.append(
                f"Given session {template.reference} has a different prison from the application "
                f"({application.reference}) prison {template.prison_code} != {application.prison_code}"
            )
        if slot_changed:
            errors += self._validate_session_date(template, session_date)
        if errors:
            raise ValidationError(errors)

        try:
            slot = get_or_create_session_slot(self.db, template, session_date) if slot_changed else current_slot
            if slot_changed:
                self._validate_not_double_booked(
                    application.prisoner_id, slot,
                    excluded_visit_id=application.visit_id, excluded_application_id=application.id,
                )

            if _is_reservation_required(application.session_slot_id, application.restriction, slot.id, restriction):
                reserved_slot = True
                if application.visit_id is not None:
                    visit = self.db.get(Visit, application.visit_id)
                    reserved_slot = _is_reservation_required(
                        visit.session_slot_id, visit.restriction, slot.id, restriction
                    )
                if reserved_slot and not request.allow_over_booking:
                    self.slot_capacity.check_capacity_for_reservation(
                        template, slot, restriction, excluded_application_id=application.id
                    )
                application.session_slot_id = slot.id
                application.session_slot = slot
                application.restriction = restriction
                application.reserved_slot = reserved_slot

            self._apply_contact(application, request.visit_contact)
            self._apply_support(application, request.visitor_support)
            if request.visitors is not None:
                application.visitors = self._application_visitors(request.visitors)
            application.modified_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Application %s changed, slot %s (%s)", application.reference, slot.reference, restriction.value)
        self.notifier.notify(NotificationEventType.APPLICATION_CHANGED, application.reference)
        return application

    # ------------------------------------------------------------------
    # complete
    # ------------------------------------------------------------------

    def complete(self, application_reference: str) -> Visit:
        """Book the visit held by the application. Capacity was taken at reserve time."""
        application = self.get_application(application_reference)
        if application.completed:
            logger.info("Application %s has already been booked", application_reference)
            return self.db.get(Visit, application.visit_id)

        template = application.session_slot.session_template
        try:
            self._validate_not_double_booked(
                application.prisoner_id, application.session_slot,
                excluded_visit_id=application.visit_id, excluded_application_id=application.id,
            )
            if application.visit_id is None:
                visit = Visit(
                    prisoner_id=application.prisoner_id,
                    prison_code=application.prison_code,
                    visit_status=VisitStatus.BOOKED,
                    visit_room=template.visit_room,
                )
                event_type = NotificationEventType.VISIT_BOOKED
            else:
                visit = self.db.get(Visit, application.visit_id)
                if visit.visit_status != VisitStatus.BOOKED:
                    raise ValidationError([f"Visit {visit.reference} is no longer booked"])
                visit.visit_room = template.visit_room
                event_type = NotificationEventType.VISIT_UPDATED

            visit.session_slot_id = application.session_slot_id
            visit.session_slot = application.session_slot
            visit.restriction = application.restriction
            visit.contact_name = application.contact_name
            visit.contact_telephone = application.contact_telephone
            visit.contact_email = application.contact_email
            visit.support_description = application.support_description
            visit.visitors = [
                VisitVisitor(nomis_person_id=v.nomis_person_id, contact=v.contact)
                for v in application.visitors
            ]

            if visit.id is None:
                self.db.add(visit)
                assign_reference(self.db, visit)
                application.visit_id = visit.id

            application.completed = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Visit %s booked from application %s", visit.reference, application.reference)
        self.notifier.notify(event_type, visit.reference, application_reference=application.reference)
        return visit

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------

    def cancel(self, reference: str, cancel_reason: Optional[str] = None) -> Optional[Visit]:
        """
        Cancel a booked visit, or delete an incomplete application.

        The capacity unit is released in the same commit. Returns the
        cancelled visit, or None when an application was deleted.
        """
        visit = self.db.query(Visit).filter(Visit.reference == reference).first()
        if visit:
            return self._cancel_visit(visit, cancel_reason)

        application = self.db.query(Application).filter(Application.reference == reference).first()
        if not application:
            raise NotFoundError(f"Visit or application {reference} not found")
        if application.completed:
            raise ValidationError([f"Application {reference} is completed, cancel its visit instead"])

        try:
            self.db.delete(application)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Application %s cancelled", reference)
        self.notifier.notify(NotificationEventType.APPLICATION_DELETED, reference)
        return None

    def _cancel_visit(self, visit: Visit, cancel_reason: Optional[str]) -> Visit:
        if visit.visit_status == VisitStatus.CANCELLED:
            logger.info("Visit %s has already been cancelled", visit.reference)
            return visit
        self._validate_not_started(visit, "cancelled")

        try:
            visit.visit_status = VisitStatus.CANCELLED
            visit.cancelled_at = datetime.now(timezone.utc)
            visit.cancel_reason = cancel_reason
            # in-flight change applications for this visit go with it
            for open_application in (
                self.db.query(Application)
                .filter(Application.visit_id == visit.id, Application.completed == False)  # noqa: E712
                .all()
            ):
                self.db.delete(open_application)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Visit %s cancelled", visit.reference)
        self.notifier.notify(NotificationEventType.VISIT_CANCELLED, visit.reference)
        return visit

    # ------------------------------------------------------------------
    # expiry
    # ------------------------------------------------------------------

    def expire_stale_holds(self) -> int:
        """
        Delete every incomplete application not modified within the TTL.

        Each application is deleted in its own transaction; one failure is
        logged and the sweep moves on. Returns the number deleted.
        """
        cutoff = self.slot_capacity.get_expired_application_cutoff()
        stale = (
            self.db.query(Application.id, Application.reference)
            .filter(Application.completed == False, Application.modified_at < cutoff)  # noqa: E712
            .all()
        )

        deleted = 0
        for application_id, reference in stale:
            try:
                application = (
                    self.db.query(Application)
                    .filter(
                        Application.id == application_id,
                        Application.completed == False,  # noqa: E712
                        Application.modified_at < cutoff,
                    )
                    .with_for_update(skip_locked=True)
                    .first()
                )
                if application is None:
                    # gone, completed or refreshed since the scan
                    self.db.rollback()
                    continue
                self.db.delete(application)
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception("Failed to delete expired application %s", reference)
                continue

            deleted += 1
            logger.debug("Expired application %s has been deleted", reference)
            self.notifier.notify(NotificationEventType.APPLICATION_DELETED, reference, reason="expired")

        if deleted:
            logger.info("Deleted %d expired application(s)", deleted)
        return deleted
