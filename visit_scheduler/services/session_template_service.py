import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from visit_scheduler.core.exceptions import NotFoundError, SchedulingConflictError, ValidationError
from visit_scheduler.models.enums import VisitRestriction, VisitStatus
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.session_template import (
    SessionCategoryGroup, SessionIncentiveGroup, SessionLocationGroup, SessionTemplate,
)
from visit_scheduler.models.visit import Visit
from visit_scheduler.schemas.session_template import SessionTemplateCreate, SessionTemplateUpdate
from visit_scheduler.services.session_group_service import SessionGroupService
from visit_scheduler.services.slot_capacity import SlotCapacityService
from visit_scheduler.utils.reference import assign_reference
from visit_scheduler.utils.session_overlap import find_overlapping_references

logger = logging.getLogger(__name__)

_GROUP_FIELDS = (
    ("location_group_references", "location_groups", SessionLocationGroup),
    ("category_group_references", "category_groups", SessionCategoryGroup),
    ("incentive_group_references", "incentive_groups", SessionIncentiveGroup),
)


class SessionTemplateService:
    """Administration of session templates: create, update, deactivate."""

    def __init__(self, db: Session, expired_application_ttl_minutes: int = 24 * 60):
        self.db = db
        self.groups = SessionGroupService(db)
        self.slot_capacity = SlotCapacityService(db, expired_application_ttl_minutes)

    def get(self, reference: str) -> SessionTemplate:
        template = self.db.query(SessionTemplate).filter(SessionTemplate.reference == reference).first()
        if not template:
            raise NotFoundError(f"Session template {reference} not found")
        return template

    def list_for_prison(self, prison_code: str, active_only: bool = True) -> List[SessionTemplate]:
        query = self.db.query(SessionTemplate).filter(SessionTemplate.prison_code == prison_code)
        if active_only:
            query = query.filter(SessionTemplate.active == True)  # noqa: E712
        return query.order_by(SessionTemplate.day_of_week, SessionTemplate.start_time).all()

    def _check_overlaps(self, template: SessionTemplate) -> None:
        conflicts = find_overlapping_references(template, self.list_for_prison(template.prison_code))
        if conflicts:
            raise SchedulingConflictError(
                f"Session template overlaps existing session templates: {', '.join(conflicts)}",
                conflicts=conflicts,
            )

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create(self, data: SessionTemplateCreate, override: bool = False) -> SessionTemplate:
        fields = data.model_dump(exclude={name for name, _, _ in _GROUP_FIELDS})
        template = SessionTemplate(**fields, active=True)
        for request_field, attribute, model in _GROUP_FIELDS:
            setattr(template, attribute, self.groups.resolve(model, data.prison_code, getattr(data, request_field)))

        try:
            if not override:
                self._check_overlaps(template)
            self.db.add(template)
            assign_reference(self.db, template)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(template)
        logger.info("Session template %s created for prison %s", template.reference, template.prison_code)
        return template

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    def _future_visit_dates(self, template: SessionTemplate, today: date) -> List[date]:
        rows = (
            self.db.query(SessionSlot.slot_date)
            .join(Visit, Visit.session_slot_id == SessionSlot.id)
            .filter(
                SessionSlot.session_template_id == template.id,
                SessionSlot.slot_date >= today,
                Visit.visit_status == VisitStatus.BOOKED,
            )
            .distinct()
            .all()
        )
        return sorted(row[0] for row in rows)

    def _max_taken_count(self, template: SessionTemplate, restriction: VisitRestriction, today: date) -> int:
        slot_ids = [
            row[0]
            for row in self.db.query(SessionSlot.id).filter(
                SessionSlot.session_template_id == template.id,
                SessionSlot.slot_date >= today,
            )
        ]
        return max((self.slot_capacity.get_taken_count(slot_id, restriction) for slot_id in slot_ids), default=0)

    def _validate_update(self, template: SessionTemplate, data: SessionTemplateUpdate, today: date) -> List[str]:
        errors = []
        start_time = data.start_time or template.start_time
        end_time = data.end_time or template.end_time
        valid_from = data.valid_from_date or template.valid_from_date
        valid_to = data.valid_to_date if "valid_to_date" in data.model_fields_set else template.valid_to_date

        if end_time <= start_time:
            errors.append("Session end time must be after its start time")
        if valid_to is not None and valid_to < valid_from:
            errors.append("Session valid to date must not be before its valid from date")

        visit_dates = self._future_visit_dates(template, today)
        if not visit_dates:
            return errors

        reference = template.reference
        if start_time != template.start_time or end_time != template.end_time:
            errors.append(f"Cannot update session times for {reference} as there are booked or reserved visits")
        if valid_from != template.valid_from_date:
            errors.append(f"Cannot update session valid from date for {reference} as there are booked or reserved visits")
        if valid_to is not None and valid_to < visit_dates[-1]:
            errors.append(
                f"Cannot update session valid to date to {valid_to} for {reference} "
                f"as there are booked or reserved visits after this date"
            )
        frequency = data.weekly_frequency
        if frequency is not None and frequency != template.weekly_frequency:
            if frequency > template.weekly_frequency or template.weekly_frequency % frequency != 0:
                errors.append(
                    f"Cannot update session template weekly frequency from {template.weekly_frequency} "
                    f"to {frequency} for {reference} as existing visits may be affected"
                )
        if data.open_capacity is not None:
            booked = self._max_taken_count(template, VisitRestriction.OPEN, today)
            if data.open_capacity < booked:
                errors.append(
                    f"Cannot update session template open capacity from {template.open_capacity} "
                    f"to {data.open_capacity} for {reference} as it is less than the booked count {booked}"
                )
        if data.closed_capacity is not None:
            booked = self._max_taken_count(template, VisitRestriction.CLOSED, today)
            if data.closed_capacity < booked:
                errors.append(
                    f"Cannot update session template closed capacity from {template.closed_capacity} "
                    f"to {data.closed_capacity} for {reference} as it is less than the booked count {booked}"
                )
        return errors

    def update(
        self,
        reference: str,
        data: SessionTemplateUpdate,
        override: bool = False,
        today: Optional[date] = None,
    ) -> SessionTemplate:
        """
        Apply an admin update. Changes that would invalidate booked visits
        are rejected with a ValidationError; overlaps with other active
        templates raise SchedulingConflictError unless ``override`` is set.
        """
        template = self.get(reference)
        errors = self._validate_update(template, data, today or date.today())
        if errors:
            raise ValidationError(errors)

        try:
            changes = data.model_dump(
                exclude_unset=True, exclude={name for name, _, _ in _GROUP_FIELDS}
            )
            for field, value in changes.items():
                if value is None and field != "valid_to_date":
                    continue
                setattr(template, field, value)
            for request_field, attribute, model in _GROUP_FIELDS:
                references = getattr(data, request_field)
                if references is not None:
                    setattr(template, attribute, self.groups.resolve(model, template.prison_code, references))

            if not override and template.active:
                self._check_overlaps(template)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(template)
        logger.info("Session template %s updated", template.reference)
        return template

    def deactivate(self, reference: str) -> SessionTemplate:
        template = self.get(reference)
        if not template.active:
            return template
        template.active = False
        self.db.commit()
        self.db.refresh(template)
        logger.info("Session template %s deactivated", template.reference)
        return template

