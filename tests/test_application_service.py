from datetime import datetime, timedelta, timezone

import pytest

from visit_scheduler.core.exceptions import (
    CapacityExceededError, ExpiredVisitAmendError, NotFoundError, ValidationError,
)
from visit_scheduler.models.application import Application
from visit_scheduler.models.enums import DayOfWeek, NotificationEventType, VisitRestriction, VisitStatus
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.visit import Visit
from visit_scheduler.schemas.application import (
    ApplicationChange, ApplicationCreate, ContactDetails, SupportDetails, Visitor,
)
from visit_scheduler.services.application_service import ApplicationService
from visit_scheduler.services.dto_builder import build_application, build_visit
from visit_scheduler.services.slot_capacity import SlotCapacityService
from tests.utils import create_template, next_weekday

OPEN = VisitRestriction.OPEN
CLOSED = VisitRestriction.CLOSED


def _request(template, session_date, restriction=OPEN, prisoner_id="A1234BC", **overrides) -> ApplicationCreate:
    fields = dict(
        prisoner_id=prisoner_id,
        session_template_reference=template.reference,
        session_date=session_date,
        application_restriction=restriction,
        visitors=[Visitor(nomis_person_id=4729510, visit_contact=True)],
        visit_contact=ContactDetails(name="Jane Smith", telephone="01234 567890"),
        actioned_by="user-1",
    )
    fields.update(overrides)
    return ApplicationCreate(**fields)


def _taken(db, application, restriction=OPEN):
    return SlotCapacityService(db).get_taken_count(application.session_slot_id, restriction)


# ---------------------------------------------------------------------------
# reserve
# ---------------------------------------------------------------------------


def test_reserve_creates_slot_and_application(db_session, application_service, notifier):
    template = create_template(db_session)
    session_date = next_weekday(DayOfWeek.MONDAY)

    application = application_service.reserve(_request(template, session_date))

    assert application.reference
    assert application.reserved_slot is True
    assert application.completed is False
    slot = db_session.get(SessionSlot, application.session_slot_id)
    assert slot.slot_date == session_date
    assert slot.slot_start == datetime.combine(session_date, template.start_time)
    assert _taken(db_session, application) == 1
    assert notifier.types() == [NotificationEventType.APPLICATION_RESERVED]


def test_reserve_reuses_slot_for_same_template_and_date(db_session, application_service):
    template = create_template(db_session)
    session_date = next_weekday(DayOfWeek.MONDAY)

    first = application_service.reserve(_request(template, session_date))
    second = application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))

    assert first.session_slot_id == second.session_slot_id
    assert db_session.query(SessionSlot).count() == 1


def test_reserve_beyond_capacity(db_session, application_service):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application_service.reserve(_request(template, session_date))

    with pytest.raises(CapacityExceededError):
        application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))

    over_booked = application_service.reserve(
        _request(template, session_date, prisoner_id="B2345CD", allow_over_booking=True)
    )
    assert _taken(db_session, over_booked) == 2


def test_open_and_closed_capacity_are_counted_separately(db_session, application_service):
    template = create_template(db_session, open_capacity=1, closed_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application_service.reserve(_request(template, session_date, OPEN))

    closed = application_service.reserve(_request(template, session_date, CLOSED, prisoner_id="B2345CD"))

    assert _taken(db_session, closed, CLOSED) == 1
    with pytest.raises(CapacityExceededError):
        application_service.reserve(_request(template, session_date, CLOSED, prisoner_id="C3456DE"))


def test_zero_capacity_restriction_cannot_be_reserved(db_session, application_service):
    template = create_template(db_session, closed_capacity=0)

    with pytest.raises(CapacityExceededError):
        application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY), CLOSED))


@pytest.mark.parametrize("overrides, message", [
    ({"visitors": []}, "at least one visitor"),
    ({"visitors": [Visitor(nomis_person_id=i) for i in range(7)]}, "too many visitors"),
    ({"visitor_support": SupportDetails(description="ab")}, "Support value description is too small"),
])
def test_reserve_validation(db_session, application_service, overrides, message):
    template = create_template(db_session)

    with pytest.raises(ValidationError) as exc_info:
        application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY), **overrides))

    assert any(message in m for m in exc_info.value.messages)
    assert db_session.query(Application).count() == 0


def test_reserve_on_a_day_the_session_does_not_run(db_session, application_service):
    template = create_template(db_session)

    with pytest.raises(ValidationError):
        application_service.reserve(_request(template, next_weekday(DayOfWeek.TUESDAY)))


def test_reserve_unknown_template(db_session, application_service):
    template = create_template(db_session)
    request = _request(template, next_weekday(DayOfWeek.MONDAY), session_template_reference="zz-zz-zz-zz")

    with pytest.raises(NotFoundError):
        application_service.reserve(request)


def test_reserve_twice_on_the_same_slot_is_rejected(db_session, application_service):
    template = create_template(db_session, open_capacity=5)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application_service.reserve(_request(template, session_date))

    with pytest.raises(ValidationError) as exc_info:
        application_service.reserve(_request(template, session_date))

    assert "already a visit booked for prisoner - A1234BC" in exc_info.value.message
    assert db_session.query(Application).count() == 1


def test_reserve_on_a_slot_already_booked_is_rejected(db_session, application_service):
    template = create_template(db_session, open_capacity=5)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application_service.complete(application_service.reserve(_request(template, session_date)).reference)

    with pytest.raises(ValidationError):
        application_service.reserve(_request(template, session_date))

    booked = db_session.query(Visit).filter(Visit.prisoner_id == "A1234BC").count()
    assert booked == 1


def test_expired_hold_does_not_block_a_new_reservation(db_session, application_service):
    template = create_template(db_session, open_capacity=5)
    session_date = next_weekday(DayOfWeek.MONDAY)
    stale = application_service.reserve(_request(template, session_date))
    _age(db_session, stale, 25 * 60)

    fresh = application_service.reserve(_request(template, session_date))

    assert fresh.session_slot_id == stale.session_slot_id


def test_reserve_drops_duplicate_visitors(db_session, application_service):
    template = create_template(db_session)
    visitors = [Visitor(nomis_person_id=1, visit_contact=True), Visitor(nomis_person_id=1), Visitor(nomis_person_id=2)]

    application = application_service.reserve(
        _request(template, next_weekday(DayOfWeek.MONDAY), visitors=visitors)
    )

    assert sorted(v.nomis_person_id for v in application.visitors) == [1, 2]


# ---------------------------------------------------------------------------
# change
# ---------------------------------------------------------------------------


def test_change_to_another_template_moves_the_hold(db_session, application_service, notifier):
    monday = create_template(db_session, open_capacity=1)
    afternoon = create_template(
        db_session, name="Monday afternoon", start_time=monday.end_time.replace(hour=14),
        end_time=monday.end_time.replace(hour=15), open_capacity=1,
    )
    session_date = next_weekday(DayOfWeek.MONDAY)
    application = application_service.reserve(_request(monday, session_date))
    old_slot_id = application.session_slot_id

    changed = application_service.change(
        application.reference, ApplicationChange(session_template_reference=afternoon.reference)
    )

    assert changed.session_slot_id != old_slot_id
    capacity = SlotCapacityService(db_session)
    assert capacity.get_taken_count(old_slot_id, OPEN) == 0
    assert capacity.get_taken_count(changed.session_slot_id, OPEN) == 1
    assert notifier.types()[-1] == NotificationEventType.APPLICATION_CHANGED


def test_change_into_full_slot_fails(db_session, application_service):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application_service.reserve(_request(template, session_date + timedelta(weeks=1)))
    application = application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))

    with pytest.raises(CapacityExceededError):
        application_service.change(
            application.reference, ApplicationChange(session_date=session_date + timedelta(weeks=1))
        )

    db_session.refresh(application)
    assert application.session_slot.slot_date == session_date


def test_change_restriction_rechecks_capacity_without_counting_itself(db_session, application_service):
    template = create_template(db_session, open_capacity=1, closed_capacity=1)
    application = application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))

    changed = application_service.change(application.reference, ApplicationChange(application_restriction=CLOSED))

    assert changed.restriction == CLOSED
    assert _taken(db_session, changed, OPEN) == 0
    assert _taken(db_session, changed, CLOSED) == 1


def test_change_of_details_skips_capacity_check(db_session, application_service):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application_service.reserve(_request(template, session_date))
    over_booked = application_service.reserve(
        _request(template, session_date, prisoner_id="B2345CD", allow_over_booking=True)
    )

    changed = application_service.change(over_booked.reference, ApplicationChange(
        visit_contact=ContactDetails(name="John Smith"),
        visitors=[Visitor(nomis_person_id=111), Visitor(nomis_person_id=222)],
        visitor_support=SupportDetails(description="wheelchair access"),
    ))

    assert changed.contact_name == "John Smith"
    assert len(changed.visitors) == 2
    assert changed.support_description == "wheelchair access"


def test_change_onto_a_slot_the_prisoner_already_holds(db_session, application_service):
    template = create_template(db_session, open_capacity=5)
    session_date = next_weekday(DayOfWeek.MONDAY)
    next_week = session_date + timedelta(weeks=1)
    application_service.reserve(_request(template, next_week))
    application = application_service.reserve(_request(template, session_date))

    with pytest.raises(ValidationError):
        application_service.change(application.reference, ApplicationChange(session_date=next_week))

    db_session.refresh(application)
    assert application.session_slot.slot_date == session_date


def test_change_to_a_session_at_another_prison_is_rejected(db_session, application_service):
    template = create_template(db_session)
    elsewhere = create_template(db_session, name="Brinsford Monday", prison_code="BLI")
    application = application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))

    with pytest.raises(ValidationError) as exc_info:
        application_service.change(
            application.reference, ApplicationChange(session_template_reference=elsewhere.reference)
        )

    assert "different prison" in exc_info.value.message
    db_session.refresh(application)
    assert application.session_slot.session_template_id == template.id
    assert application.prison_code == "HEI"


def test_change_completed_application_is_rejected(db_session, application_service):
    template = create_template(db_session)
    application = application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))
    application_service.complete(application.reference)

    with pytest.raises(ValidationError):
        application_service.change(application.reference, ApplicationChange(application_restriction=CLOSED))


# ---------------------------------------------------------------------------
# complete
# ---------------------------------------------------------------------------


def test_complete_books_visit(db_session, application_service, notifier):
    template = create_template(db_session, open_capacity=1)
    application = application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))

    visit = application_service.complete(application.reference)

    assert visit.reference
    assert visit.visit_status == VisitStatus.BOOKED
    assert visit.visit_room == template.visit_room
    assert visit.contact_name == "Jane Smith"
    assert [v.nomis_person_id for v in visit.visitors] == [4729510]
    db_session.refresh(application)
    assert application.completed is True
    assert application.visit_id == visit.id
    # the booked visit now holds the unit in place of the application
    assert _taken(db_session, application) == 1
    assert notifier.types()[-1] == NotificationEventType.VISIT_BOOKED

    dto = build_visit(db_session, visit)
    assert dto.application_reference == application.reference
    assert dto.session_template_reference == template.reference


def test_complete_twice_returns_same_visit(db_session, application_service):
    template = create_template(db_session)
    application = application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))

    first = application_service.complete(application.reference)
    second = application_service.complete(application.reference)

    assert first.id == second.id


def test_complete_second_hold_on_a_booked_slot_is_rejected(db_session, application_service):
    template = create_template(db_session, open_capacity=5)
    session_date = next_weekday(DayOfWeek.MONDAY)
    first = application_service.reserve(_request(template, session_date))
    second = application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))
    application_service.complete(first.reference)
    # second hold moved onto the same prisoner behind the service's back
    second.prisoner_id = "A1234BC"
    db_session.commit()

    with pytest.raises(ValidationError):
        application_service.complete(second.reference)

    db_session.refresh(second)
    assert second.completed is False
    assert db_session.query(Visit).count() == 1


def test_complete_unknown_application(application_service):
    with pytest.raises(NotFoundError):
        application_service.complete("zz-zz-zz-zz")


# ---------------------------------------------------------------------------
# cancel
# ---------------------------------------------------------------------------


def test_cancel_application_releases_capacity(db_session, application_service, notifier):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    application = application_service.reserve(_request(template, session_date))

    assert application_service.cancel(application.reference) is None

    assert db_session.query(Application).count() == 0
    assert notifier.types()[-1] == NotificationEventType.APPLICATION_DELETED
    application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))


def test_cancel_visit_releases_capacity(db_session, application_service, notifier):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    visit = application_service.complete(application_service.reserve(_request(template, session_date)).reference)

    cancelled = application_service.cancel(visit.reference, "PRISONER_CANCELLED")

    assert cancelled.visit_status == VisitStatus.CANCELLED
    assert cancelled.cancel_reason == "PRISONER_CANCELLED"
    assert cancelled.cancelled_at is not None
    assert notifier.types()[-1] == NotificationEventType.VISIT_CANCELLED
    application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))


def test_cancel_visit_in_the_past(db_session, application_service):
    template = create_template(db_session)
    visit = application_service.complete(
        application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY))).reference
    )
    slot = db_session.get(SessionSlot, visit.session_slot_id)
    slot.slot_start = datetime.now() - timedelta(hours=1)
    db_session.commit()

    with pytest.raises(ExpiredVisitAmendError):
        application_service.cancel(visit.reference)


def test_cancel_unknown_reference(application_service):
    with pytest.raises(NotFoundError):
        application_service.cancel("zz-zz-zz-zz")


# ---------------------------------------------------------------------------
# change booking
# ---------------------------------------------------------------------------


def test_change_booking_on_same_slot_does_not_need_capacity(db_session, application_service, notifier):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    first = application_service.reserve(_request(template, session_date))
    visit = application_service.complete(first.reference)

    change = application_service.reserve(
        _request(template, session_date, visitors=[Visitor(nomis_person_id=555)]),
        booking_reference=visit.reference,
    )

    assert change.reserved_slot is False
    assert change.visit_id == visit.id
    assert _taken(db_session, change) == 1
    assert notifier.types()[-1] == NotificationEventType.APPLICATION_CHANGED

    updated = application_service.complete(change.reference)

    assert updated.id == visit.id
    assert [v.nomis_person_id for v in updated.visitors] == [555]
    assert notifier.types()[-1] == NotificationEventType.VISIT_UPDATED
    assert build_visit(db_session, updated).application_reference == change.reference
    assert build_application(db_session, change).visit_reference == visit.reference


def test_change_booking_to_another_date_moves_the_visit(db_session, application_service):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    new_date = session_date + timedelta(weeks=1)
    visit = application_service.complete(application_service.reserve(_request(template, session_date)).reference)
    old_slot_id = visit.session_slot_id

    change = application_service.reserve(_request(template, new_date), booking_reference=visit.reference)
    assert change.reserved_slot is True
    moved = application_service.complete(change.reference)

    assert moved.session_slot.slot_date == new_date
    capacity = SlotCapacityService(db_session)
    assert capacity.get_taken_count(old_slot_id, OPEN) == 0
    assert capacity.get_taken_count(moved.session_slot_id, OPEN) == 1


def test_change_booking_for_another_prisoner_is_rejected(db_session, application_service):
    template = create_template(db_session)
    session_date = next_weekday(DayOfWeek.MONDAY)
    visit = application_service.complete(application_service.reserve(_request(template, session_date)).reference)

    with pytest.raises(ValidationError):
        application_service.reserve(
            _request(template, session_date, prisoner_id="Z9999ZZ"), booking_reference=visit.reference
        )


def test_cancelling_visit_drops_its_open_change_application(db_session, application_service):
    template = create_template(db_session)
    session_date = next_weekday(DayOfWeek.MONDAY)
    visit = application_service.complete(application_service.reserve(_request(template, session_date)).reference)
    change = application_service.reserve(
        _request(template, session_date + timedelta(weeks=1)), booking_reference=visit.reference
    )

    application_service.cancel(visit.reference)

    assert db_session.query(Application).filter(Application.reference == change.reference).first() is None


# ---------------------------------------------------------------------------
# expiry
# ---------------------------------------------------------------------------


def _age(db, application, minutes):
    application.modified_at = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    db.commit()


def test_expire_stale_holds(db_session, application_service, notifier):
    template = create_template(db_session, open_capacity=2)
    session_date = next_weekday(DayOfWeek.MONDAY)
    stale = application_service.reserve(_request(template, session_date))
    fresh = application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))
    stale_reference = stale.reference
    _age(db_session, stale, 25 * 60)

    deleted = application_service.expire_stale_holds()

    assert deleted == 1
    remaining = [a.reference for a in db_session.query(Application).all()]
    assert remaining == [fresh.reference]
    assert (NotificationEventType.APPLICATION_DELETED, stale_reference, {"reason": "expired"}) in notifier.events
    assert application_service.expire_stale_holds() == 0


def test_expired_holds_do_not_count_towards_capacity(db_session, application_service):
    template = create_template(db_session, open_capacity=1)
    session_date = next_weekday(DayOfWeek.MONDAY)
    stale = application_service.reserve(_request(template, session_date))
    _age(db_session, stale, 25 * 60)

    application_service.reserve(_request(template, session_date, prisoner_id="B2345CD"))


def test_completed_applications_never_expire(db_session, application_service):
    template = create_template(db_session)
    application = application_service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))
    application_service.complete(application.reference)
    _age(db_session, application, 48 * 60)

    assert application_service.expire_stale_holds() == 0


def test_custom_hold_ttl(db_session, notifier):
    service = ApplicationService(db_session, notifier, expired_application_ttl_minutes=30)
    template = create_template(db_session)
    application = service.reserve(_request(template, next_weekday(DayOfWeek.MONDAY)))
    _age(db_session, application, 31)

    assert service.expire_stale_holds() == 1
