from datetime import date, time, timedelta

from visit_scheduler.models.enums import DayOfWeek
from visit_scheduler.schemas.session_template import SessionTemplate
from visit_scheduler.utils.session_dates import (
    is_session_date,
    is_skip_occurrence,
    next_or_same,
    occurrences_between,
)

# 2024-01-01 is a Monday
VALID_FROM = date(2024, 1, 1)


def _template(**overrides) -> SessionTemplate:
    fields = dict(
        name="Monday",
        prison_code="HEI",
        day_of_week=DayOfWeek.MONDAY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        valid_from_date=VALID_FROM,
        visit_room="Main",
    )
    fields.update(overrides)
    return SessionTemplate(**fields)


def test_weekly_occurrences_over_ten_weeks():
    template = _template()
    first_day = date(2024, 1, 1)

    dates = list(occurrences_between(first_day, first_day + timedelta(days=70), template))

    assert len(dates) == 11
    assert all(d.weekday() == 0 for d in dates)
    assert all((b - a).days == 7 for a, b in zip(dates, dates[1:]))


def test_occurrences_anchor_to_day_of_week():
    template = _template(day_of_week=DayOfWeek.THURSDAY)

    dates = list(occurrences_between(date(2024, 1, 1), date(2024, 1, 14), template))

    assert dates == [date(2024, 1, 4), date(2024, 1, 11)]


def test_skip_occurrence_every_other_week():
    assert is_skip_occurrence(VALID_FROM + timedelta(weeks=1), VALID_FROM, 2) is True
    assert is_skip_occurrence(VALID_FROM + timedelta(weeks=2), VALID_FROM, 2) is False
    assert is_skip_occurrence(VALID_FROM, VALID_FROM, 2) is False


def test_skip_occurrence_counts_from_monday_of_valid_from_week():
    # valid from a Wednesday, the Monday of the following week is one whole week on
    valid_from = date(2024, 1, 3)
    assert is_skip_occurrence(date(2024, 1, 8), valid_from, 2) is True
    assert is_skip_occurrence(date(2024, 1, 15), valid_from, 2) is False


def test_fortnightly_occurrences_shift_past_skip_week():
    template = _template(weekly_frequency=2)

    # the week of 2024-01-08 is a skip week
    dates = list(occurrences_between(date(2024, 1, 8), date(2024, 2, 5), template))

    assert dates == [date(2024, 1, 15), date(2024, 1, 29)]


def test_three_weekly_cadence_moves_to_next_running_week():
    template = _template(weekly_frequency=3)

    dates = list(occurrences_between(date(2024, 1, 8), date(2024, 2, 12), template))

    assert dates == [date(2024, 1, 22), date(2024, 2, 12)]


def test_empty_range_yields_nothing():
    template = _template()

    assert list(occurrences_between(date(2024, 1, 10), date(2024, 1, 12), template)) == []
    assert list(occurrences_between(date(2024, 2, 1), date(2024, 1, 1), template)) == []


def test_next_or_same():
    assert next_or_same(date(2024, 1, 1), DayOfWeek.MONDAY) == date(2024, 1, 1)
    assert next_or_same(date(2024, 1, 2), DayOfWeek.MONDAY) == date(2024, 1, 8)
    assert next_or_same(date(2024, 1, 2), DayOfWeek.SUNDAY) == date(2024, 1, 7)


def test_is_session_date():
    template = _template(weekly_frequency=2, valid_to_date=date(2024, 3, 31))

    assert is_session_date(date(2024, 1, 15), template) is True
    assert is_session_date(date(2024, 1, 8), template) is False  # skip week
    assert is_session_date(date(2024, 1, 16), template) is False  # Tuesday
    assert is_session_date(date(2023, 12, 18), template) is False  # before valid from
    assert is_session_date(date(2024, 4, 8), template) is False  # after valid to
