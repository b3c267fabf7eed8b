from datetime import date, timedelta
from typing import Iterator

from visit_scheduler.models.enums import DayOfWeek


def get_valid_from_monday(valid_from_date: date) -> date:
    """Monday of the week containing valid_from_date; multi-week cadences count whole weeks from here."""
    return valid_from_date - timedelta(days=valid_from_date.weekday())


def is_skip_occurrence(candidate_date: date, valid_from_date: date, weekly_frequency: int) -> bool:
    """
    True when candidate_date falls in a week on which a session repeating every
    ``weekly_frequency`` weeks from ``valid_from_date`` does not run.
    """
    days = (candidate_date - get_valid_from_monday(valid_from_date)).days
    # whole weeks, truncated toward zero for dates before the anchor
    weeks = abs(days) // 7
    return weeks % weekly_frequency != 0


def is_active_for_date(candidate_date: date, template) -> bool:
    if template.weekly_frequency > 1:
        return not is_skip_occurrence(candidate_date, template.valid_from_date, template.weekly_frequency)
    return True


def next_or_same(day: date, day_of_week: DayOfWeek) -> date:
    return day + timedelta(days=(day_of_week.weekday - day.weekday()) % 7)


def occurrences_between(first_day: date, last_day: date, template) -> Iterator[date]:
    """
    Lazily yield the dates between first_day and last_day (inclusive) on which
    the template runs.

    Dates are anchored on the template's day of week and stepped by its weekly
    frequency. For multi-week cadences the first date is moved forward to the
    first week that is not a skip week relative to ``valid_from_date``.
    An empty range yields nothing.
    """
    first = next_or_same(first_day, template.day_of_week)
    if template.weekly_frequency > 1:
        while is_skip_occurrence(first, template.valid_from_date, template.weekly_frequency):
            first += timedelta(weeks=1)

    if last_day < first:
        return

    step = timedelta(weeks=template.weekly_frequency)
    current = first
    while current <= last_day:
        yield current
        current += step


def is_session_date(candidate_date: date, template) -> bool:
    """Whether candidate_date is a real occurrence of the template."""
    if DayOfWeek.of(candidate_date) != template.day_of_week:
        return False
    if candidate_date < template.valid_from_date:
        return False
    if template.valid_to_date is not None and candidate_date > template.valid_to_date:
        return False
    return is_active_for_date(candidate_date, template)
