from datetime import date, time, timedelta
from typing import Optional

from visit_scheduler.models.enums import DayOfWeek
from visit_scheduler.models.session_template import (
    PermittedSessionLocation, SessionCategory, SessionCategoryGroup,
    SessionIncentiveGroup, SessionIncentiveLevel, SessionLocationGroup, SessionTemplate,
)
from visit_scheduler.utils.reference import assign_reference

PRISON_CODE = "HEI"


def next_weekday(day_of_week: DayOfWeek, weeks_ahead: int = 1, today: Optional[date] = None) -> date:
    """A date on day_of_week at least weeks_ahead weeks after today."""
    today = today or date.today()
    days = (day_of_week.weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days, weeks=weeks_ahead)


def create_template(db, **overrides) -> SessionTemplate:
    fields = dict(
        name="Monday morning",
        prison_code=PRISON_CODE,
        day_of_week=DayOfWeek.MONDAY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        valid_from_date=date(2024, 1, 1),
        valid_to_date=None,
        weekly_frequency=1,
        open_capacity=2,
        closed_capacity=1,
        visit_room="Visits Main Hall",
        active=True,
    )
    fields.update(overrides)
    location_groups = fields.pop("location_groups", [])
    category_groups = fields.pop("category_groups", [])
    incentive_groups = fields.pop("incentive_groups", [])

    template = SessionTemplate(**fields)
    template.location_groups = location_groups
    template.category_groups = category_groups
    template.incentive_groups = incentive_groups
    db.add(template)
    assign_reference(db, template)
    db.commit()
    return template


def create_location_group(db, *levels, name="Wing A") -> SessionLocationGroup:
    group = SessionLocationGroup(prison_code=PRISON_CODE, name=name)
    group.locations = [
        PermittedSessionLocation(
            level_one_code=entry[0],
            level_two_code=entry[1] if len(entry) > 1 else None,
            level_three_code=entry[2] if len(entry) > 2 else None,
            level_four_code=entry[3] if len(entry) > 3 else None,
        )
        for entry in levels
    ]
    db.add(group)
    assign_reference(db, group)
    db.commit()
    return group


def create_category_group(db, *codes, name="Category C") -> SessionCategoryGroup:
    group = SessionCategoryGroup(prison_code=PRISON_CODE, name=name)
    group.categories = [SessionCategory(code=code) for code in codes]
    db.add(group)
    assign_reference(db, group)
    db.commit()
    return group


def create_incentive_group(db, *codes, name="Enhanced") -> SessionIncentiveGroup:
    group = SessionIncentiveGroup(prison_code=PRISON_CODE, name=name)
    group.incentive_levels = [SessionIncentiveLevel(code=code) for code in codes]
    db.add(group)
    assign_reference(db, group)
    db.commit()
    return group


