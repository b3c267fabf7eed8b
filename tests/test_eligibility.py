from datetime import date, time

from visit_scheduler.models.enums import DayOfWeek
from visit_scheduler.schemas.prisoner import Prisoner
from visit_scheduler.schemas.session_template import (
    CategoryGroup, IncentiveGroup, LocationGroup, PermittedLocation, SessionTemplate,
)
from visit_scheduler.utils.eligibility import (
    LOCATION_NOT_PERMITTED,
    get_location_score,
    is_available_to_all,
    is_eligible,
)


def _template(**overrides) -> SessionTemplate:
    fields = dict(
        reference="aa-bb-cc-dd",
        name="Monday",
        prison_code="HEI",
        day_of_week=DayOfWeek.MONDAY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        valid_from_date=date(2024, 1, 1),
        visit_room="Main",
    )
    fields.update(overrides)
    return SessionTemplate(**fields)


def _locations(*entries) -> LocationGroup:
    return LocationGroup(
        prison_code="HEI",
        name="locations",
        locations=[PermittedLocation(**dict(zip(
            ("level_one_code", "level_two_code", "level_three_code", "level_four_code"), entry
        ))) for entry in entries],
    )


def _prisoner(**overrides) -> Prisoner:
    fields = dict(
        prisoner_id="A1234BC",
        prison_code="HEI",
        category="C",
        incentive_level="STD",
        level_one_code="A",
        level_two_code="1",
        level_three_code="002",
        level_four_code=None,
    )
    fields.update(overrides)
    return Prisoner(**fields)


def test_unrestricted_template_admits_everyone():
    template = _template()

    assert is_available_to_all(template)
    assert is_eligible(_prisoner(), template)
    assert is_eligible(
        _prisoner(category=None, incentive_level=None, level_one_code=None, level_two_code=None), template
    )


def test_location_entry_wildcards_unset_levels():
    template = _template(location_groups=[_locations(("A",))])

    assert is_eligible(_prisoner(), template)
    assert not is_eligible(_prisoner(level_one_code="B"), template)


def test_location_entry_requires_every_set_level():
    template = _template(location_groups=[_locations(("A", "2"), ("A", "1", "003"))])

    assert not is_eligible(_prisoner(), template)
    assert is_eligible(_prisoner(level_three_code="003"), template)


def test_location_exclude_semantics():
    template = _template(location_groups=[_locations(("A",))], include_location_group_type=False)

    assert not is_eligible(_prisoner(), template)
    assert is_eligible(_prisoner(level_one_code="B"), template)


def test_include_category_group():
    template = _template(category_groups=[CategoryGroup(prison_code="HEI", name="cat", categories=["C"])])

    assert is_eligible(_prisoner(category="C"), template)
    assert not is_eligible(_prisoner(category="D"), template)
    assert not is_eligible(_prisoner(category=None), template)


def test_exclude_category_group_still_rejects_unknown_category():
    template = _template(
        category_groups=[CategoryGroup(prison_code="HEI", name="cat", categories=["A"])],
        include_category_group_type=False,
    )

    assert is_eligible(_prisoner(category="C"), template)
    assert not is_eligible(_prisoner(category="A"), template)
    assert not is_eligible(_prisoner(category=None), template)


def test_incentive_values_are_unioned_across_groups():
    template = _template(incentive_groups=[
        IncentiveGroup(prison_code="HEI", name="enh", incentive_levels=["ENH"]),
        IncentiveGroup(prison_code="HEI", name="std", incentive_levels=["STD"]),
    ])

    assert is_eligible(_prisoner(incentive_level="STD"), template)
    assert is_eligible(_prisoner(incentive_level="ENH"), template)
    assert not is_eligible(_prisoner(incentive_level="BAS"), template)


def test_facets_are_combined():
    template = _template(
        location_groups=[_locations(("A",))],
        category_groups=[CategoryGroup(prison_code="HEI", name="cat", categories=["C"])],
    )

    assert is_eligible(_prisoner(), template)
    assert not is_eligible(_prisoner(category="B"), template)
    assert not is_eligible(_prisoner(level_one_code="B"), template)


def test_location_score():
    prisoner = _prisoner()

    assert get_location_score(prisoner, _template()) == 0
    assert get_location_score(prisoner, _template(location_groups=[_locations(("A",), ("A", "1", "002"))])) == 3
    assert get_location_score(prisoner, _template(location_groups=[_locations(("B",))])) == LOCATION_NOT_PERMITTED
    excluded = _template(location_groups=[_locations(("A",))], include_location_group_type=False)
    assert get_location_score(prisoner, excluded) == LOCATION_NOT_PERMITTED
