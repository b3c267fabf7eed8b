"""
Prisoner eligibility for a session template.

A template restricts who may book it along three facets: housing location,
security category and incentive level. Each facet is either unrestricted
(no groups attached) or restricted, with include or exclude semantics over
the union of its groups' values. A prisoner is eligible when every facet
matches.
"""
import enum
import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from visit_scheduler.schemas.session_template import PermittedLocation

logger = logging.getLogger(__name__)

LOCATION_NOT_PERMITTED = -1


class FacetType(str, enum.Enum):
    LOCATION = "LOCATION"
    CATEGORY = "CATEGORY"
    INCENTIVE = "INCENTIVE"


def location_matches(location: PermittedLocation, housing_levels: Tuple[Optional[str], ...]) -> bool:
    """An unset level matches anything; a set level must equal the prisoner's value."""
    return all(
        permitted is None or permitted == prisoner_level
        for permitted, prisoner_level in zip(location.levels, housing_levels)
    )


@dataclass(frozen=True)
class EligibilityFacet:
    facet_type: FacetType
    include: bool
    restricted: bool
    values: FrozenSet[str] = frozenset()
    locations: Tuple[PermittedLocation, ...] = ()

    def hits(self, prisoner) -> bool:
        """Whether the prisoner is named by this facet's groups, ignoring include/exclude."""
        if self.facet_type is FacetType.LOCATION:
            return any(location_matches(location, prisoner.housing_levels) for location in self.locations)
        return self.prisoner_value(prisoner) in self.values

    def prisoner_value(self, prisoner) -> Optional[str]:
        if self.facet_type is FacetType.CATEGORY:
            return prisoner.category
        if self.facet_type is FacetType.INCENTIVE:
            return prisoner.incentive_level
        return None

    def matches(self, prisoner) -> bool:
        if not self.restricted:
            return True
        # unknown classification never gets into a restricted session
        if self.facet_type is not FacetType.LOCATION and self.prisoner_value(prisoner) is None:
            return False
        hit = self.hits(prisoner)
        return hit if self.include else not hit


def location_facet(template) -> EligibilityFacet:
    locations = tuple(
        PermittedLocation.model_validate(location)
        for group in template.location_groups
        for location in group.locations
    )
    return EligibilityFacet(
        facet_type=FacetType.LOCATION,
        include=template.include_location_group_type,
        restricted=bool(locations),
        locations=locations,
    )


def category_facet(template) -> EligibilityFacet:
    groups = template.category_groups
    return EligibilityFacet(
        facet_type=FacetType.CATEGORY,
        include=template.include_category_group_type,
        restricted=bool(groups),
        values=frozenset(getattr(c, "code", c) for group in groups for c in group.categories),
    )


def incentive_facet(template) -> EligibilityFacet:
    groups = template.incentive_groups
    return EligibilityFacet(
        facet_type=FacetType.INCENTIVE,
        include=template.include_incentive_group_type,
        restricted=bool(groups),
        values=frozenset(getattr(i, "code", i) for group in groups for i in group.incentive_levels),
    )


def facets_for(template) -> Tuple[EligibilityFacet, EligibilityFacet, EligibilityFacet]:
    return location_facet(template), category_facet(template), incentive_facet(template)


def is_eligible(prisoner, template) -> bool:
    for facet in facets_for(template):
        if not facet.matches(prisoner):
            logger.debug(
                "Prisoner %s not eligible for session %s on %s facet",
                prisoner.prisoner_id, template.reference, facet.facet_type.value,
            )
            return False
    return True


def is_available_to_all(template) -> bool:
    return not any(facet.restricted for facet in facets_for(template))


def get_location_score(prisoner, template) -> int:
    """
    Specificity of the most precise location entry the prisoner falls under:
    4 for a cell-level entry down to 1 for a wing, 0 when the template has no
    location restriction, LOCATION_NOT_PERMITTED when the prisoner is shut out.
    """
    facet = location_facet(template)
    if not facet.restricted:
        return 0

    matching = [
        location.specificity
        for location in facet.locations
        if location_matches(location, prisoner.housing_levels)
    ]
    if facet.include:
        return max(matching) if matching else LOCATION_NOT_PERMITTED
    return LOCATION_NOT_PERMITTED if matching else 0
