"""
Overlap detection between session templates.

Used to warn an administrator that a new or updated template competes with an
existing one for the same slot and the same prisoners.
"""
import logging
from datetime import date
from typing import Iterable, List

from visit_scheduler.schemas.session_template import PermittedLocation
from visit_scheduler.utils.eligibility import (
    EligibilityFacet, FacetType, facets_for, is_available_to_all,
)
from visit_scheduler.utils.session_dates import is_skip_occurrence

logger = logging.getLogger(__name__)


def has_overlapping_dates(a, b) -> bool:
    a_to = a.valid_to_date or date.max
    b_to = b.valid_to_date or date.max
    return a.valid_from_date <= b_to and b.valid_from_date <= a_to


def has_overlapping_times(a, b) -> bool:
    # touching boundaries count as overlapping
    return a.start_time <= b.end_time and b.start_time <= a.end_time


def has_aligned_frequency(a, b) -> bool:
    if a.weekly_frequency == 1 or b.weekly_frequency == 1:
        return True
    return not (
        is_skip_occurrence(a.valid_from_date, b.valid_from_date, b.weekly_frequency)
        or is_skip_occurrence(b.valid_from_date, a.valid_from_date, a.weekly_frequency)
    )


def locations_overlap(first: PermittedLocation, second: PermittedLocation) -> bool:
    """Two entries overlap when every level is unset on one side or equal on both."""
    return all(
        x is None or y is None or x == y
        for x, y in zip(first.levels, second.levels)
    )


def _facets_intersect(a: EligibilityFacet, b: EligibilityFacet) -> bool:
    if not a.restricted or not b.restricted:
        return True
    # an exclude list admits everyone not named, so assume a shared population
    if not a.include or not b.include:
        return True
    if a.facet_type is FacetType.LOCATION:
        return any(locations_overlap(x, y) for x in a.locations for y in b.locations)
    return bool(a.values & b.values)


def has_overlapping_prisoner_groups(a, b) -> bool:
    if is_available_to_all(a) or is_available_to_all(b):
        return True
    return all(_facets_intersect(x, y) for x, y in zip(facets_for(a), facets_for(b)))


def overlaps(a, b) -> bool:
    return (
        a.day_of_week == b.day_of_week
        and has_overlapping_dates(a, b)
        and has_overlapping_times(a, b)
        and has_aligned_frequency(a, b)
        and has_overlapping_prisoner_groups(a, b)
    )


def find_overlapping_references(candidate, existing: Iterable) -> List[str]:
    """References of the templates in ``existing`` that overlap ``candidate``, skipping itself."""
    conflicts = []
    for template in existing:
        if candidate.reference is not None and template.reference == candidate.reference:
            continue
        if overlaps(candidate, template):
            logger.debug("Session template %s overlaps %s", candidate.reference, template.reference)
            conflicts.append(template.reference)
    return conflicts
