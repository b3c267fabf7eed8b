"""
Best-match of a legacy visit against current session templates.

Every candidate is scored on how close its times are to the legacy visit,
how precisely its location scope fits the prisoner, whether its category
and incentive groups name the prisoner, how recently it became valid, and
whether the room name matches. Candidates the prisoner could not book, or
whose times are further off than the proximity ceiling, are dropped.
"""
import logging
from dataclasses import dataclass
from datetime import time
from typing import Any, List, Sequence

from visit_scheduler.core.exceptions import MigrationMatchError
from visit_scheduler.utils.eligibility import (
    LOCATION_NOT_PERMITTED, category_facet, get_location_score, incentive_facet,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROXIMITY_MINUTES = 180
FROM_DATE_IN_FUTURE = -1000


def _seconds(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def get_proximity_minutes(session_start: time, start: time, session_end: time, end: time) -> int:
    return (
        abs(_seconds(session_start) - _seconds(start)) + abs(_seconds(session_end) - _seconds(end))
    ) // 60


@dataclass
class MigrateMatch:
    template: Any
    time_proximity: int
    location_score: int = LOCATION_NOT_PERMITTED
    category: bool = False
    category_permitted: bool = True
    incentive: bool = False
    incentive_permitted: bool = True
    valid_from_proximity_days: int = 0
    room_name_match: bool = False

    def sort_key(self):
        # smaller proximity is better, hence the negation
        return (
            -self.time_proximity,
            self.location_score,
            self.category,
            self.incentive,
            self.valid_from_proximity_days,
            self.room_name_match,
        )

    def is_permitted(self, max_proximity_minutes: int) -> bool:
        return (
            self.location_score != LOCATION_NOT_PERMITTED
            and self.category_permitted
            and self.incentive_permitted
            and self.time_proximity <= max_proximity_minutes
            and self.valid_from_proximity_days != FROM_DATE_IN_FUTURE
        )


def score_candidate(legacy_visit, prisoner, template) -> MigrateMatch:
    visit_date = legacy_visit.start_timestamp.date()
    category = category_facet(template)
    incentive = incentive_facet(template)

    if template.valid_from_date > visit_date:
        valid_from_proximity_days = FROM_DATE_IN_FUTURE
    else:
        valid_from_proximity_days = (template.valid_from_date - visit_date).days

    return MigrateMatch(
        template=template,
        time_proximity=get_proximity_minutes(
            template.start_time, legacy_visit.start_timestamp.time(),
            template.end_time, legacy_visit.end_timestamp.time(),
        ),
        location_score=get_location_score(prisoner, template),
        category=category.restricted and category.matches(prisoner),
        category_permitted=category.matches(prisoner),
        incentive=incentive.restricted and incentive.matches(prisoner),
        incentive_permitted=incentive.matches(prisoner),
        valid_from_proximity_days=valid_from_proximity_days,
        room_name_match=template.visit_room == legacy_visit.visit_room,
    )


def best_match(
    legacy_visit,
    prisoner,
    candidates: Sequence,
    max_proximity_minutes: int = DEFAULT_MAX_PROXIMITY_MINUTES,
):
    """Return the best scoring candidate template, or raise MigrationMatchError."""
    start = legacy_visit.start_timestamp
    message = (
        f"prison code {legacy_visit.prison_code} prisoner id {legacy_visit.prisoner_id}, "
        f"visit {start.date()}/{start.strftime('%A').upper()}/{start.time()} <> "
        f"{legacy_visit.end_timestamp.time()} room:{legacy_visit.visit_room}"
    )
    logger.debug("Matching legacy visit : %s", message)

    if not candidates:
        raise MigrationMatchError(f"Could not find any session templates : {message}")

    matches: List[MigrateMatch] = []
    for template in candidates:
        match = score_candidate(legacy_visit, prisoner, template)
        if match.is_permitted(max_proximity_minutes):
            matches.append(match)
        else:
            logger.debug(
                "Session %s not permitted locationScore:%s category:%s incentive:%s timeProximity:%s dateProximity:%s",
                template.reference, match.location_score, match.category_permitted,
                match.incentive_permitted, match.time_proximity, match.valid_from_proximity_days,
            )

    if not matches:
        raise MigrationMatchError(f"Could not find any matching session templates : {message}")

    best = max(matches, key=MigrateMatch.sort_key)
    logger.debug(
        "Best match %s locationScore:%s category:%s incentive:%s timeProximity:%s roomMatch:%s",
        best.template.reference, best.location_score, best.category,
        best.incentive, best.time_proximity, best.room_name_match,
    )
    return best.template
