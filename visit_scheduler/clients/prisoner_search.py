import logging
from typing import Optional, Protocol

import requests

from visit_scheduler.schemas.prisoner import Prisoner

logger = logging.getLogger(__name__)


class PrisonerLookup(Protocol):
    def get_prisoner(self, prisoner_id: str) -> Optional[Prisoner]:
        ...


class PrisonerSearchClient:
    """Fetches prisoner classification and housing from the prisoner search API."""

    def __init__(self, base_url: str, timeout: int = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_prisoner(self, prisoner_id: str) -> Optional[Prisoner]:
        response = self.session.get(f"{self.base_url}/prisoner/{prisoner_id}", timeout=self.timeout)
        if response.status_code == 404:
            logger.info("Prisoner %s not found on prisoner search", prisoner_id)
            return None
        response.raise_for_status()
        body = response.json()

        levels = [None, None, None, None]
        cell_location = body.get("cellLocation")
        if cell_location:
            for i, part in enumerate(cell_location.split("-")[:4]):
                levels[i] = part or None

        return Prisoner(
            prisoner_id=prisoner_id,
            prison_code=body.get("prisonId"),
            category=body.get("category"),
            incentive_level=(body.get("currentIncentive") or {}).get("level", {}).get("code"),
            level_one_code=levels[0],
            level_two_code=levels[1],
            level_three_code=levels[2],
            level_four_code=levels[3],
        )
