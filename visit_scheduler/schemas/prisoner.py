from typing import Optional, Tuple
from pydantic import BaseModel


class Prisoner(BaseModel):
    """Classification and housing of a prisoner, as returned by prisoner search."""

    prisoner_id: str
    prison_code: Optional[str] = None
    category: Optional[str] = None
    incentive_level: Optional[str] = None
    level_one_code: Optional[str] = None
    level_two_code: Optional[str] = None
    level_three_code: Optional[str] = None
    level_four_code: Optional[str] = None

    @property
    def housing_levels(self) -> Tuple[Optional[str], ...]:
        return (self.level_one_code, self.level_two_code, self.level_three_code, self.level_four_code)
