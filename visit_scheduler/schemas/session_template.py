from typing import Optional, List, Tuple
from datetime import date, time

from pydantic import BaseModel, Field, field_validator, model_validator

from visit_scheduler.models.enums import DayOfWeek


# Permitted location: one entry of a location group
class PermittedLocation(BaseModel):
    level_one_code: str
    level_two_code: Optional[str] = None
    level_three_code: Optional[str] = None
    level_four_code: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def levels(self) -> Tuple[Optional[str], ...]:
        return (self.level_one_code, self.level_two_code, self.level_three_code, self.level_four_code)

    @property
    def specificity(self) -> int:
        """Number of levels this entry pins down, 1 (wing) to 4 (cell)."""
        return sum(1 for level in self.levels if level is not None)


# Session groups: Create (admin POST)
class LocationGroupCreate(BaseModel):
    prison_code: str
    name: str
    locations: List[PermittedLocation] = Field(min_length=1)


class CategoryGroupCreate(BaseModel):
    prison_code: str
    name: str
    categories: List[str] = Field(min_length=1)


class IncentiveGroupCreate(BaseModel):
    prison_code: str
    name: str
    incentive_levels: List[str] = Field(min_length=1)


def _codes(values):
    return [getattr(v, "code", v) for v in values or []]


# Session groups: DB response
class LocationGroup(BaseModel):
    reference: Optional[str] = None
    prison_code: str
    name: str
    locations: List[PermittedLocation] = []

    class Config:
        from_attributes = True


class CategoryGroup(BaseModel):
    reference: Optional[str] = None
    prison_code: str
    name: str
    categories: List[str] = []

    class Config:
        from_attributes = True

    @field_validator("categories", mode="before")
    @classmethod
    def category_codes(cls, v):
        return _codes(v)


class IncentiveGroup(BaseModel):
    reference: Optional[str] = None
    prison_code: str
    name: str
    incentive_levels: List[str] = []

    class Config:
        from_attributes = True

    @field_validator("incentive_levels", mode="before")
    @classmethod
    def incentive_codes(cls, v):
        return _codes(v)


# Session template: Create (admin POST /admin/session-templates)
class SessionTemplateCreate(BaseModel):
    name: str
    prison_code: str
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    valid_from_date: date
    valid_to_date: Optional[date] = None
    weekly_frequency: int = Field(1, ge=1)
    open_capacity: int = Field(0, ge=0)
    closed_capacity: int = Field(0, ge=0)
    visit_room: str
    include_location_group_type: bool = True
    include_category_group_type: bool = True
    include_incentive_group_type: bool = True
    location_group_references: List[str] = []
    category_group_references: List[str] = []
    incentive_group_references: List[str] = []

    @model_validator(mode="after")
    def check_ranges(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.valid_to_date is not None and self.valid_to_date < self.valid_from_date:
            raise ValueError("valid_to_date must not be before valid_from_date")
        return self


# Session template: Update (admin PUT /admin/session-templates/{reference})
class SessionTemplateUpdate(BaseModel):
    name: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    valid_from_date: Optional[date] = None
    valid_to_date: Optional[date] = None
    weekly_frequency: Optional[int] = Field(None, ge=1)
    open_capacity: Optional[int] = Field(None, ge=0)
    closed_capacity: Optional[int] = Field(None, ge=0)
    visit_room: Optional[str] = None
    include_location_group_type: Optional[bool] = None
    include_category_group_type: Optional[bool] = None
    include_incentive_group_type: Optional[bool] = None
    location_group_references: Optional[List[str]] = None
    category_group_references: Optional[List[str]] = None
    incentive_group_references: Optional[List[str]] = None


# Session template: DB response, also the value the scheduling rules work on
class SessionTemplate(BaseModel):
    reference: Optional[str] = None
    name: str
    prison_code: str
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    valid_from_date: date
    valid_to_date: Optional[date] = None
    weekly_frequency: int = 1
    open_capacity: int = 0
    closed_capacity: int = 0
    visit_room: str
    include_location_group_type: bool = True
    include_category_group_type: bool = True
    include_incentive_group_type: bool = True
    location_groups: List[LocationGroup] = []
    category_groups: List[CategoryGroup] = []
    incentive_groups: List[IncentiveGroup] = []
    active: bool = True

    class Config:
        from_attributes = True
