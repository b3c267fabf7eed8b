from typing import Optional, List
from datetime import date, datetime

from pydantic import BaseModel

from visit_scheduler.models.enums import VisitRestriction


class Visitor(BaseModel):
    nomis_person_id: int
    visit_contact: Optional[bool] = None


class ContactDetails(BaseModel):
    name: str
    telephone: Optional[str] = None
    email: Optional[str] = None


class SupportDetails(BaseModel):
    description: str


# Application: Create (POST /applications/slot/reserve)
class ApplicationCreate(BaseModel):
    prisoner_id: str
    session_template_reference: str
    session_date: date
    application_restriction: VisitRestriction
    visitors: List[Visitor] = []
    visit_contact: Optional[ContactDetails] = None
    visitor_support: Optional[SupportDetails] = None
    allow_over_booking: bool = False
    actioned_by: Optional[str] = None


# Application: Change (PUT /applications/{reference}/slot/change)
class ApplicationChange(BaseModel):
    session_template_reference: Optional[str] = None
    session_date: Optional[date] = None
    application_restriction: Optional[VisitRestriction] = None
    visitors: Optional[List[Visitor]] = None
    visit_contact: Optional[ContactDetails] = None
    visitor_support: Optional[SupportDetails] = None
    allow_over_booking: bool = False


# Application: Full response
class Application(BaseModel):
    reference: str
    prisoner_id: str
    prison_code: str
    session_template_reference: str
    session_date: date
    start_timestamp: datetime
    end_timestamp: datetime
    restriction: VisitRestriction
    reserved_slot: bool
    completed: bool
    visit_reference: Optional[str] = None
    visitors: List[Visitor] = []
    visit_contact: Optional[ContactDetails] = None
    visitor_support: Optional[SupportDetails] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
