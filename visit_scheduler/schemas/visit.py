from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel

from visit_scheduler.models.enums import VisitRestriction, VisitStatus
from visit_scheduler.schemas.application import Visitor, ContactDetails, SupportDetails


# Visit: Full response (PUT /visits/{application_reference}/book)
class Visit(BaseModel):
    reference: str
    application_reference: Optional[str] = None
    prisoner_id: str
    prison_code: str
    session_template_reference: str
    visit_room: str
    start_timestamp: datetime
    end_timestamp: datetime
    restriction: VisitRestriction
    visit_status: VisitStatus
    visitors: List[Visitor] = []
    visit_contact: Optional[ContactDetails] = None
    visitor_support: Optional[SupportDetails] = None
    migrated: bool = False
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


# Visit: Cancel (PUT /visits/{reference}/cancel)
class VisitCancel(BaseModel):
    cancel_reason: Optional[str] = None


# Visit: Cancel response, covers both bookings and unfinished applications
class CancelResponse(BaseModel):
    reference: str
    cancelled: bool
    visit: Optional[Visit] = None
