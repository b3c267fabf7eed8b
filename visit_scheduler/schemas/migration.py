from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel, model_validator

from visit_scheduler.models.enums import VisitRestriction
from visit_scheduler.schemas.application import Visitor, ContactDetails


# Legacy visit: Migrate (POST /migrate/visits)
class MigrateVisitRequest(BaseModel):
    prisoner_id: str
    prison_code: str
    visit_room: str
    visit_restriction: VisitRestriction
    start_timestamp: datetime
    end_timestamp: datetime
    visitors: List[Visitor] = []
    visit_contact: Optional[ContactDetails] = None
    create_date_time: Optional[datetime] = None

    @model_validator(mode="after")
    def check_times(self):
        if self.end_timestamp < self.start_timestamp:
            raise ValueError("end_timestamp must not be before start_timestamp")
        return self
