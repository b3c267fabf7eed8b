from datetime import datetime

from pydantic import BaseModel


# One bookable occurrence shown on the session picker (GET /visit-sessions)
class VisitSession(BaseModel):
    session_template_reference: str
    prison_code: str
    visit_room: str
    start_timestamp: datetime
    end_timestamp: datetime
    open_visit_capacity: int
    open_visit_booked_count: int = 0
    closed_visit_capacity: int
    closed_visit_booked_count: int = 0
