from typing import Optional
from datetime import date

from pydantic import BaseModel


# Exclude date: request body for add/remove, and DB response
class ExcludeDate(BaseModel):
    exclude_date: date
    actioned_by: Optional[str] = None

    class Config:
        from_attributes = True
