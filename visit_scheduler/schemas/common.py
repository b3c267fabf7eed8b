from typing import Optional, List
from pydantic import BaseModel


# Error responses
class ErrorResponse(BaseModel):
    error: str
    message: str
    messages: Optional[List[str]] = None
    conflicts: Optional[List[str]] = None
