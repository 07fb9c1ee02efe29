from typing import Optional

from pydantic import BaseModel


class LeadAccepted(BaseModel):
    success: bool = True
    message: Optional[str] = None


class LeadError(BaseModel):
    success: bool = False
    error: str
