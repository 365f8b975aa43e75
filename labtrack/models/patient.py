"""
Patient model for the LabTrack laboratory workspace
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.clock import utc_now


class Patient(BaseModel):
    """Patient information model"""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = Field(None, ge=0)
    gender: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    def __repr__(self):
        return f"<Patient(id='{self.id}', name='{self.name}')>"
