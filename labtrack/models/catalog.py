"""
Test catalog model for the LabTrack laboratory workspace
"""

from datetime import datetime
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, Field

from ..core.clock import utc_now


class SampleKind(str, PyEnum):
    """Specimen kind required by a test"""
    BLOOD = "blood"
    URINE = "urine"
    SALIVA = "saliva"
    TISSUE = "tissue"
    OTHER = "other"


class CatalogTest(BaseModel):
    """Catalog entry describing an orderable laboratory test"""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str
    name: str
    category: str
    description: str = ""
    duration_minutes: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    requires_special_prep: bool = False
    sample_kind: SampleKind = SampleKind.BLOOD

    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def __repr__(self):
        return f"<CatalogTest(id='{self.id}', name='{self.name}', category='{self.category}')>"

    @property
    def duration_label(self) -> str:
        """Human readable turnaround, e.g. 1h 30m"""
        hours, minutes = divmod(self.duration_minutes, 60)
        if hours and minutes:
            return f"{hours}h {minutes}m"
        if hours:
            return f"{hours}h"
        return f"{minutes}m"

    def matches(self, term: str) -> bool:
        """Case-insensitive match on name or category"""
        term = term.lower()
        return term in self.name.lower() or term in self.category.lower()
