"""
Sample model for the LabTrack laboratory workspace
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.clock import utc_now
from .result import ResultValue, ReviewStatus


class SampleStatus(str, PyEnum):
    """Sample status enumeration"""
    RECEIVED = "received"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class SamplePriority(str, PyEnum):
    """Sample priority enumeration"""
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Sample(BaseModel):
    """Patient specimen submitted for one laboratory test"""

    model_config = ConfigDict(extra="forbid")

    # Identifiers
    id: str
    barcode: str

    # References
    patient_id: str
    patient_name: str
    test_definition_id: str

    # Workflow
    status: SampleStatus = SampleStatus.RECEIVED
    priority: SamplePriority = SamplePriority.NORMAL

    # Timing information
    received_at: datetime = Field(default_factory=utc_now)
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utc_now)

    # Results and review
    results: Optional[List[ResultValue]] = None
    interpretation: Optional[str] = None
    review_status: Optional[ReviewStatus] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_comment: Optional[str] = None

    notes: Optional[str] = None

    def __repr__(self):
        return f"<Sample(id='{self.id}', patient_id='{self.patient_id}', status='{self.status.value}')>"

    @property
    def is_urgent(self) -> bool:
        """Check if sample should be handled ahead of routine work"""
        return self.priority in [SamplePriority.URGENT, SamplePriority.HIGH]

    @property
    def has_results(self) -> bool:
        return bool(self.results)

    @property
    def has_critical_results(self) -> bool:
        return any(r.is_critical for r in self.results or [])

    @property
    def has_abnormal_results(self) -> bool:
        return any(r.is_abnormal for r in self.results or [])

    def age_in_hours(self, now: Optional[datetime] = None) -> float:
        """Hours elapsed since the sample was received"""
        now = now or utc_now()
        return (now - self.received_at).total_seconds() / 3600

    def result_for(self, parameter_id: str) -> Optional[ResultValue]:
        for result in self.results or []:
            if result.parameter_id == parameter_id:
                return result
        return None
