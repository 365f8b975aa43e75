"""
Result models for the LabTrack laboratory workspace
"""

from enum import Enum as PyEnum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResultBadge(str, PyEnum):
    """Display badge for a classified result value"""
    CRITICAL = "Critical"
    ABNORMAL = "Abnormal"
    NORMAL = "Normal"


class ReviewStatus(str, PyEnum):
    """Review state of a sample's result set"""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReferenceRange(BaseModel):
    """Inclusive numeric bounds"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min: float
    max: float

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError(f"Range minimum {self.min} exceeds maximum {self.max}")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def __str__(self):
        return f"{self.min:g} - {self.max:g}"


class PanelParameter(BaseModel):
    """A measurable parameter of a laboratory test"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    name: str
    unit: str = ""
    normal_range: ReferenceRange
    critical_range: Optional[ReferenceRange] = None


class ResultValue(BaseModel):
    """A single measured parameter value with derived flags"""

    model_config = ConfigDict(extra="forbid")

    parameter_id: str
    value: Union[float, str]
    is_abnormal: bool = False
    is_critical: bool = False
    comment: Optional[str] = None

    @property
    def badge(self) -> ResultBadge:
        if self.is_critical:
            return ResultBadge.CRITICAL
        if self.is_abnormal:
            return ResultBadge.ABNORMAL
        return ResultBadge.NORMAL

    def to_dict(self) -> dict:
        """Convert result value to dictionary"""
        return {
            "parameter_id": self.parameter_id,
            "value": self.value,
            "is_abnormal": self.is_abnormal,
            "is_critical": self.is_critical,
            "badge": self.badge.value,
            "comment": self.comment,
        }
