"""
Appointment models for patient bookings
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.clock import utc_now


class AppointmentType(str, PyEnum):
    """Reason category offered when booking"""
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    TEST_RESULTS_REVIEW = "test_results_review"
    ROUTINE_CHECKUP = "routine_checkup"
    SPECIALIST_REFERRAL = "specialist_referral"


class AppointmentStatus(str, PyEnum):
    """Booking status; new bookings wait for confirmation"""
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Doctor(BaseModel):
    """Doctor who can be booked"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    specialty: str
    available: bool = True


class Appointment(BaseModel):
    """Patient appointment request"""

    model_config = ConfigDict(extra="forbid")

    id: str
    patient_id: str
    doctor_id: str
    scheduled_for: date
    time_slot: str
    type: AppointmentType
    reason: str = Field(..., min_length=1)
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.REQUESTED
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def __repr__(self):
        return (f"<Appointment(id='{self.id}', doctor_id='{self.doctor_id}', "
                f"scheduled_for='{self.scheduled_for}', time_slot='{self.time_slot}')>")

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED
