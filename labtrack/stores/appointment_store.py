"""
In-memory appointment book
"""

from datetime import date
from typing import List, Optional

from ..models import Appointment
from .base import SequentialStore


class AppointmentStore(SequentialStore[Appointment]):
    """Appointment requests with sequential ids (``APT001``, ...)"""

    model = Appointment
    stamp_on_add = ("created_at", "updated_at")

    def for_patient(self, patient_id: str) -> List[Appointment]:
        appointments = [a for a in self._records if a.patient_id == patient_id]
        return sorted(appointments, key=lambda a: (a.scheduled_for, a.time_slot))

    def booked_slot(self, doctor_id: str, day: date, time_slot: str) -> Optional[Appointment]:
        """The active appointment holding a doctor's slot, if any"""
        for appointment in self._records:
            if (appointment.is_active and appointment.doctor_id == doctor_id
                    and appointment.scheduled_for == day and appointment.time_slot == time_slot):
                return appointment
        return None
