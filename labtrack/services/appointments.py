"""
Appointment booking against a fixed doctor directory and slot grid
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.clock import utc_now
from ..core.exceptions import (
    AppointmentConflictException, AppointmentNotFoundException,
    DoctorNotFoundException, ValidationException
)
from ..models import Appointment, AppointmentStatus, AppointmentType, Doctor
from ..stores import AppointmentStore

logger = logging.getLogger(__name__)


DEFAULT_DOCTORS = [
    Doctor(id="D001", name="Dr. Sarah Johnson", specialty="Cardiology"),
    Doctor(id="D002", name="Dr. Michael Chen", specialty="Internal Medicine"),
    Doctor(id="D003", name="Dr. Emily Rodriguez", specialty="Endocrinology", available=False),
    Doctor(id="D004", name="Dr. David Wilson", specialty="Gastroenterology"),
]

TIME_SLOTS = [
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
]

REQUIRED_BOOKING_FIELDS = ("patient_id", "doctor_id", "scheduled_for", "time_slot", "type", "reason")


class AppointmentService:
    """Books, confirms and cancels patient appointments"""

    def __init__(self, appointments: AppointmentStore,
                 doctors: Optional[List[Doctor]] = None,
                 time_slots: Optional[List[str]] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.appointments = appointments
        self.doctors = list(DEFAULT_DOCTORS if doctors is None else doctors)
        self.time_slots = list(TIME_SLOTS if time_slots is None else time_slots)
        self._clock = clock

    def get_doctor(self, doctor_id: str) -> Doctor:
        for doctor in self.doctors:
            if doctor.id == doctor_id:
                return doctor
        raise DoctorNotFoundException(doctor_id)

    def available_doctors(self) -> List[Doctor]:
        return [d for d in self.doctors if d.available]

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundException(appointment_id)
        return appointment

    def list_for_patient(self, patient_id: str) -> List[Appointment]:
        return self.appointments.for_patient(patient_id)

    def free_slots(self, doctor_id: str, day: date) -> List[str]:
        self.get_doctor(doctor_id)
        return [slot for slot in self.time_slots
                if self.appointments.booked_slot(doctor_id, day, slot) is None]

    def book(self, request: Mapping[str, Any]) -> Appointment:
        """Request an appointment in a free slot with an available doctor"""
        missing = [f for f in REQUIRED_BOOKING_FIELDS if not str(request.get(f) or "").strip()]
        if missing:
            raise ValidationException(
                f"Please fill in all required fields: {', '.join(missing)}", "MISSING_FIELDS"
            )

        doctor = self.get_doctor(request["doctor_id"])
        if not doctor.available:
            raise ValidationException(f"{doctor.name} is not taking appointments",
                                      "DOCTOR_UNAVAILABLE")

        time_slot = request["time_slot"]
        if time_slot not in self.time_slots:
            raise ValidationException(f"{time_slot} is not a bookable time slot",
                                      "INVALID_TIME_SLOT")

        day = self._parse_day(request["scheduled_for"])
        if day < self._clock().date():
            raise ValidationException(f"Cannot book an appointment on {day} in the past",
                                      "DATE_IN_PAST")

        if self.appointments.booked_slot(doctor.id, day, time_slot) is not None:
            raise AppointmentConflictException(doctor.id, day, time_slot)

        appointment = self.appointments.add({
            **request,
            "scheduled_for": day,
            "type": self._type(request["type"]),
            "reason": str(request["reason"]).strip(),
            "status": AppointmentStatus.REQUESTED,
        })
        logger.info(f"Appointment {appointment.id} requested by {appointment.patient_id} "
                    f"with {doctor.id} on {day} at {time_slot}")
        return appointment

    def confirm(self, appointment_id: str) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.status != AppointmentStatus.REQUESTED:
            raise ValidationException(
                f"Appointment {appointment_id} is {appointment.status.value}", "NOT_REQUESTED"
            )
        return self.appointments.update(appointment_id, {"status": AppointmentStatus.CONFIRMED})

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        """Cancel and free the slot; cancelling twice is a no-op"""
        appointment = self.get_appointment(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED:
            return appointment

        updates: Dict[str, Any] = {"status": AppointmentStatus.CANCELLED}
        if reason:
            updates["notes"] = reason
        logger.info(f"Appointment {appointment_id} cancelled")
        return self.appointments.update(appointment_id, updates)

    @staticmethod
    def _parse_day(value) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError:
            raise ValidationException(f"Invalid date: {value}", "INVALID_DATE")

    @staticmethod
    def _type(value) -> AppointmentType:
        try:
            return AppointmentType(value)
        except ValueError:
            raise ValidationException(f"Invalid appointment type: {value}", "INVALID_TYPE")
