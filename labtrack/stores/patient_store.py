"""
In-memory patient register
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from ..core.clock import utc_now
from ..models import Patient
from .base import build_record, reject_reserved_fields

logger = logging.getLogger(__name__)


class PatientStore:
    """Patients with sequential ids (``P001``, ``P002``, ...)"""

    def __init__(self, id_prefix: str = "P", clock: Callable[[], datetime] = utc_now):
        self.id_prefix = id_prefix
        self._clock = clock
        self._patients: List[Patient] = []
        self._next_number = 1

    def __len__(self):
        return len(self._patients)

    def list(self) -> List[Patient]:
        return list(self._patients)

    def get_by_id(self, patient_id: str) -> Optional[Patient]:
        for patient in self._patients:
            if patient.id == patient_id:
                return patient
        return None

    def add(self, patient: Mapping[str, Any]) -> Patient:
        reject_reserved_fields(patient, ("id", "created_at"), "set")

        record = build_record(Patient, {
            **patient,
            "id": f"{self.id_prefix}{self._next_number:03d}",
            "created_at": self._clock(),
        })
        self._next_number += 1
        self._patients.append(record)

        logger.info(f"Registered patient {record.id}")
        return record
