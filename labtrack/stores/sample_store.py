"""
In-memory store of received samples
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Set

from ..core.clock import utc_now
from ..models import Sample, SampleStatus
from .base import build_record, merge_record, reject_reserved_fields

logger = logging.getLogger(__name__)

_MANAGED_FIELDS = ("id", "barcode", "received_at", "updated_at")
_IMMUTABLE_FIELDS = ("id", "barcode")


class SampleStore:
    """Samples in intake order.

    Sample ids are the prefix followed by the trailing digits of the current
    epoch milliseconds. The barcode carries the same value. Two intakes in the
    same millisecond would collide, so the numeric part is bumped until it
    has not been issued before.
    """

    def __init__(self, id_prefix: str = "SAM", id_digits: int = 8,
                 clock: Callable[[], datetime] = utc_now):
        self.id_prefix = id_prefix
        self.id_digits = id_digits
        self._clock = clock
        self._samples: List[Sample] = []
        self._issued_ids: Set[str] = set()

    def __len__(self):
        return len(self._samples)

    def list(self) -> List[Sample]:
        return list(self._samples)

    def get_by_id(self, sample_id: str) -> Optional[Sample]:
        for sample in self._samples:
            if sample.id == sample_id:
                return sample
        return None

    def filter(self, status: Optional[SampleStatus] = None,
               patient_id: Optional[str] = None) -> List[Sample]:
        samples = self._samples
        if status is not None:
            samples = [s for s in samples if s.status == status]
        if patient_id is not None:
            samples = [s for s in samples if s.patient_id == patient_id]
        return list(samples)

    def references_test(self, test_id: str) -> List[Sample]:
        """Samples ordered against a catalog test"""
        return [s for s in self._samples if s.test_definition_id == test_id]

    def add(self, sample: Mapping[str, Any]) -> Sample:
        reject_reserved_fields(sample, _MANAGED_FIELDS, "set")

        now = self._clock()
        sample_id = self._generate_id(now)
        record = build_record(Sample, {
            **sample,
            "id": sample_id,
            "barcode": sample_id,
            "received_at": now,
            "updated_at": now,
        })
        self._issued_ids.add(sample_id)
        self._samples.append(record)

        logger.info(f"Received sample {record.id} for patient {record.patient_id} "
                    f"(test {record.test_definition_id}, priority {record.priority.value})")
        return record

    def update(self, sample_id: str, updates: Mapping[str, Any]) -> Optional[Sample]:
        """Merge updates into a sample.

        No status-transition checks happen here; callers that need the
        lifecycle enforced go through the workflow service.
        """
        index = self._index_of(sample_id)
        if index is None:
            return None

        reject_reserved_fields(updates, _IMMUTABLE_FIELDS, "update")
        updated = merge_record(self._samples[index], {**updates, "updated_at": self._clock()})
        self._samples[index] = updated

        logger.debug(f"Updated sample {sample_id}: {sorted(updates)}")
        return updated

    def _generate_id(self, now: datetime) -> str:
        modulus = 10 ** self.id_digits
        number = int(now.timestamp() * 1000) % modulus
        candidate = f"{self.id_prefix}{number:0{self.id_digits}d}"
        while candidate in self._issued_ids:
            number = (number + 1) % modulus
            candidate = f"{self.id_prefix}{number:0{self.id_digits}d}"
        return candidate

    def _index_of(self, sample_id: str) -> Optional[int]:
        for index, sample in enumerate(self._samples):
            if sample.id == sample_id:
                return index
        return None
