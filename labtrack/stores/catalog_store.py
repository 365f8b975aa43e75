"""
In-memory catalog of laboratory test definitions
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from ..core.clock import utc_now
from ..models import CatalogTest, SampleKind
from .base import build_record, merge_record, reject_reserved_fields

logger = logging.getLogger(__name__)


DEFAULT_TESTS = [
    {
        "name": "Complete Blood Count",
        "category": "Hematology",
        "description": "Comprehensive blood analysis",
        "duration_minutes": 45,
        "price": 2500.00,
        "requires_special_prep": False,
        "sample_kind": SampleKind.BLOOD,
    },
    {
        "name": "Lipid Panel",
        "category": "Chemistry",
        "description": "Cholesterol analysis",
        "duration_minutes": 60,
        "price": 3500.00,
        "requires_special_prep": True,
        "sample_kind": SampleKind.BLOOD,
    },
    {
        "name": "Urinalysis",
        "category": "Urinalysis",
        "description": "Complete urine examination",
        "duration_minutes": 30,
        "price": 1500.00,
        "requires_special_prep": False,
        "sample_kind": SampleKind.URINE,
    },
    {
        "name": "Thyroid Function Panel",
        "category": "Endocrinology",
        "description": "TSH, T3, T4 hormone levels",
        "duration_minutes": 90,
        "price": 4500.00,
        "requires_special_prep": False,
        "sample_kind": SampleKind.BLOOD,
    },
]

_MANAGED_FIELDS = ("id", "created_at", "updated_at")


class CatalogStore:
    """Test definitions held in insertion order.

    Ids are sequential (``T001``, ``T002``, ...) and never reissued within
    the lifetime of the store, so a delete followed by an add does not hand
    out the deleted id again.
    """

    def __init__(self, id_prefix: str = "T", clock: Callable[[], datetime] = utc_now):
        self.id_prefix = id_prefix
        self._clock = clock
        self._tests: List[CatalogTest] = []
        self._next_number = 1

    def __len__(self):
        return len(self._tests)

    def seed_defaults(self) -> List[CatalogTest]:
        """Load the standard test menu"""
        seeded = [self.add(definition) for definition in DEFAULT_TESTS]
        logger.info(f"Seeded catalog with {len(seeded)} default tests")
        return seeded

    def list(self) -> List[CatalogTest]:
        return list(self._tests)

    def get_by_id(self, test_id: str) -> Optional[CatalogTest]:
        for test in self._tests:
            if test.id == test_id:
                return test
        return None

    def search(self, term: str) -> List[CatalogTest]:
        """Tests whose name or category contains term"""
        if not term:
            return self.list()
        return [test for test in self._tests if test.matches(term)]

    def add(self, definition: Mapping[str, Any]) -> CatalogTest:
        reject_reserved_fields(definition, _MANAGED_FIELDS, "set")

        now = self._clock()
        test = build_record(CatalogTest, {
            **definition,
            "id": self._next_id(),
            "created_at": now,
            "updated_at": now,
        })
        self._next_number += 1
        self._tests.append(test)

        logger.debug(f"Added test definition {test.id} ({test.name})")
        return test

    def update(self, test_id: str, updates: Mapping[str, Any]) -> Optional[CatalogTest]:
        index = self._index_of(test_id)
        if index is None:
            return None

        reject_reserved_fields(updates, _MANAGED_FIELDS, "update")
        updated = merge_record(self._tests[index], {**updates, "updated_at": self._clock()})
        self._tests[index] = updated

        logger.debug(f"Updated test definition {test_id}: {sorted(updates)}")
        return updated

    def delete(self, test_id: str) -> bool:
        index = self._index_of(test_id)
        if index is None:
            return False

        del self._tests[index]
        logger.debug(f"Deleted test definition {test_id}")
        return True

    def _next_id(self) -> str:
        return f"{self.id_prefix}{self._next_number:03d}"

    def _index_of(self, test_id: str) -> Optional[int]:
        for index, test in enumerate(self._tests):
            if test.id == test_id:
                return index
        return None
