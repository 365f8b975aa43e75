"""
Shared helpers for the in-memory record stores
"""

import logging
from datetime import datetime
from typing import Any, Callable, Generic, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.clock import utc_now
from ..core.exceptions import ValidationException

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic error into a single readable line"""
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item.get("loc", ())) or "record"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def reject_reserved_fields(data: Mapping[str, Any], reserved: Iterable[str], action: str):
    """Refuse caller-supplied values for store-managed fields"""
    supplied = sorted(set(data) & set(reserved))
    if supplied:
        raise ValidationException(
            f"Cannot {action} store-managed field(s): {', '.join(supplied)}",
            "RESERVED_FIELD",
        )


def build_record(model: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Validate raw data into a model, raising ValidationException on failure"""
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        raise ValidationException(format_validation_error(e), "INVALID_RECORD") from e


def merge_record(record: ModelT, updates: Mapping[str, Any]) -> ModelT:
    """Return a validated copy of record with updates applied"""
    merged = record.model_dump()
    merged.update(updates)
    return build_record(type(record), merged)


class SequentialStore(Generic[ModelT]):
    """Records keyed by prefixed sequential ids (``INV001``, ``INV002``, ...).

    Subclasses name the model and the timestamp fields the store stamps on
    add and on update. Ids are never reissued within the store's lifetime.
    """

    model: Type[ModelT]
    stamp_on_add: Tuple[str, ...] = ("updated_at",)
    stamp_on_update: Tuple[str, ...] = ("updated_at",)

    def __init__(self, id_prefix: str, clock: Callable[[], datetime] = utc_now):
        self.id_prefix = id_prefix
        self._clock = clock
        self._records: List[ModelT] = []
        self._next_number = 1

    def __len__(self):
        return len(self._records)

    def list(self) -> List[ModelT]:
        return list(self._records)

    def get_by_id(self, record_id: str) -> Optional[ModelT]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def add(self, data: Mapping[str, Any]) -> ModelT:
        reject_reserved_fields(data, ("id",) + self.stamp_on_add, "set")

        now = self._clock()
        record = build_record(self.model, {
            **data,
            "id": f"{self.id_prefix}{self._next_number:03d}",
            **{field: now for field in self.stamp_on_add},
        })
        self._next_number += 1
        self._records.append(record)

        logger.debug(f"Added {self.model.__name__} {record.id}")
        return record

    def update(self, record_id: str, updates: Mapping[str, Any]) -> Optional[ModelT]:
        index = self._index_of(record_id)
        if index is None:
            return None

        reject_reserved_fields(updates, ("id",) + self.stamp_on_add + self.stamp_on_update,
                               "update")
        now = self._clock()
        updated = merge_record(self._records[index],
                               {**updates, **{field: now for field in self.stamp_on_update}})
        self._records[index] = updated

        logger.debug(f"Updated {self.model.__name__} {record_id}: {sorted(updates)}")
        return updated

    def _index_of(self, record_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None
