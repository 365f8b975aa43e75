# Domain models

from .catalog import CatalogTest, SampleKind
from .patient import Patient
from .sample import Sample, SampleStatus, SamplePriority
from .result import (
    ReferenceRange, PanelParameter, ResultValue, ResultBadge, ReviewStatus
)
from .inventory import (
    InventoryItem, InventoryCategory, StockStatus,
    Equipment, EquipmentStatus, MaintenanceRecord, MaintenanceType
)
from .appointment import Appointment, AppointmentStatus, AppointmentType, Doctor

__all__ = [
    # Models
    "CatalogTest",
    "Patient",
    "Sample",
    "ReferenceRange",
    "PanelParameter",
    "ResultValue",
    "InventoryItem",
    "Equipment",
    "MaintenanceRecord",
    "Appointment",
    "Doctor",

    # Enums
    "SampleKind",
    "SampleStatus",
    "SamplePriority",
    "ResultBadge",
    "ReviewStatus",
    "InventoryCategory",
    "StockStatus",
    "EquipmentStatus",
    "MaintenanceType",
    "AppointmentStatus",
    "AppointmentType"
]
