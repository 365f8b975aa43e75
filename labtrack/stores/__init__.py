# In-memory record stores

from .catalog_store import CatalogStore, DEFAULT_TESTS
from .sample_store import SampleStore
from .patient_store import PatientStore
from .inventory_store import (
    InventoryStore, EquipmentStore, MaintenanceLog, seed_equipment,
    DEFAULT_INVENTORY, DEFAULT_EQUIPMENT
)
from .appointment_store import AppointmentStore

__all__ = [
    "CatalogStore",
    "SampleStore",
    "PatientStore",
    "InventoryStore",
    "EquipmentStore",
    "MaintenanceLog",
    "AppointmentStore",
    "seed_equipment",
    "DEFAULT_TESTS",
    "DEFAULT_INVENTORY",
    "DEFAULT_EQUIPMENT"
]
