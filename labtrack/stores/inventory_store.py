"""
In-memory inventory, equipment and maintenance registers
"""

import logging
from datetime import date
from typing import List

from ..models import (
    Equipment, EquipmentStatus, InventoryCategory, InventoryItem,
    MaintenanceRecord, MaintenanceType
)
from .base import SequentialStore

logger = logging.getLogger(__name__)


DEFAULT_INVENTORY = [
    {
        "name": "CBC Reagent Kit",
        "category": InventoryCategory.REAGENT,
        "sku": "REG-CBC-001",
        "current_stock": 25,
        "minimum_stock": 10,
        "unit": "kit",
        "cost_per_unit": 45.50,
        "supplier": "MedSupply Corp",
        "expiry_date": date(2024, 6, 15),
        "batch_number": "BCH240115",
        "location": "Reagent Fridge A1",
    },
    {
        "name": "Blood Collection Tubes",
        "category": InventoryCategory.CONSUMABLE,
        "sku": "CON-BCT-002",
        "current_stock": 5,
        "minimum_stock": 20,
        "unit": "box",
        "cost_per_unit": 12.30,
        "supplier": "LabTech Solutions",
        "location": "Storage Room B2",
    },
    {
        "name": "Glucose Control Solution",
        "category": InventoryCategory.CONTROL,
        "sku": "CTL-GLC-003",
        "current_stock": 0,
        "minimum_stock": 5,
        "unit": "vial",
        "cost_per_unit": 23.75,
        "supplier": "Quality Controls Inc",
        "expiry_date": date(2024, 1, 10),
        "batch_number": "QC240105",
        "location": "Control Storage C1",
    },
    {
        "name": "Latex Gloves",
        "category": InventoryCategory.CONSUMABLE,
        "sku": "CON-GLV-004",
        "current_stock": 150,
        "minimum_stock": 50,
        "unit": "box",
        "cost_per_unit": 8.90,
        "supplier": "Safety First Supplies",
        "location": "Storage Room B1",
    },
]

DEFAULT_EQUIPMENT = [
    {
        "name": "Automated Hematology Analyzer",
        "model": "HemCount Pro 3000",
        "serial_number": "HC3000-2023-001",
        "manufacturer": "MedTech Systems",
        "install_date": date(2023, 6, 15),
        "last_maintenance": date(2024, 1, 1),
        "next_maintenance": date(2024, 4, 1),
        "maintenance_interval_days": 90,
        "status": EquipmentStatus.OPERATIONAL,
        "location": "Hematology Lab - Station 1",
        "notes": "Primary analyzer for CBC tests",
    },
    {
        "name": "Chemistry Analyzer",
        "model": "ChemPro Max 5000",
        "serial_number": "CPM5000-2022-089",
        "manufacturer": "BioAnalytics Corp",
        "install_date": date(2022, 11, 10),
        "last_maintenance": date(2023, 12, 15),
        "next_maintenance": date(2024, 1, 20),
        "maintenance_interval_days": 30,
        "status": EquipmentStatus.MAINTENANCE,
        "location": "Chemistry Lab - Station 2",
        "notes": "Requires calibration service",
    },
    {
        "name": "Microscope - Digital",
        "model": "DigiScope 4K Pro",
        "serial_number": "DS4K-2023-156",
        "manufacturer": "Optics Excellence",
        "install_date": date(2023, 3, 20),
        "last_maintenance": date(2023, 12, 20),
        "next_maintenance": date(2024, 6, 20),
        "maintenance_interval_days": 180,
        "status": EquipmentStatus.OPERATIONAL,
        "location": "Pathology Lab - Bench 3",
        "notes": "Used for manual cell counts and morphology",
    },
    {
        "name": "Centrifuge - High Speed",
        "model": "SpinMax 15000",
        "serial_number": "SM15K-2021-234",
        "manufacturer": "LabEquip Solutions",
        "install_date": date(2021, 8, 5),
        "last_maintenance": date(2023, 11, 30),
        "next_maintenance": date(2024, 1, 18),
        "maintenance_interval_days": 45,
        "status": EquipmentStatus.CALIBRATION,
        "location": "Sample Prep Area",
        "notes": "Annual calibration in progress",
    },
]

# Keyed by position in DEFAULT_EQUIPMENT
DEFAULT_MAINTENANCE = [
    (0, {
        "type": MaintenanceType.PREVENTIVE,
        "description": "Quarterly maintenance and calibration",
        "performed_by": "TechService Inc",
        "performed_at": date(2024, 1, 1),
        "cost": 450.00,
        "next_maintenance_date": date(2024, 4, 1),
        "notes": "All systems functioning normally",
    }),
    (1, {
        "type": MaintenanceType.CORRECTIVE,
        "description": "Reagent line replacement",
        "performed_by": "Internal Tech Team",
        "performed_at": date(2023, 12, 15),
        "cost": 75.00,
        "notes": "Line blockage cleared, system operational",
    }),
]


class InventoryStore(SequentialStore[InventoryItem]):
    """Stocked supplies with sequential ids (``INV001``, ``INV002``, ...)"""

    model = InventoryItem

    def find_by_sku(self, sku: str):
        sku = sku.strip().lower()
        for item in self._records:
            if item.sku.lower() == sku:
                return item
        return None

    def seed_defaults(self) -> List[InventoryItem]:
        seeded = [self.add(item) for item in DEFAULT_INVENTORY]
        logger.info(f"Seeded inventory with {len(seeded)} items")
        return seeded


class EquipmentStore(SequentialStore[Equipment]):
    """Instruments with sequential ids (``EQ001``, ``EQ002``, ...)"""

    model = Equipment

    def find_by_serial(self, serial_number: str):
        serial_number = serial_number.strip().lower()
        for equipment in self._records:
            if equipment.serial_number.lower() == serial_number:
                return equipment
        return None


class MaintenanceLog(SequentialStore[MaintenanceRecord]):
    """Maintenance history across all equipment"""

    model = MaintenanceRecord
    stamp_on_add = ("recorded_at",)
    stamp_on_update = ()

    def for_equipment(self, equipment_id: str) -> List[MaintenanceRecord]:
        """Records for one instrument, most recent visit first"""
        records = [r for r in self._records if r.equipment_id == equipment_id]
        return sorted(records, key=lambda r: r.performed_at, reverse=True)


def seed_equipment(equipment: EquipmentStore, log: MaintenanceLog) -> List[Equipment]:
    """Load the default instruments and their maintenance history"""
    seeded = [equipment.add(item) for item in DEFAULT_EQUIPMENT]
    for position, record in DEFAULT_MAINTENANCE:
        log.add({**record, "equipment_id": seeded[position].id})

    logger.info(f"Seeded {len(seeded)} instruments and {len(DEFAULT_MAINTENANCE)} maintenance records")
    return seeded
