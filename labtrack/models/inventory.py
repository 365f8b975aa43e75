"""
Inventory and equipment models for the LabTrack laboratory workspace
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.clock import utc_now


class InventoryCategory(str, PyEnum):
    """Kind of stocked supply"""
    REAGENT = "reagent"
    CONSUMABLE = "consumable"
    EQUIPMENT = "equipment"
    CALIBRATOR = "calibrator"
    CONTROL = "control"


class StockStatus(str, PyEnum):
    """Stock level derived from quantity and expiry"""
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    EXPIRED = "expired"


class EquipmentStatus(str, PyEnum):
    """Equipment status enumeration"""
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
    CALIBRATION = "calibration"


class MaintenanceType(str, PyEnum):
    """Kind of maintenance performed"""
    PREVENTIVE = "preventive"
    CORRECTIVE = "corrective"
    CALIBRATION = "calibration"


class InventoryItem(BaseModel):
    """Stocked reagent, consumable or control"""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = Field(..., min_length=1)
    category: InventoryCategory
    sku: str = Field(..., min_length=1)
    current_stock: int = Field(0, ge=0)
    minimum_stock: int = Field(0, ge=0)
    unit: str = Field(..., min_length=1)
    cost_per_unit: float = Field(0.0, ge=0)
    supplier: str = ""
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = None
    location: str = ""
    updated_at: datetime = Field(default_factory=utc_now)

    def __repr__(self):
        return f"<InventoryItem(id='{self.id}', sku='{self.sku}', stock={self.current_stock})>"

    def days_until_expiry(self, today: date) -> Optional[int]:
        """Whole days until expiry; negative once expired, None without an expiry date"""
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days

    def is_expired(self, today: date) -> bool:
        return self.expiry_date is not None and self.expiry_date < today

    def stock_status(self, today: date) -> StockStatus:
        """Expiry wins over quantity; at or below the minimum counts as low"""
        if self.is_expired(today):
            return StockStatus.EXPIRED
        if self.current_stock == 0:
            return StockStatus.OUT_OF_STOCK
        if self.current_stock <= self.minimum_stock:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    def matches(self, term: str) -> bool:
        """Case-insensitive match on name or SKU"""
        term = term.lower()
        return term in self.name.lower() or term in self.sku.lower()


class Equipment(BaseModel):
    """Laboratory instrument with a maintenance schedule"""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    serial_number: str = Field(..., min_length=1)
    manufacturer: str = ""
    install_date: date
    last_maintenance: Optional[date] = None
    next_maintenance: date
    maintenance_interval_days: int = Field(..., gt=0)
    status: EquipmentStatus = EquipmentStatus.OPERATIONAL
    location: str = ""
    notes: Optional[str] = None
    updated_at: datetime = Field(default_factory=utc_now)

    def __repr__(self):
        return f"<Equipment(id='{self.id}', name='{self.name}', status='{self.status.value}')>"

    @property
    def is_operational(self) -> bool:
        return self.status == EquipmentStatus.OPERATIONAL

    def days_until_maintenance(self, today: date) -> int:
        return (self.next_maintenance - today).days

    def needs_maintenance(self, today: date, warning_days: int = 7) -> bool:
        """Due within the warning window, or already overdue"""
        return self.days_until_maintenance(today) <= warning_days

    def matches(self, term: str) -> bool:
        """Case-insensitive match on name, model or serial number"""
        term = term.lower()
        return (term in self.name.lower() or term in self.model.lower()
                or term in self.serial_number.lower())


class MaintenanceRecord(BaseModel):
    """One maintenance visit on a piece of equipment"""

    model_config = ConfigDict(extra="forbid")

    id: str
    equipment_id: str
    type: MaintenanceType
    description: str = Field(..., min_length=1)
    performed_by: str = Field(..., min_length=1)
    performed_at: date
    cost: Optional[float] = Field(None, ge=0)
    next_maintenance_date: Optional[date] = None
    notes: Optional[str] = None
    recorded_at: datetime = Field(default_factory=utc_now)
