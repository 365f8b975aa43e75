"""
Pydantic schemas for the LabTrack REST API
Defines request and response models for REST API endpoints
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import (
    AppointmentType, Equipment, EquipmentStatus, InventoryCategory, InventoryItem,
    MaintenanceType, SampleKind, SamplePriority, SampleStatus, StockStatus
)


class BaseSchema(BaseModel):
    """Base schema with common configuration"""

    model_config = ConfigDict(from_attributes=True, extra="forbid")


# Test catalog schemas
class CatalogTestCreate(BaseSchema):
    """Schema for adding a catalog test"""

    name: str = Field(..., min_length=1, max_length=200, description="Test name")
    category: str = Field(..., min_length=1, max_length=100, description="Test category")
    description: str = Field(..., min_length=1, max_length=1000, description="Test description")
    duration_minutes: int = Field(..., gt=0, description="Turnaround in minutes")
    price: float = Field(..., ge=0, description="Test price")
    requires_special_prep: bool = Field(False, description="Patient preparation needed")
    sample_kind: SampleKind = Field(SampleKind.BLOOD, description="Specimen kind")


class CatalogTestUpdate(BaseSchema):
    """Schema for editing a catalog test"""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    duration_minutes: Optional[int] = Field(None, gt=0)
    price: Optional[float] = Field(None, ge=0)
    requires_special_prep: Optional[bool] = None
    sample_kind: Optional[SampleKind] = None
    is_active: Optional[bool] = None


# Patient schemas
class PatientCreate(BaseSchema):
    """Schema for registering a patient"""
    name: str = Field(..., min_length=1, max_length=200, description="Patient name")
    phone: Optional[str] = Field(None, max_length=20, description="Patient phone number")
    email: Optional[str] = Field(None, max_length=255, description="Patient email address")
    age: Optional[int] = Field(None, ge=0, le=150, description="Patient age")
    gender: Optional[str] = Field(None, max_length=20, description="Patient gender")
    address: Optional[str] = Field(None, max_length=500, description="Patient address")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v and '@' not in v:
            raise ValueError('Invalid email address')
        return v


# Sample schemas
class SampleCreate(BaseSchema):
    """Schema for sample intake"""
    patient_id: str = Field(..., min_length=1, description="Patient identifier")
    patient_name: Optional[str] = Field(None, max_length=200, description="Patient name")
    test_definition_id: str = Field(..., min_length=1, description="Catalog test id")
    priority: SamplePriority = Field(SamplePriority.NORMAL, description="Sample priority")
    notes: Optional[str] = Field(None, max_length=1000, description="Intake notes")


class SampleUpdate(BaseSchema):
    """Schema for editing sample details"""
    patient_name: Optional[str] = Field(None, min_length=1, max_length=200)
    priority: Optional[SamplePriority] = None
    notes: Optional[str] = Field(None, max_length=1000)
    status: Optional[SampleStatus] = None
    override: bool = False


class StatusUpdateRequest(BaseSchema):
    """Schema for a status change from the tracking view"""
    status: SampleStatus = Field(..., description="Target status")
    override: bool = Field(False, description="Force an out-of-order transition")
    notes: Optional[str] = Field(None, max_length=1000)


# Result schemas
class ResultEntryRequest(BaseSchema):
    """Schema for entering parameter values"""
    values: Dict[str, Any] = Field(default_factory=dict, description="Raw values keyed by parameter id")
    comments: Dict[str, str] = Field(default_factory=dict, description="Comments keyed by parameter id")
    interpretation: Optional[str] = Field(None, max_length=5000, description="Clinical interpretation")


class ReviewRequest(BaseSchema):
    """Schema for approving or rejecting submitted results"""
    reviewer: str = Field(..., min_length=1, max_length=200)
    approve: bool
    comment: Optional[str] = Field(None, max_length=2000)


class PanelParameterResponse(BaseSchema):
    """Schema for a panel parameter"""

    id: str
    name: str
    unit: str
    normal_min: float
    normal_max: float
    critical_min: Optional[float] = None
    critical_max: Optional[float] = None


# Inventory schemas
class InventoryItemCreate(BaseSchema):
    """Schema for stocking a new supply"""
    name: str = Field(..., min_length=1, max_length=200, description="Item name")
    category: InventoryCategory = Field(..., description="Supply category")
    sku: str = Field(..., min_length=1, max_length=50, description="Stock keeping unit")
    current_stock: int = Field(0, ge=0, description="Units on hand")
    minimum_stock: int = Field(0, ge=0, description="Reorder level")
    unit: str = Field(..., min_length=1, max_length=50, description="Unit of issue")
    cost_per_unit: float = Field(0.0, ge=0)
    supplier: str = Field("", max_length=200)
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = Field(None, max_length=50)
    location: str = Field("", max_length=200)


class InventoryItemUpdate(BaseSchema):
    """Schema for editing a supply; stock moves go through adjustments"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[InventoryCategory] = None
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    minimum_stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, max_length=200)
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)


class StockAdjustmentRequest(BaseSchema):
    """Schema for receiving (positive) or consuming (negative) stock"""
    delta: int = Field(..., description="Change in units on hand")
    reason: Optional[str] = Field(None, max_length=500)


class InventoryItemResponse(InventoryItem):
    """Inventory item with derived stock status"""
    status: StockStatus
    days_until_expiry: Optional[int] = None
    expiry_label: Optional[str] = None


# Equipment schemas
class EquipmentCreate(BaseSchema):
    """Schema for registering an instrument"""
    name: str = Field(..., min_length=1, max_length=200)
    model: str = Field(..., min_length=1, max_length=200)
    serial_number: str = Field(..., min_length=1, max_length=100)
    manufacturer: str = Field("", max_length=200)
    install_date: date
    last_maintenance: Optional[date] = None
    next_maintenance: Optional[date] = Field(None, description="Defaults to last service + interval")
    maintenance_interval_days: int = Field(..., gt=0, description="Days between services")
    status: EquipmentStatus = EquipmentStatus.OPERATIONAL
    location: str = Field("", max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)


class EquipmentStatusRequest(BaseSchema):
    status: EquipmentStatus
    notes: Optional[str] = Field(None, max_length=1000)


class MaintenanceRecordCreate(BaseSchema):
    """Schema for logging a maintenance visit"""
    type: MaintenanceType
    description: str = Field(..., min_length=1, max_length=1000)
    performed_by: str = Field(..., min_length=1, max_length=200)
    performed_at: date
    cost: Optional[float] = Field(None, ge=0)
    next_maintenance_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class EquipmentResponse(Equipment):
    """Equipment with derived maintenance schedule"""
    days_until_maintenance: int
    maintenance_label: str
    needs_maintenance: bool


# Appointment schemas
class AppointmentCreate(BaseSchema):
    """Schema for requesting an appointment"""
    patient_id: str = Field(..., min_length=1)
    doctor_id: str = Field(..., min_length=1)
    scheduled_for: date = Field(..., description="Appointment date")
    time_slot: str = Field(..., description="Slot start, HH:MM")
    type: AppointmentType
    reason: str = Field(..., min_length=1, max_length=500, description="Reason for visit")
    notes: Optional[str] = Field(None, max_length=1000)


class AppointmentCancelRequest(BaseSchema):
    reason: Optional[str] = Field(None, max_length=500)


# Error and health schemas
class ErrorResponse(BaseSchema):
    """Schema for error responses"""
    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")


class HealthCheckResponse(BaseSchema):
    """Schema for health check response"""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")
    statistics: Dict[str, int] = Field(default_factory=dict, description="Record counts")


class ViewResponse(BaseSchema):
    """Schema for a rendered role view"""
    role: str
    view: str
    data: Dict[str, Any]


class DeleteResponse(BaseSchema):
    deleted: bool
    id: str


class ViewListResponse(BaseSchema):
    role: str
    views: List[str]
