"""
Inventory and equipment service

Stock status, expiry and maintenance-due figures are derived from the
stored records against the service clock's current date; nothing derived
is persisted.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.clock import utc_now
from ..core.exceptions import (
    EquipmentNotFoundException, InventoryItemNotFoundException, ValidationException
)
from ..models import (
    Equipment, EquipmentStatus, InventoryCategory, InventoryItem,
    MaintenanceRecord, StockStatus
)
from ..stores import EquipmentStore, InventoryStore, MaintenanceLog

logger = logging.getLogger(__name__)

REQUIRED_ITEM_FIELDS = ("name", "sku", "unit")
REQUIRED_EQUIPMENT_FIELDS = ("name", "model", "serial_number")

# Statuses a completed maintenance visit returns to service
SERVICED_STATUSES = (EquipmentStatus.MAINTENANCE, EquipmentStatus.CALIBRATION)


def expiry_label(days: Optional[int]) -> Optional[str]:
    if days is None:
        return None
    if days < 0:
        return f"Expired {abs(days)} days ago"
    if days == 0:
        return "Expires today"
    return f"{days} days remaining"


def maintenance_label(days: int) -> str:
    if days < 0:
        return f"Overdue by {abs(days)} days"
    if days == 0:
        return "Due today"
    return f"{days} days"


def _missing(data: Mapping[str, Any], fields) -> List[str]:
    return [f for f in fields if not str(data.get(f) or "").strip()]


class InventoryService:
    """Supply stock levels, instrument status and maintenance history"""

    def __init__(self, items: InventoryStore, equipment: EquipmentStore,
                 maintenance: MaintenanceLog, expiry_warning_days: int = 7,
                 maintenance_warning_days: int = 7,
                 clock: Callable[[], datetime] = utc_now):
        self.items = items
        self.equipment = equipment
        self.maintenance = maintenance
        self.expiry_warning_days = expiry_warning_days
        self.maintenance_warning_days = maintenance_warning_days
        self._clock = clock

    def today(self) -> date:
        return self._clock().date()

    # Supplies

    def get_item(self, item_id: str) -> InventoryItem:
        item = self.items.get_by_id(item_id)
        if item is None:
            raise InventoryItemNotFoundException(item_id)
        return item

    def list_items(self, search: str = "", category=None) -> List[InventoryItem]:
        """Items matching name or SKU; category 'all' or None keeps every category"""
        items = self.items.list()
        if search:
            items = [i for i in items if i.matches(search)]
        if category not in (None, "", "all"):
            category = self._enum(InventoryCategory, category, "INVALID_CATEGORY")
            items = [i for i in items if i.category == category]
        return items

    def item_row(self, item: InventoryItem) -> Dict[str, Any]:
        today = self.today()
        days = item.days_until_expiry(today)
        return {
            **item.model_dump(mode="json"),
            "status": item.stock_status(today).value,
            "days_until_expiry": days,
            "expiry_label": expiry_label(days),
        }

    def add_item(self, data: Mapping[str, Any]) -> InventoryItem:
        missing = _missing(data, REQUIRED_ITEM_FIELDS)
        if missing:
            raise ValidationException(
                f"Please fill in all required fields: {', '.join(missing)}", "MISSING_FIELDS"
            )
        if self.items.find_by_sku(data["sku"]) is not None:
            raise ValidationException(f"SKU {data['sku']} is already stocked", "DUPLICATE_SKU")

        item = self.items.add(data)
        logger.info(f"Added inventory item {item.id}: {item.name}")
        return item

    def update_item(self, item_id: str, updates: Mapping[str, Any]) -> InventoryItem:
        self.get_item(item_id)
        blank = [f for f in REQUIRED_ITEM_FIELDS
                 if f in updates and not str(updates[f] or "").strip()]
        if blank:
            raise ValidationException(
                f"Required fields cannot be blank: {', '.join(blank)}", "MISSING_FIELDS"
            )
        if "sku" in updates:
            holder = self.items.find_by_sku(updates["sku"])
            if holder is not None and holder.id != item_id:
                raise ValidationException(f"SKU {updates['sku']} is already stocked",
                                          "DUPLICATE_SKU")
        return self.items.update(item_id, updates)

    def adjust_stock(self, item_id: str, delta: int, reason: Optional[str] = None) -> InventoryItem:
        """Receive (positive) or consume (negative) stock"""
        item = self.get_item(item_id)
        if delta == 0:
            return item

        new_stock = item.current_stock + delta
        if new_stock < 0:
            raise ValidationException(
                f"Cannot remove {-delta} {item.unit} of {item.name}: "
                f"only {item.current_stock} in stock",
                "INSUFFICIENT_STOCK",
            )

        updated = self.items.update(item_id, {"current_stock": new_stock})
        logger.info(f"Stock for {item_id} {item.current_stock} -> {new_stock}"
                    + (f" ({reason})" if reason else ""))
        if updated.stock_status(self.today()) in (StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK):
            logger.warning(f"{updated.name} is at {new_stock} {updated.unit} "
                           f"(minimum {updated.minimum_stock})")
        return updated

    def inventory_stats(self) -> Dict[str, int]:
        today = self.today()
        items = self.items.list()
        statuses = [i.stock_status(today) for i in items]
        expiring = 0
        for item in items:
            days = item.days_until_expiry(today)
            if days is not None and 0 <= days <= self.expiry_warning_days:
                expiring += 1

        return {
            "total_items": len(items),
            "low_stock": statuses.count(StockStatus.LOW_STOCK),
            "out_of_stock": statuses.count(StockStatus.OUT_OF_STOCK),
            "expired": statuses.count(StockStatus.EXPIRED),
            "expiring_soon": expiring,
        }

    # Equipment

    def get_equipment(self, equipment_id: str) -> Equipment:
        equipment = self.equipment.get_by_id(equipment_id)
        if equipment is None:
            raise EquipmentNotFoundException(equipment_id)
        return equipment

    def list_equipment(self, search: str = "", status=None) -> List[Equipment]:
        """Equipment matching name, model or serial; status 'all' or None keeps every status"""
        equipment = self.equipment.list()
        if search:
            equipment = [e for e in equipment if e.matches(search)]
        if status not in (None, "", "all"):
            status = self._enum(EquipmentStatus, status, "INVALID_STATUS")
            equipment = [e for e in equipment if e.status == status]
        return equipment

    def equipment_row(self, equipment: Equipment) -> Dict[str, Any]:
        days = equipment.days_until_maintenance(self.today())
        return {
            **equipment.model_dump(mode="json"),
            "days_until_maintenance": days,
            "maintenance_label": maintenance_label(days),
            "needs_maintenance": days <= self.maintenance_warning_days,
        }

    def add_equipment(self, data: Mapping[str, Any]) -> Equipment:
        """Register an instrument; the first service date defaults to install + interval"""
        missing = _missing(data, REQUIRED_EQUIPMENT_FIELDS)
        if missing:
            raise ValidationException(
                f"Please fill in all required fields: {', '.join(missing)}", "MISSING_FIELDS"
            )
        if self.equipment.find_by_serial(data["serial_number"]) is not None:
            raise ValidationException(
                f"Serial number {data['serial_number']} is already registered", "DUPLICATE_SERIAL"
            )

        data = dict(data)
        if not data.get("next_maintenance"):
            data["next_maintenance"] = self._next_due(data)

        equipment = self.equipment.add(data)
        logger.info(f"Registered equipment {equipment.id}: {equipment.name}")
        return equipment

    def set_equipment_status(self, equipment_id: str, status,
                             notes: Optional[str] = None) -> Equipment:
        current = self.get_equipment(equipment_id)
        status = self._enum(EquipmentStatus, status, "INVALID_STATUS")

        updates: Dict[str, Any] = {"status": status}
        if notes is not None:
            updates["notes"] = notes
        updated = self.equipment.update(equipment_id, updates)
        logger.info(f"Equipment {equipment_id} {current.status.value} -> {status.value}")
        return updated

    def record_maintenance(self, equipment_id: str, data: Mapping[str, Any]) -> MaintenanceRecord:
        """Log a maintenance visit and reschedule the instrument.

        The next due date is the one given on the record, otherwise the visit
        date plus the instrument's interval. Equipment that was down for
        maintenance or calibration goes back to operational. A visit older
        than the last recorded one only joins the history.
        """
        equipment = self.get_equipment(equipment_id)
        record = self.maintenance.add({**data, "equipment_id": equipment_id})

        next_due = record.next_maintenance_date or (
            record.performed_at + timedelta(days=equipment.maintenance_interval_days)
        )
        if record.next_maintenance_date is None:
            record = self.maintenance.update(record.id, {"next_maintenance_date": next_due})

        if equipment.last_maintenance is not None and record.performed_at < equipment.last_maintenance:
            logger.info(f"Recorded backdated maintenance {record.id} on {equipment_id}")
            return record

        updates: Dict[str, Any] = {
            "last_maintenance": record.performed_at,
            "next_maintenance": next_due,
        }
        if equipment.status in SERVICED_STATUSES:
            updates["status"] = EquipmentStatus.OPERATIONAL
        self.equipment.update(equipment_id, updates)

        logger.info(f"Recorded {record.type.value} maintenance {record.id} on {equipment_id}; "
                    f"next due {next_due.isoformat()}")
        return record

    def maintenance_history(self, equipment_id: str) -> List[MaintenanceRecord]:
        self.get_equipment(equipment_id)
        return self.maintenance.for_equipment(equipment_id)

    def equipment_stats(self) -> Dict[str, int]:
        today = self.today()
        equipment = self.equipment.list()
        return {
            "total_equipment": len(equipment),
            "operational": sum(1 for e in equipment if e.is_operational),
            "needs_maintenance": sum(
                1 for e in equipment if e.needs_maintenance(today, self.maintenance_warning_days)
            ),
            "out_of_service": sum(1 for e in equipment
                                  if e.status == EquipmentStatus.OUT_OF_SERVICE),
        }

    @staticmethod
    def _next_due(data: Mapping[str, Any]):
        base = data.get("last_maintenance") or data.get("install_date")
        interval = data.get("maintenance_interval_days")
        if not base or not interval:
            raise ValidationException(
                "next_maintenance is required when install_date or "
                "maintenance_interval_days is missing",
                "MISSING_FIELDS",
            )
        try:
            if isinstance(base, str):
                base = date.fromisoformat(base)
            return base + timedelta(days=int(interval))
        except (TypeError, ValueError):
            raise ValidationException(
                f"Cannot schedule maintenance from {base!r} every {interval!r} days",
                "INVALID_RECORD",
            )

    @staticmethod
    def _enum(enum_type, value, error_code: str):
        try:
            return enum_type(value)
        except ValueError:
            raise ValidationException(f"Invalid {enum_type.__name__}: {value}", error_code)
