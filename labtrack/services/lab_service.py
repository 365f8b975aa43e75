"""
Lab Service - the single entry point over the lab stores and services

Replaces a module-level data store singleton: each LabService owns its
stores, so the API, the console and tests can each build an isolated one.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.clock import utc_now
from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    PatientNotFoundException, SampleNotFoundException, CatalogTestInUseException,
    CatalogTestNotFoundException, ValidationException
)
from ..models import (
    Appointment, Patient, Sample, SamplePriority, SampleStatus, CatalogTest, PanelParameter
)
from ..stores import (
    AppointmentStore, CatalogStore, EquipmentStore, InventoryStore, MaintenanceLog,
    PatientStore, SampleStore, seed_equipment
)
from .appointments import AppointmentService
from .inventory import InventoryService
from .panels import PanelRegistry
from .tracking import SampleTracker, filter_samples
from .workflow import ResultEntryWorkflow, SampleWorkflow

logger = logging.getLogger(__name__)

REQUIRED_TEST_FIELDS = ("name", "category", "description")
EDITABLE_SAMPLE_FIELDS = ("patient_name", "priority", "notes")


class LabService:
    """Catalog maintenance, intake, tracking, result workflow, supplies and bookings"""

    def __init__(self, catalog: CatalogStore, patients: PatientStore, samples: SampleStore,
                 panels: PanelRegistry, config: Settings = None,
                 clock: Callable[[], datetime] = utc_now,
                 inventory: Optional[InventoryService] = None,
                 appointments: Optional[AppointmentService] = None):
        self.config = config or default_settings
        self.catalog = catalog
        self.patients = patients
        self.samples = samples
        self.panels = panels
        self.clock = clock

        self.workflow = SampleWorkflow(
            samples,
            enforce_transitions=self.config.workflow_enforce_transitions,
            allow_override=self.config.workflow_allow_manual_override,
            clock=clock,
        )
        self.results = ResultEntryWorkflow(samples, self.workflow, panels, clock=clock)
        self.inventory = inventory or InventoryService(
            InventoryStore(id_prefix=self.config.inventory_id_prefix, clock=clock),
            EquipmentStore(id_prefix=self.config.equipment_id_prefix, clock=clock),
            MaintenanceLog(id_prefix=self.config.maintenance_id_prefix, clock=clock),
            expiry_warning_days=self.config.inventory_expiry_warning_days,
            maintenance_warning_days=self.config.equipment_maintenance_warning_days,
            clock=clock,
        )
        self.appointments = appointments or AppointmentService(
            AppointmentStore(id_prefix=self.config.appointment_id_prefix, clock=clock),
            clock=clock,
        )

    @classmethod
    def create(cls, config: Settings = None, seed: Optional[bool] = None,
               clock: Callable[[], datetime] = utc_now) -> "LabService":
        """Build a service with fresh stores from configuration"""
        config = config or default_settings
        catalog = CatalogStore(id_prefix=config.catalog_id_prefix, clock=clock)
        patients = PatientStore(id_prefix=config.patient_id_prefix, clock=clock)
        samples = SampleStore(
            id_prefix=config.sample_id_prefix,
            id_digits=config.sample_id_digits,
            clock=clock,
        )

        if seed is None:
            seed = config.catalog_seed_defaults
        if seed:
            catalog.seed_defaults()

        service = cls(catalog, patients, samples, PanelRegistry.default(), config=config, clock=clock)
        if config.inventory_seed_defaults:
            service.inventory.items.seed_defaults()
            seed_equipment(service.inventory.equipment, service.inventory.maintenance)

        logger.info("LabService created")
        return service

    # Catalog maintenance

    def list_tests(self, search: str = "", active_only: bool = False) -> List[CatalogTest]:
        tests = self.catalog.search(search)
        if active_only:
            tests = [t for t in tests if t.is_active]
        return tests

    def get_test(self, test_id: str) -> CatalogTest:
        test = self.catalog.get_by_id(test_id)
        if test is None:
            raise CatalogTestNotFoundException(test_id)
        return test

    def add_test(self, definition: Mapping[str, Any]) -> CatalogTest:
        missing = [f for f in REQUIRED_TEST_FIELDS if not str(definition.get(f) or "").strip()]
        if missing:
            raise ValidationException(
                f"Please fill in all required fields: {', '.join(missing)}", "MISSING_FIELDS"
            )

        test = self.catalog.add(definition)
        logger.info(f"Added test {test.id}: {test.name}")
        return test

    def update_test(self, test_id: str, updates: Mapping[str, Any]) -> CatalogTest:
        blank = [f for f in REQUIRED_TEST_FIELDS
                 if f in updates and not str(updates[f] or "").strip()]
        if blank:
            raise ValidationException(
                f"Required fields cannot be blank: {', '.join(blank)}", "MISSING_FIELDS"
            )

        test = self.catalog.update(test_id, updates)
        if test is None:
            raise CatalogTestNotFoundException(test_id)
        return test

    def remove_test(self, test_id: str) -> bool:
        if self.config.catalog_enforce_references:
            referencing = self.samples.references_test(test_id)
            if referencing:
                raise CatalogTestInUseException(test_id, len(referencing))

        removed = self.catalog.delete(test_id)
        if removed:
            logger.info(f"Removed test {test_id}")
        return removed

    def toggle_test_active(self, test_id: str) -> CatalogTest:
        test = self.get_test(test_id)
        return self.catalog.update(test_id, {"is_active": not test.is_active})

    # Patients

    def register_patient(self, patient: Mapping[str, Any]) -> Patient:
        if not str(patient.get("name") or "").strip():
            raise ValidationException("Patient name is required", "MISSING_FIELDS")
        return self.patients.add(patient)

    def get_patient(self, patient_id: str) -> Patient:
        patient = self.patients.get_by_id(patient_id)
        if patient is None:
            raise PatientNotFoundException(patient_id)
        return patient

    def book_appointment(self, request: Mapping[str, Any]) -> Appointment:
        """Book an appointment for a registered patient"""
        patient_id = str(request.get("patient_id") or "").strip()
        if patient_id:
            self.get_patient(patient_id)
        return self.appointments.book({**request, "patient_id": patient_id})

    # Sample intake and tracking

    def register_sample(self, patient_id: str, test_id: str, patient_name: Optional[str] = None,
                        priority: SamplePriority = SamplePriority.NORMAL,
                        notes: Optional[str] = None) -> Sample:
        """Intake a sample for a patient against an active catalog test"""
        patient_id = (patient_id or "").strip()
        if not patient_id:
            raise ValidationException("Patient ID is required", "MISSING_FIELDS")
        if not test_id:
            raise ValidationException("Please select a test", "MISSING_FIELDS")

        if not patient_name or not patient_name.strip():
            known = self.patients.get_by_id(patient_id)
            if known is None:
                raise ValidationException("Patient name is required", "MISSING_FIELDS")
            patient_name = known.name

        test = self.get_test(test_id)
        if not test.is_active:
            raise ValidationException(f"Test {test_id} is not currently offered", "TEST_INACTIVE")

        return self.samples.add({
            "patient_id": patient_id,
            "patient_name": patient_name.strip(),
            "test_definition_id": test.id,
            "priority": priority,
            "notes": notes,
        })

    def get_sample(self, sample_id: str) -> Sample:
        sample = self.samples.get_by_id(sample_id)
        if sample is None:
            raise SampleNotFoundException(sample_id)
        return sample

    def update_sample(self, sample_id: str, updates: Mapping[str, Any]) -> Sample:
        """Edit sample details; status changes are routed through the workflow.

        Only intake details are editable here. Results, review fields and
        lifecycle timestamps change through the result and status workflows.
        """
        updates = dict(updates)
        status = updates.pop("status", None)
        override = bool(updates.pop("override", False))

        locked = sorted(set(updates) - set(EDITABLE_SAMPLE_FIELDS))
        if locked:
            raise ValidationException(
                f"Sample field(s) cannot be edited directly: {', '.join(locked)}",
                "FIELD_NOT_EDITABLE",
            )
        if "patient_name" in updates and not str(updates["patient_name"] or "").strip():
            raise ValidationException("Patient name is required", "MISSING_FIELDS")

        sample = self.get_sample(sample_id)
        if status is not None:
            return self.workflow.transition(sample_id, self._status(status), override=override,
                                            changes=updates)
        if updates:
            sample = self.samples.update(sample_id, updates)
        return sample

    def change_status(self, sample_id: str, status, override: bool = False,
                      notes: Optional[str] = None) -> Sample:
        return self.workflow.transition(sample_id, self._status(status), override=override,
                                        notes=notes)

    def track_samples(self, search: str = "", status=None) -> List[Sample]:
        if status not in (None, "", "all"):
            status = self._status(status)
        return filter_samples(self.samples.list(), self.catalog, search, status)

    def tracker(self) -> SampleTracker:
        return SampleTracker(self.samples, interval=self.config.tracking_refresh_interval)

    # Result entry

    def parameters_for(self, sample_id: str) -> List[PanelParameter]:
        return self.results.parameters_for(sample_id)

    def save_results(self, sample_id: str, values: Mapping[str, Any],
                     comments: Optional[Mapping[str, str]] = None,
                     interpretation: Optional[str] = None) -> Sample:
        return self.results.save_draft(sample_id, values, comments, interpretation)

    def submit_results(self, sample_id: str, values: Optional[Mapping[str, Any]] = None,
                       comments: Optional[Mapping[str, str]] = None,
                       interpretation: Optional[str] = None) -> Sample:
        return self.results.submit_for_review(sample_id, values, comments, interpretation)

    def review_results(self, sample_id: str, reviewer: str, approve: bool,
                       comment: Optional[str] = None) -> Sample:
        if approve:
            return self.results.approve(sample_id, reviewer, comment)
        return self.results.reject(sample_id, reviewer, comment or "")

    def statistics(self) -> Dict[str, int]:
        """Sample counts by status plus record totals"""
        stats = {status.value: 0 for status in SampleStatus}
        for sample in self.samples.list():
            stats[sample.status.value] += 1
        stats["tests"] = len(self.catalog)
        stats["patients"] = len(self.patients)
        stats["samples"] = len(self.samples)
        stats["inventory_items"] = len(self.inventory.items)
        stats["equipment"] = len(self.inventory.equipment)
        stats["appointments"] = len(self.appointments.appointments)
        return stats

    @staticmethod
    def _status(value) -> SampleStatus:
        try:
            return SampleStatus(value)
        except ValueError:
            raise ValidationException(f"Invalid status: {value}", "INVALID_STATUS")
