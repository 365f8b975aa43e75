"""
Role-based views over the lab stores

Each (role, view) pair maps to a handler that turns the current store
contents into a plain dictionary. The console and the REST API both render
from these dictionaries.
"""

import logging
from collections import Counter, defaultdict
from enum import Enum as PyEnum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.exceptions import UnknownViewException, ValidationException
from ..models import AppointmentType, ReviewStatus, Sample, SamplePriority, SampleStatus
from .classification import summarize
from .lab_service import LabService
from .tracking import format_elapsed

logger = logging.getLogger(__name__)


class Role(str, PyEnum):
    """Workspace user roles"""
    LAB_TECHNICIAN = "lab_technician"
    DOCTOR = "doctor"
    PATIENT = "patient"
    RESEARCHER = "researcher"


class View(str, PyEnum):
    """Screens available to one or more roles"""
    DASHBOARD = "dashboard"
    TEST_CATALOG = "test_catalog"
    SAMPLE_TRACKING = "sample_tracking"
    RESULT_ENTRY = "result_entry"
    REVIEW_RESULTS = "review_results"
    VIEW_REPORTS = "view_reports"
    STUDY_DATA = "study_data"
    INVENTORY = "inventory"
    EQUIPMENT = "equipment"
    BOOK_APPOINTMENT = "book_appointment"


ViewHandler = Callable[[LabService, Dict[str, Any]], Dict[str, Any]]


def _sample_row(service: LabService, sample: Sample) -> Dict[str, Any]:
    test = service.catalog.get_by_id(sample.test_definition_id)
    return {
        "id": sample.id,
        "patient_id": sample.patient_id,
        "patient_name": sample.patient_name,
        "test": test.name if test else sample.test_definition_id,
        "status": sample.status.value,
        "priority": sample.priority.value,
        "received": format_elapsed(sample.received_at, service.clock()),
    }


def _report(service: LabService, sample: Sample) -> Dict[str, Any]:
    row = _sample_row(service, sample)
    row.update({
        "results": [r.to_dict() for r in sample.results or []],
        "interpretation": sample.interpretation,
        "reviewed_by": sample.reviewed_by,
        "reviewed_at": sample.reviewed_at.isoformat() if sample.reviewed_at else None,
    })
    return row


def _require_param(params: Dict[str, Any], name: str) -> str:
    value = params.get(name)
    if not value:
        raise ValidationException(f"'{name}' is required for this view", "MISSING_PARAMETER")
    return value


def lab_technician_dashboard(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    samples = service.samples.list()
    today = service.clock().date()
    limit = service.config.dashboard_recent_limit

    recent = sorted(samples, key=lambda s: s.received_at, reverse=True)[:limit]
    return {
        "stats": {
            "pending": sum(1 for s in samples if s.status == SampleStatus.RECEIVED),
            "in_progress": sum(1 for s in samples if s.status == SampleStatus.PROCESSING),
            "completed_today": sum(
                1 for s in samples
                if s.completed_at is not None and s.completed_at.date() == today
            ),
            "urgent": sum(
                1 for s in samples
                if s.priority == SamplePriority.URGENT
                and s.status in (SampleStatus.RECEIVED, SampleStatus.PROCESSING)
            ),
        },
        "recent_samples": [_sample_row(service, s) for s in recent],
        "quick_actions": [view.value for view in views_for(Role.LAB_TECHNICIAN)
                          if view != View.DASHBOARD],
    }


def catalog_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    tests = service.list_tests(params.get("search", ""))
    return {
        "count": len(tests),
        "tests": [t.model_dump(mode="json") for t in tests],
    }


def sample_tracking_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    samples = service.track_samples(params.get("search", ""), params.get("status"))
    return {
        "count": len(samples),
        "samples": [_sample_row(service, s) for s in samples],
    }


def result_entry_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    sample = service.get_sample(_require_param(params, "sample_id"))
    parameters = service.parameters_for(sample.id)
    summary = summarize(sample.results or [])

    rows = []
    for parameter in parameters:
        result = sample.result_for(parameter.id)
        rows.append({
            "id": parameter.id,
            "name": parameter.name,
            "unit": parameter.unit,
            "normal_range": str(parameter.normal_range),
            "critical_range": str(parameter.critical_range) if parameter.critical_range else None,
            "value": result.value if result else None,
            "badge": result.badge.value if result else None,
            "comment": result.comment if result else None,
        })

    return {
        "sample": _sample_row(service, sample),
        "parameters": rows,
        "summary": {
            "critical": summary.critical,
            "abnormal": summary.abnormal,
            "normal": summary.normal,
        },
        "interpretation": sample.interpretation,
        "review_status": sample.review_status.value if sample.review_status else None,
    }


def inventory_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    inventory = service.inventory
    items = inventory.list_items(params.get("search", ""), params.get("category"))
    return {
        "stats": inventory.inventory_stats(),
        "count": len(items),
        "items": [inventory.item_row(i) for i in items],
    }


def equipment_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    inventory = service.inventory
    equipment = inventory.list_equipment(params.get("search", ""), params.get("status"))
    return {
        "stats": inventory.equipment_stats(),
        "count": len(equipment),
        "equipment": [inventory.equipment_row(e) for e in equipment],
        "recent_maintenance": [
            r.model_dump(mode="json")
            for r in sorted(inventory.maintenance.list(), key=lambda r: r.performed_at,
                            reverse=True)[:service.config.dashboard_recent_limit]
        ],
    }


def doctor_dashboard(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    samples = service.samples.list()
    awaiting = [s for s in samples if s.review_status == ReviewStatus.PENDING_REVIEW]
    return {
        "stats": {
            "awaiting_review": len(awaiting),
            "critical_results": sum(1 for s in awaiting if s.has_critical_results),
            "approved": sum(1 for s in samples if s.review_status == ReviewStatus.APPROVED),
            "rejected": sum(1 for s in samples if s.review_status == ReviewStatus.REJECTED),
        },
        "critical_samples": [_sample_row(service, s) for s in awaiting if s.has_critical_results],
    }


def review_results_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    priority = params.get("priority")
    pending = [s for s in service.samples.list()
               if s.review_status == ReviewStatus.PENDING_REVIEW]
    if priority and priority != "all":
        pending = [s for s in pending if s.priority.value == priority]

    # Critical first, then abnormal, then by priority
    rank = {SamplePriority.URGENT: 0, SamplePriority.HIGH: 1, SamplePriority.NORMAL: 2}
    pending.sort(key=lambda s: (not s.has_critical_results, not s.has_abnormal_results,
                                rank[s.priority]))
    return {
        "count": len(pending),
        "results": [_report(service, s) for s in pending],
    }


def patient_dashboard(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    patient_id = _require_param(params, "patient_id")
    samples = service.samples.filter(patient_id=patient_id)
    return {
        "patient_id": patient_id,
        "stats": {
            "total_tests": len(samples),
            "in_progress": sum(1 for s in samples if s.status != SampleStatus.COMPLETED
                               and s.status != SampleStatus.ARCHIVED),
            "reports_ready": sum(1 for s in samples if s.review_status == ReviewStatus.APPROVED),
        },
        "samples": [_sample_row(service, s) for s in samples],
    }


def patient_reports_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    patient_id = _require_param(params, "patient_id")
    approved = [s for s in service.samples.filter(patient_id=patient_id)
                if s.review_status == ReviewStatus.APPROVED]
    return {
        "patient_id": patient_id,
        "reports": [_report(service, s) for s in approved],
    }


def book_appointment_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    patient_id = _require_param(params, "patient_id")
    booking = service.appointments
    return {
        "patient_id": patient_id,
        "doctors": [d.model_dump() for d in booking.available_doctors()],
        "time_slots": list(booking.time_slots),
        "appointment_types": [t.value for t in AppointmentType],
        "earliest_date": service.clock().date().isoformat(),
        "appointments": [a.model_dump(mode="json") for a in booking.list_for_patient(patient_id)],
    }


def researcher_dashboard(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    samples = service.samples.list()
    by_category: Counter = Counter()
    by_test: Counter = Counter()
    for sample in samples:
        test = service.catalog.get_by_id(sample.test_definition_id)
        by_category[test.category if test else "Unknown"] += 1
        by_test[test.name if test else sample.test_definition_id] += 1

    return {
        "total_samples": len(samples),
        "samples_by_category": dict(by_category),
        "samples_by_test": dict(by_test),
    }


def study_data_view(service: LabService, params: Dict[str, Any]) -> Dict[str, Any]:
    counts: Dict[str, Dict[str, int]] = defaultdict(lambda: {"total": 0, "abnormal": 0, "critical": 0})
    for sample in service.samples.list():
        for result in sample.results or []:
            entry = counts[result.parameter_id]
            entry["total"] += 1
            entry["abnormal"] += int(result.is_abnormal)
            entry["critical"] += int(result.is_critical)

    parameters = {}
    for parameter_id, entry in sorted(counts.items()):
        parameters[parameter_id] = {
            **entry,
            "abnormal_rate": round(entry["abnormal"] / entry["total"], 4),
        }
    return {"parameters": parameters}


VIEW_HANDLERS: Dict[Tuple[Role, View], ViewHandler] = {
    (Role.LAB_TECHNICIAN, View.DASHBOARD): lab_technician_dashboard,
    (Role.LAB_TECHNICIAN, View.TEST_CATALOG): catalog_view,
    (Role.LAB_TECHNICIAN, View.SAMPLE_TRACKING): sample_tracking_view,
    (Role.LAB_TECHNICIAN, View.RESULT_ENTRY): result_entry_view,
    (Role.LAB_TECHNICIAN, View.INVENTORY): inventory_view,
    (Role.LAB_TECHNICIAN, View.EQUIPMENT): equipment_view,
    (Role.DOCTOR, View.DASHBOARD): doctor_dashboard,
    (Role.DOCTOR, View.REVIEW_RESULTS): review_results_view,
    (Role.DOCTOR, View.TEST_CATALOG): catalog_view,
    (Role.PATIENT, View.DASHBOARD): patient_dashboard,
    (Role.PATIENT, View.VIEW_REPORTS): patient_reports_view,
    (Role.PATIENT, View.BOOK_APPOINTMENT): book_appointment_view,
    (Role.RESEARCHER, View.DASHBOARD): researcher_dashboard,
    (Role.RESEARCHER, View.STUDY_DATA): study_data_view,
}


def views_for(role: Role) -> List[View]:
    """Views registered for a role, in registration order"""
    return [view for (r, view) in VIEW_HANDLERS if r == Role(role)]


def resolve_view(role, view) -> ViewHandler:
    try:
        key = (Role(role), View(view))
    except ValueError:
        raise UnknownViewException(f"Unknown role or view: {role}/{view}", "UNKNOWN_VIEW")

    handler = VIEW_HANDLERS.get(key)
    if handler is None:
        raise UnknownViewException(f"View '{key[1].value}' is not available to {key[0].value}",
                                   "UNKNOWN_VIEW")
    return handler


def render_view(service: LabService, role, view, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    handler = resolve_view(role, view)
    logger.debug(f"Rendering {role}/{view}")
    return handler(service, dict(params or {}))
