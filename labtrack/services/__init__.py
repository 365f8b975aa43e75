# Workflow, classification and view services

from .lab_service import LabService
from .panels import PanelRegistry
from .workflow import SampleWorkflow, ResultEntryWorkflow, ALLOWED_TRANSITIONS
from .tracking import SampleTracker, filter_samples, format_elapsed
from .inventory import InventoryService, expiry_label, maintenance_label
from .appointments import AppointmentService, DEFAULT_DOCTORS, TIME_SLOTS
from .dashboards import Role, View, render_view, resolve_view, views_for

__all__ = [
    "LabService",
    "PanelRegistry",
    "SampleWorkflow",
    "ResultEntryWorkflow",
    "ALLOWED_TRANSITIONS",
    "SampleTracker",
    "filter_samples",
    "format_elapsed",
    "InventoryService",
    "expiry_label",
    "maintenance_label",
    "AppointmentService",
    "DEFAULT_DOCTORS",
    "TIME_SLOTS",
    "Role",
    "View",
    "render_view",
    "resolve_view",
    "views_for"
]
