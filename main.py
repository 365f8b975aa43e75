#!/usr/bin/env python3
"""
LabTrack Laboratory Workspace - Main Entry Point
Interactive console over the test catalog, sample tracking and result entry.
Run with "serve" to start the REST API instead.
"""

import asyncio
import logging
import sys

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from labtrack.core.config import settings
from labtrack.core.exceptions import LabTrackException
from labtrack.models import AppointmentType, ResultBadge, SamplePriority, SampleStatus, StockStatus
from labtrack.services import LabService, Role, render_view, views_for
from labtrack.services.tracking import format_elapsed

logger = logging.getLogger(__name__)
console = Console()

STATUS_STYLES = {
    SampleStatus.RECEIVED: "blue",
    SampleStatus.PROCESSING: "yellow",
    SampleStatus.COMPLETED: "green",
    SampleStatus.ARCHIVED: "dim",
}

BADGE_STYLES = {
    ResultBadge.CRITICAL.value: "bold red",
    ResultBadge.ABNORMAL.value: "yellow",
    ResultBadge.NORMAL.value: "green",
}

STOCK_STYLES = {
    StockStatus.IN_STOCK.value: "green",
    StockStatus.LOW_STOCK.value: "yellow",
    StockStatus.OUT_OF_STOCK.value: "red",
    StockStatus.EXPIRED.value: "bold red",
}


def setup_logging():
    """Configure root logging from settings"""
    handlers = [logging.StreamHandler()]
    if settings.log_to_file:
        settings.create_log_directory()
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=settings.log_format,
        handlers=handlers
    )


def display_welcome():
    """Display welcome message and system information"""

    welcome_text = Text()
    welcome_text.append("🧪 LabTrack Laboratory Workspace\n", style="bold blue")
    welcome_text.append(f"Version: {settings.app_version}\n", style="green")
    welcome_text.append(f"Environment: {settings.environment}\n", style="yellow")
    welcome_text.append(
        f"Status transitions: {'enforced' if settings.workflow_enforce_transitions else 'unrestricted'}\n",
        style="cyan"
    )

    panel = Panel(
        welcome_text,
        title="[bold]LabTrack Status[/bold]",
        border_style="blue"
    )

    console.print(panel)


def display_system_status(service: LabService):
    """Display record counts"""
    console.print("\n[bold blue]System Status:[/bold blue]")

    stats = service.statistics()
    table = Table(title="Workspace Statistics")
    table.add_column("Entity", style="cyan", no_wrap=True)
    table.add_column("Count", style="magenta")

    table.add_row("Catalog tests", str(stats["tests"]))
    table.add_row("Patients", str(stats["patients"]))
    table.add_row("Samples", str(stats["samples"]))
    for status in SampleStatus:
        table.add_row(f"  {status.value.title()}", str(stats[status.value]))
    table.add_row("Inventory items", str(stats["inventory_items"]))
    table.add_row("Equipment", str(stats["equipment"]))
    table.add_row("Appointments", str(stats["appointments"]))

    console.print(table)


def display_catalog(service: LabService, search: str = ""):
    """Display catalog tests"""
    tests = service.list_tests(search)

    table = Table(title=f"Test Catalog ({len(tests)} tests found)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Category", style="green")
    table.add_column("Duration", style="yellow")
    table.add_column("Price", style="magenta", justify="right")
    table.add_column("Sample", style="white")
    table.add_column("Active")

    for test in tests:
        table.add_row(
            test.id,
            test.name,
            test.category,
            test.duration_label,
            f"{test.price:,.2f}",
            test.sample_kind.value,
            "✅" if test.is_active else "⏸"
        )

    console.print(table)


def display_inventory(service: LabService):
    """Display supplies with stock status and expiry"""
    inventory = service.inventory
    search = input("Search (name or SKU, blank for all): ").strip()
    rows = [inventory.item_row(i) for i in inventory.list_items(search)]

    table = Table(title=f"Inventory ({len(rows)} items)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("SKU", style="dim")
    table.add_column("Stock", justify="right")
    table.add_column("Min", justify="right", style="dim")
    table.add_column("Status")
    table.add_column("Expiry", style="yellow")

    for row in rows:
        table.add_row(
            row["id"],
            row["name"],
            row["sku"],
            f"{row['current_stock']} {row['unit']}",
            str(row["minimum_stock"]),
            f"[{STOCK_STYLES[row['status']]}]{row['status']}[/]",
            row["expiry_label"] or "-"
        )

    console.print(table)
    stats = inventory.inventory_stats()
    console.print(f"Low: [yellow]{stats['low_stock']}[/]  Out: [red]{stats['out_of_stock']}[/]  "
                  f"Expired: [bold red]{stats['expired']}[/]  "
                  f"Expiring soon: [yellow]{stats['expiring_soon']}[/]")


def display_equipment(service: LabService):
    """Display instruments with maintenance schedule"""
    inventory = service.inventory
    rows = [inventory.equipment_row(e) for e in inventory.list_equipment()]

    table = Table(title=f"Equipment ({len(rows)} instruments)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Model", style="dim")
    table.add_column("Status")
    table.add_column("Next service", style="yellow")
    table.add_column("Due")

    for row in rows:
        due_style = "bold red" if row["needs_maintenance"] else "green"
        table.add_row(
            row["id"],
            row["name"],
            row["model"],
            row["status"],
            row["next_maintenance"],
            f"[{due_style}]{row['maintenance_label']}[/]"
        )

    console.print(table)


def book_appointment(service: LabService):
    """Appointment request form"""
    booking = service.appointments
    for doctor in booking.available_doctors():
        console.print(f"  {doctor.id}  {doctor.name} ({doctor.specialty})")

    patient_id = input("Patient ID: ").strip()
    doctor_id = input("Doctor ID: ").strip()
    day = input("Date (YYYY-MM-DD): ").strip()
    console.print(f"Slots: {', '.join(booking.time_slots)}")
    time_slot = input("Time slot: ").strip()
    kind = input(f"Type ({'/'.join(t.value for t in AppointmentType)}): ").strip()
    reason = input("Reason for visit: ").strip()

    appointment = service.book_appointment({
        "patient_id": patient_id, "doctor_id": doctor_id, "scheduled_for": day,
        "time_slot": time_slot, "type": kind, "reason": reason,
    })
    console.print(f"✅ Appointment requested: [bold]{appointment.id}[/bold] "
                  f"on {appointment.scheduled_for} at {appointment.time_slot}")


def build_tracking_table(service: LabService, samples) -> Table:
    table = Table(title=f"Sample Tracking ({len(samples)} samples)")
    table.add_column("Sample", style="cyan", no_wrap=True)
    table.add_column("Patient", style="white")
    table.add_column("Test", style="green")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Received", style="yellow")

    for sample in samples:
        test = service.catalog.get_by_id(sample.test_definition_id)
        priority_style = "bold red" if sample.priority == SamplePriority.URGENT else "white"
        table.add_row(
            sample.id,
            sample.patient_name,
            test.name if test else sample.test_definition_id,
            f"[{STATUS_STYLES[sample.status]}]{sample.status.value}[/]",
            f"[{priority_style}]{sample.priority.value}[/]",
            format_elapsed(sample.received_at)
        )
    return table


def display_tracking(service: LabService):
    search = input("Search (id, patient or test, blank for all): ").strip()
    status = input("Status filter (all/received/processing/completed/archived): ").strip() or "all"
    console.print(build_tracking_table(service, service.track_samples(search, status)))


def watch_samples(service: LabService):
    """Re-render the tracking table on the refresh interval until Ctrl+C"""
    tracker = service.tracker()
    console.print(f"[dim]Refreshing every {tracker.interval:g}s, Ctrl+C to stop[/dim]")

    with Live(build_tracking_table(service, []), console=console) as live:
        try:
            asyncio.run(tracker.run(lambda samples: live.update(build_tracking_table(service, samples))))
        except KeyboardInterrupt:
            tracker.stop()


def register_sample(service: LabService):
    """Sample intake form"""
    console.print("\n[bold blue]Sample Intake[/bold blue]")
    display_catalog(service)

    patient_id = input("Patient ID: ").strip()
    patient_name = input("Patient name (blank to use registered name): ").strip()
    test_id = input("Test ID: ").strip()
    priority = input("Priority (normal/high/urgent) [normal]: ").strip() or "normal"

    sample = service.register_sample(
        patient_id=patient_id,
        test_id=test_id,
        patient_name=patient_name or None,
        priority=SamplePriority(priority),
    )
    console.print(f"✅ Sample registered: [bold]{sample.id}[/bold] (barcode {sample.barcode})")


def update_status(service: LabService):
    sample_id = input("Sample ID: ").strip()
    sample = service.get_sample(sample_id)
    targets = ", ".join(s.value for s in service.workflow.allowed_targets(sample.status)) or "none"
    console.print(f"Current status: {sample.status.value} (next: {targets})")

    status = input("New status: ").strip()
    sample = service.change_status(sample_id, status)
    console.print(f"✅ Sample {sample.id} is now {sample.status.value}")


def enter_results(service: LabService):
    """Result entry form for one sample"""
    sample_id = input("Sample ID: ").strip()
    parameters = service.parameters_for(sample_id)
    if not parameters:
        console.print("❌ No parameter panel is defined for this sample's test")
        return

    values = {}
    for parameter in parameters:
        raw = input(f"{parameter.name} ({parameter.unit}, normal {parameter.normal_range}): ").strip()
        if raw:
            values[parameter.id] = raw
    interpretation = input("Clinical interpretation (optional): ").strip() or None
    submit = input("Submit for review? (y/N): ").strip().lower() == "y"

    if submit:
        sample = service.submit_results(sample_id, values, interpretation=interpretation)
    else:
        sample = service.save_results(sample_id, values, interpretation=interpretation)

    view = render_view(service, Role.LAB_TECHNICIAN, "result_entry", {"sample_id": sample.id})
    display_result_entry(view)


def display_result_entry(view: dict):
    table = Table(title=f"Results for {view['sample']['id']} ({view['review_status']})")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Unit")
    table.add_column("Normal", style="dim")
    table.add_column("Flag")

    for row in view["parameters"]:
        badge = row["badge"]
        table.add_row(
            row["name"],
            "" if row["value"] is None else str(row["value"]),
            row["unit"],
            row["normal_range"],
            f"[{BADGE_STYLES[badge]}]{badge}[/]" if badge else ""
        )

    console.print(table)
    summary = view["summary"]
    console.print(f"Critical: [bold red]{summary['critical']}[/]  "
                  f"Abnormal: [yellow]{summary['abnormal']}[/]  "
                  f"Normal: [green]{summary['normal']}[/]")


def display_role_view(service: LabService):
    role = Role(input("Role (lab_technician/doctor/patient/researcher): ").strip())
    views = [v.value for v in views_for(role)]
    view = input(f"View ({'/'.join(views)}) [dashboard]: ").strip() or "dashboard"

    params = {}
    if role == Role.PATIENT:
        params["patient_id"] = input("Patient ID: ").strip()
    elif view == "result_entry":
        params["sample_id"] = input("Sample ID: ").strip()

    data = render_view(service, role, view, params)
    console.print(Panel(console.render_str(_format_view(data)), title=f"{role.value} / {view}"))


def _format_view(data, indent: int = 0) -> str:
    lines = []
    pad = "  " * indent
    for key, value in data.items():
        if isinstance(value, dict):
            lines.append(f"{pad}[bold]{key}[/bold]:")
            lines.append(_format_view(value, indent + 1))
        elif isinstance(value, list):
            lines.append(f"{pad}[bold]{key}[/bold]: {len(value)} item(s)")
            for item in value:
                if isinstance(item, dict):
                    lines.append(f"{pad}  - " + ", ".join(f"{k}={v}" for k, v in item.items()
                                                           if not isinstance(v, (list, dict))))
                else:
                    lines.append(f"{pad}  - {item}")
        else:
            lines.append(f"{pad}[bold]{key}[/bold]: {value}")
    return "\n".join(lines)


def create_sample_data(service: LabService):
    """Create sample data for demonstration"""
    console.print("\n[bold blue]Creating Sample Data...[/bold blue]")

    john = service.register_patient({"name": "John Doe", "phone": "555-0123",
                                     "email": "john.doe@email.com", "age": 45, "gender": "M"})
    jane = service.register_patient({"name": "Jane Smith", "phone": "555-0456",
                                     "email": "jane.smith@email.com", "age": 50, "gender": "F"})
    console.print(f"✅ Created patients: {john.id}, {jane.id}")

    first = service.register_sample(john.id, "T001", priority=SamplePriority.URGENT)
    second = service.register_sample(jane.id, "T002")
    third = service.register_sample(jane.id, "T001", priority=SamplePriority.HIGH)

    service.save_results(first.id, {"WBC": "12000", "HGB": "13.1"})
    service.submit_results(third.id, {"WBC": "25000", "RBC": "4500000", "PLT": "210000"},
                           interpretation="Marked leukocytosis, recommend repeat")
    console.print(f"✅ Created samples: {first.id}, {second.id}, {third.id}")


MENU = [
    ("Display System Status", display_system_status),
    ("View Test Catalog", display_catalog),
    ("Register Sample", register_sample),
    ("Track Samples", display_tracking),
    ("Watch Samples (live)", watch_samples),
    ("Update Sample Status", update_status),
    ("Enter Results", enter_results),
    ("View Inventory", display_inventory),
    ("View Equipment", display_equipment),
    ("Book Appointment", book_appointment),
    ("Open Role View", display_role_view),
    ("Create Sample Data", create_sample_data),
]


def interactive_menu(service: LabService):
    """Display interactive menu for LabTrack operations"""
    while True:
        console.print("\n[bold green]LabTrack Menu:[/bold green]")
        for number, (label, _) in enumerate(MENU, start=1):
            console.print(f"  {number}. {label}")
        console.print("  0. Exit")

        try:
            choice = input(f"\nSelect an option (0-{len(MENU)}): ").strip()

            if choice == "0":
                console.print("\n[bold blue]Thank you for using LabTrack![/bold blue]")
                break
            if not choice.isdigit() or not 1 <= int(choice) <= len(MENU):
                console.print(f"❌ Invalid option. Please select 0-{len(MENU)}.")
                continue

            _, action = MENU[int(choice) - 1]
            action(service)

        except KeyboardInterrupt:
            console.print("\n\n[bold blue]Thank you for using LabTrack![/bold blue]")
            break
        except LabTrackException as e:
            console.print(f"❌ {e.message}")
        except ValueError as e:
            console.print(f"❌ Invalid input: {str(e)}")


def serve():
    """Run the REST API"""
    import uvicorn
    from labtrack.api.rest_api import create_app

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )


def main():
    """Main entry point for LabTrack"""
    setup_logging()

    try:
        if len(sys.argv) > 1 and sys.argv[1] == "serve":
            serve()
            return

        display_welcome()
        service = LabService.create(settings)
        display_system_status(service)
        interactive_menu(service)

    except KeyboardInterrupt:
        console.print("\n\n[bold yellow]Shutdown requested...[/bold yellow]")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error in main: {str(e)}")
        console.print(f"❌ Fatal error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
