"""
REST API for the LabTrack laboratory workspace
Exposes the catalog, sample intake, tracking, result entry, supplies, bookings and role views
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.clock import utc_now
from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    AppointmentConflictException, InvalidStatusTransitionException, LabTrackException,
    NotFoundException, CatalogTestInUseException, ValidationException
)
from ..models import Appointment, CatalogTest, Doctor, MaintenanceRecord, Patient, Sample
from ..services import LabService, render_view, views_for
from .schemas import (
    DeleteResponse, ErrorResponse, HealthCheckResponse, PatientCreate, ResultEntryRequest,
    ReviewRequest, SampleCreate, SampleUpdate, StatusUpdateRequest,
    CatalogTestCreate, CatalogTestUpdate, PanelParameterResponse,
    ViewListResponse, ViewResponse, AppointmentCancelRequest, AppointmentCreate,
    EquipmentCreate, EquipmentResponse, EquipmentStatusRequest, InventoryItemCreate,
    InventoryItemResponse, InventoryItemUpdate, MaintenanceRecordCreate, StockAdjustmentRequest
)

logger = logging.getLogger(__name__)

# Documented bodies for errors raised by the LabTrack exception handlers
ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Request rejected"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Record not found"},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Conflicting state"},
}


def get_lab_service(request: Request) -> LabService:
    """Dependency returning the service bound to the running app"""
    return request.app.state.lab_service


def create_app(service: Optional[LabService] = None, config: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application around a LabService"""
    config = config or (service.config if service else default_settings)
    service = service or LabService.create(config)

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Laboratory workspace API: test catalog, sample tracking, result entry, "
                    "inventory, equipment and appointments",
        docs_url="/docs",
        redoc_url="/redoc",
        responses=ERROR_RESPONSES,
    )
    app.state.lab_service = service
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api_cors_origins,
        allow_credentials=True,
        allow_methods=config.api_cors_methods,
        allow_headers=config.api_cors_headers,
    )

    _register_exception_handlers(app)
    _register_routes(app)
    return app


def _error(status_code: int, exc: LabTrackException) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
    )


def _register_exception_handlers(app: FastAPI):

    @app.exception_handler(NotFoundException)
    async def not_found_handler(request, exc: NotFoundException):
        return _error(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(ValidationException)
    async def validation_exception_handler(request, exc: ValidationException):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(InvalidStatusTransitionException)
    async def transition_exception_handler(request, exc: InvalidStatusTransitionException):
        return _error(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(CatalogTestInUseException)
    async def test_in_use_handler(request, exc: CatalogTestInUseException):
        return _error(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(AppointmentConflictException)
    async def appointment_conflict_handler(request, exc: AppointmentConflictException):
        return _error(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(LabTrackException)
    async def labtrack_exception_handler(request, exc: LabTrackException):
        logger.warning(f"Request to {request.url.path} failed: {exc.message}")
        return _error(status.HTTP_400_BAD_REQUEST, exc)


def _register_routes(app: FastAPI):

    # Health check endpoint
    @app.get("/health", response_model=HealthCheckResponse, tags=["System"])
    async def health_check(service: LabService = Depends(get_lab_service)):
        """Health check endpoint"""
        return HealthCheckResponse(
            status="healthy",
            timestamp=utc_now(),
            version=service.config.app_version,
            environment=service.config.environment,
            statistics=service.statistics(),
        )

    # Test catalog endpoints
    @app.get("/tests", response_model=List[CatalogTest], tags=["Catalog"])
    async def list_tests(
        search: str = Query("", max_length=200),
        active_only: bool = Query(False),
        service: LabService = Depends(get_lab_service)
    ):
        """List catalog tests, optionally filtered by name or category"""
        return service.list_tests(search, active_only=active_only)

    @app.post("/tests", response_model=CatalogTest, status_code=status.HTTP_201_CREATED,
              tags=["Catalog"])
    async def create_test(
        definition: CatalogTestCreate,
        service: LabService = Depends(get_lab_service)
    ):
        """Add a test to the catalog"""
        return service.add_test(definition.model_dump())

    @app.get("/tests/{test_id}", response_model=CatalogTest, tags=["Catalog"])
    async def get_test(test_id: str, service: LabService = Depends(get_lab_service)):
        """Get a catalog test by id"""
        return service.get_test(test_id)

    @app.patch("/tests/{test_id}", response_model=CatalogTest, tags=["Catalog"])
    async def update_test(
        test_id: str,
        updates: CatalogTestUpdate,
        service: LabService = Depends(get_lab_service)
    ):
        """Edit a catalog test"""
        return service.update_test(test_id, updates.model_dump(exclude_unset=True))

    @app.delete("/tests/{test_id}", response_model=DeleteResponse, tags=["Catalog"])
    async def delete_test(test_id: str, service: LabService = Depends(get_lab_service)):
        """Remove a catalog test"""
        if not service.remove_test(test_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Test {test_id} not found"
            )
        return DeleteResponse(deleted=True, id=test_id)

    @app.post("/tests/{test_id}/toggle", response_model=CatalogTest, tags=["Catalog"])
    async def toggle_test(test_id: str, service: LabService = Depends(get_lab_service)):
        """Activate or deactivate a catalog test"""
        return service.toggle_test_active(test_id)

    # Patient endpoints
    @app.get("/patients", response_model=List[Patient], tags=["Patients"])
    async def list_patients(service: LabService = Depends(get_lab_service)):
        return service.patients.list()

    @app.post("/patients", response_model=Patient, status_code=status.HTTP_201_CREATED,
              tags=["Patients"])
    async def create_patient(patient: PatientCreate, service: LabService = Depends(get_lab_service)):
        """Register a patient"""
        return service.register_patient(patient.model_dump(exclude_none=True))

    @app.get("/patients/{patient_id}", response_model=Patient, tags=["Patients"])
    async def get_patient(patient_id: str, service: LabService = Depends(get_lab_service)):
        return service.get_patient(patient_id)

    # Sample endpoints
    @app.get("/samples", response_model=List[Sample], tags=["Samples"])
    async def list_samples(
        search: str = Query("", max_length=200),
        sample_status: Optional[str] = Query(None, alias="status"),
        service: LabService = Depends(get_lab_service)
    ):
        """List samples matching a search term and status ('all' for every status)"""
        return service.track_samples(search, sample_status)

    @app.post("/samples", response_model=Sample, status_code=status.HTTP_201_CREATED,
              tags=["Samples"])
    async def create_sample(sample: SampleCreate, service: LabService = Depends(get_lab_service)):
        """Intake a new sample"""
        return service.register_sample(
            patient_id=sample.patient_id,
            test_id=sample.test_definition_id,
            patient_name=sample.patient_name,
            priority=sample.priority,
            notes=sample.notes,
        )

    @app.get("/samples/{sample_id}", response_model=Sample, tags=["Samples"])
    async def get_sample(sample_id: str, service: LabService = Depends(get_lab_service)):
        return service.get_sample(sample_id)

    @app.patch("/samples/{sample_id}", response_model=Sample, tags=["Samples"])
    async def update_sample(
        sample_id: str,
        updates: SampleUpdate,
        service: LabService = Depends(get_lab_service)
    ):
        """Edit sample details; a status field goes through the workflow"""
        return service.update_sample(sample_id, updates.model_dump(exclude_unset=True))

    @app.post("/samples/{sample_id}/status", response_model=Sample, tags=["Samples"])
    async def change_sample_status(
        sample_id: str,
        change: StatusUpdateRequest,
        service: LabService = Depends(get_lab_service)
    ):
        """Move a sample along its lifecycle"""
        return service.change_status(sample_id, change.status, override=change.override,
                                     notes=change.notes)

    # Result endpoints
    @app.get("/samples/{sample_id}/parameters", response_model=List[PanelParameterResponse],
             tags=["Results"])
    async def get_parameters(sample_id: str, service: LabService = Depends(get_lab_service)):
        """Parameter panel for the sample's test"""
        return [
            PanelParameterResponse(
                id=p.id,
                name=p.name,
                unit=p.unit,
                normal_min=p.normal_range.min,
                normal_max=p.normal_range.max,
                critical_min=p.critical_range.min if p.critical_range else None,
                critical_max=p.critical_range.max if p.critical_range else None,
            )
            for p in service.parameters_for(sample_id)
        ]

    @app.post("/samples/{sample_id}/results", response_model=Sample, tags=["Results"])
    async def save_results(
        sample_id: str,
        entry: ResultEntryRequest,
        service: LabService = Depends(get_lab_service)
    ):
        """Save draft results"""
        return service.save_results(sample_id, entry.values, entry.comments, entry.interpretation)

    @app.post("/samples/{sample_id}/results/submit", response_model=Sample, tags=["Results"])
    async def submit_results(
        sample_id: str,
        entry: ResultEntryRequest,
        service: LabService = Depends(get_lab_service)
    ):
        """Submit results for review"""
        return service.submit_results(sample_id, entry.values, entry.comments, entry.interpretation)

    @app.post("/samples/{sample_id}/review", response_model=Sample, tags=["Results"])
    async def review_results(
        sample_id: str,
        review: ReviewRequest,
        service: LabService = Depends(get_lab_service)
    ):
        """Approve or reject submitted results"""
        return service.review_results(sample_id, review.reviewer, review.approve, review.comment)

    # Inventory endpoints
    @app.get("/inventory", response_model=List[InventoryItemResponse], tags=["Inventory"])
    async def list_inventory(
        search: str = Query("", max_length=200),
        category: Optional[str] = Query(None),
        service: LabService = Depends(get_lab_service)
    ):
        """List supplies by name or SKU with derived stock status ('all' for every category)"""
        inventory = service.inventory
        return [inventory.item_row(i) for i in inventory.list_items(search, category)]

    @app.get("/inventory/stats", response_model=Dict[str, int], tags=["Inventory"])
    async def inventory_stats(service: LabService = Depends(get_lab_service)):
        return service.inventory.inventory_stats()

    @app.post("/inventory", response_model=InventoryItemResponse,
              status_code=status.HTTP_201_CREATED, tags=["Inventory"])
    async def create_inventory_item(
        item: InventoryItemCreate,
        service: LabService = Depends(get_lab_service)
    ):
        """Stock a new supply"""
        created = service.inventory.add_item(item.model_dump())
        return service.inventory.item_row(created)

    @app.get("/inventory/{item_id}", response_model=InventoryItemResponse, tags=["Inventory"])
    async def get_inventory_item(item_id: str, service: LabService = Depends(get_lab_service)):
        return service.inventory.item_row(service.inventory.get_item(item_id))

    @app.patch("/inventory/{item_id}", response_model=InventoryItemResponse, tags=["Inventory"])
    async def update_inventory_item(
        item_id: str,
        updates: InventoryItemUpdate,
        service: LabService = Depends(get_lab_service)
    ):
        updated = service.inventory.update_item(item_id, updates.model_dump(exclude_unset=True))
        return service.inventory.item_row(updated)

    @app.post("/inventory/{item_id}/stock", response_model=InventoryItemResponse,
              tags=["Inventory"])
    async def adjust_stock(
        item_id: str,
        adjustment: StockAdjustmentRequest,
        service: LabService = Depends(get_lab_service)
    ):
        """Receive or consume stock"""
        updated = service.inventory.adjust_stock(item_id, adjustment.delta, adjustment.reason)
        return service.inventory.item_row(updated)

    # Equipment endpoints
    @app.get("/equipment", response_model=List[EquipmentResponse], tags=["Equipment"])
    async def list_equipment(
        search: str = Query("", max_length=200),
        equipment_status: Optional[str] = Query(None, alias="status"),
        service: LabService = Depends(get_lab_service)
    ):
        """List instruments by name, model or serial ('all' for every status)"""
        inventory = service.inventory
        return [inventory.equipment_row(e)
                for e in inventory.list_equipment(search, equipment_status)]

    @app.get("/equipment/stats", response_model=Dict[str, int], tags=["Equipment"])
    async def equipment_stats(service: LabService = Depends(get_lab_service)):
        return service.inventory.equipment_stats()

    @app.post("/equipment", response_model=EquipmentResponse,
              status_code=status.HTTP_201_CREATED, tags=["Equipment"])
    async def create_equipment(
        equipment: EquipmentCreate,
        service: LabService = Depends(get_lab_service)
    ):
        """Register an instrument"""
        created = service.inventory.add_equipment(equipment.model_dump(exclude_none=True))
        return service.inventory.equipment_row(created)

    @app.get("/equipment/{equipment_id}", response_model=EquipmentResponse, tags=["Equipment"])
    async def get_equipment(equipment_id: str, service: LabService = Depends(get_lab_service)):
        return service.inventory.equipment_row(service.inventory.get_equipment(equipment_id))

    @app.post("/equipment/{equipment_id}/status", response_model=EquipmentResponse,
              tags=["Equipment"])
    async def change_equipment_status(
        equipment_id: str,
        change: EquipmentStatusRequest,
        service: LabService = Depends(get_lab_service)
    ):
        updated = service.inventory.set_equipment_status(equipment_id, change.status, change.notes)
        return service.inventory.equipment_row(updated)

    @app.get("/equipment/{equipment_id}/maintenance", response_model=List[MaintenanceRecord],
             tags=["Equipment"])
    async def maintenance_history(equipment_id: str, service: LabService = Depends(get_lab_service)):
        """Maintenance visits, most recent first"""
        return service.inventory.maintenance_history(equipment_id)

    @app.post("/equipment/{equipment_id}/maintenance", response_model=MaintenanceRecord,
              status_code=status.HTTP_201_CREATED, tags=["Equipment"])
    async def record_maintenance(
        equipment_id: str,
        record: MaintenanceRecordCreate,
        service: LabService = Depends(get_lab_service)
    ):
        """Log a maintenance visit and reschedule the instrument"""
        return service.inventory.record_maintenance(equipment_id, record.model_dump(exclude_none=True))

    # Appointment endpoints
    @app.get("/doctors", response_model=List[Doctor], tags=["Appointments"])
    async def list_doctors(
        available_only: bool = Query(True),
        service: LabService = Depends(get_lab_service)
    ):
        booking = service.appointments
        return booking.available_doctors() if available_only else booking.doctors

    @app.get("/doctors/{doctor_id}/slots", response_model=List[str], tags=["Appointments"])
    async def free_slots(
        doctor_id: str,
        day: date = Query(..., alias="date"),
        service: LabService = Depends(get_lab_service)
    ):
        """Unbooked time slots for a doctor on a date"""
        return service.appointments.free_slots(doctor_id, day)

    @app.get("/appointments", response_model=List[Appointment], tags=["Appointments"])
    async def list_appointments(
        patient_id: str = Query(..., min_length=1),
        service: LabService = Depends(get_lab_service)
    ):
        return service.appointments.list_for_patient(patient_id)

    @app.post("/appointments", response_model=Appointment,
              status_code=status.HTTP_201_CREATED, tags=["Appointments"])
    async def book_appointment(
        appointment: AppointmentCreate,
        service: LabService = Depends(get_lab_service)
    ):
        """Request an appointment"""
        return service.book_appointment(appointment.model_dump(exclude_none=True))

    @app.post("/appointments/{appointment_id}/confirm", response_model=Appointment,
              tags=["Appointments"])
    async def confirm_appointment(appointment_id: str, service: LabService = Depends(get_lab_service)):
        return service.appointments.confirm(appointment_id)

    @app.post("/appointments/{appointment_id}/cancel", response_model=Appointment,
              tags=["Appointments"])
    async def cancel_appointment(
        appointment_id: str,
        cancel: AppointmentCancelRequest,
        service: LabService = Depends(get_lab_service)
    ):
        return service.appointments.cancel(appointment_id, cancel.reason)

    # Role views
    @app.get("/views/{role}", response_model=ViewListResponse, tags=["Views"])
    async def list_views(role: str):
        try:
            views = views_for(role)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown role: {role}"
            )
        return ViewListResponse(role=role, views=[v.value for v in views])

    @app.get("/views/{role}/{view}", response_model=ViewResponse, tags=["Views"])
    async def get_view(
        role: str,
        view: str,
        request: Request,
        service: LabService = Depends(get_lab_service)
    ):
        """Render a role view; query parameters are passed to the view"""
        data = render_view(service, role, view, dict(request.query_params))
        return ViewResponse(role=role, view=view, data=data)


# Default application instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=default_settings.api_host,
        port=default_settings.api_port,
        log_level=default_settings.log_level.lower()
    )
