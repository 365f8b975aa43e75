"""
Pytest configuration and fixtures for LabTrack tests
"""

import pytest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from labtrack.api.rest_api import create_app
from labtrack.core.config import Settings
from labtrack.services import LabService
from labtrack.stores import CatalogStore, PatientStore, SampleStore


class FakeClock:
    """Deterministic clock; call it to read, advance() to move forward"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and .env files"""
    return Settings(
        _env_file=None,
        environment="testing",
        log_to_file=False,
        log_level="DEBUG",
        tracking_refresh_interval=0.01,
    )


@pytest.fixture
def catalog_store(clock) -> CatalogStore:
    store = CatalogStore(clock=clock)
    store.seed_defaults()
    return store


@pytest.fixture
def sample_store(clock) -> SampleStore:
    return SampleStore(clock=clock)


@pytest.fixture
def patient_store(clock) -> PatientStore:
    return PatientStore(clock=clock)


@pytest.fixture
def lab_service(test_settings, clock) -> LabService:
    """Service over freshly seeded stores"""
    return LabService.create(test_settings, clock=clock)


@pytest.fixture
def registered_patient(lab_service):
    return lab_service.register_patient(generate_patient_data())


@pytest.fixture
def cbc_sample(lab_service, registered_patient):
    """A received sample ordered against the CBC panel"""
    return lab_service.register_sample(registered_patient.id, "T001")


@pytest.fixture
def api_client(lab_service) -> TestClient:
    return TestClient(create_app(lab_service))


# Test data generators
def generate_patient_data(**overrides):
    """Generate test patient data"""
    data = {
        "name": "John Doe",
        "phone": "555-0123",
        "email": "john.doe@example.com",
        "age": 45,
        "gender": "M",
        "address": "123 Test St, Test City"
    }
    data.update(overrides)
    return data


def generate_test_definition(**overrides):
    """Generate catalog test data"""
    data = {
        "name": "Basic Metabolic Panel",
        "category": "Chemistry",
        "description": "Electrolytes, glucose and kidney function",
        "duration_minutes": 75,
        "price": 3000.00,
        "requires_special_prep": True,
        "sample_kind": "blood"
    }
    data.update(overrides)
    return data


def generate_sample_data(**overrides):
    """Generate sample intake data for the raw store"""
    data = {
        "patient_id": "P001",
        "patient_name": "John Doe",
        "test_definition_id": "T001",
        "priority": "normal"
    }
    data.update(overrides)
    return data


@pytest.fixture
def patient_data():
    return generate_patient_data()


@pytest.fixture
def test_definition_data():
    return generate_test_definition()


@pytest.fixture
def sample_data():
    return generate_sample_data()
