"""
Unit tests for the LabService facade
"""

import pytest

from labtrack.core.config import Settings
from labtrack.core.exceptions import (
    InvalidStatusTransitionException, PatientNotFoundException, SampleNotFoundException,
    CatalogTestInUseException, CatalogTestNotFoundException, ValidationException
)
from labtrack.models import ReviewStatus, SamplePriority, SampleStatus
from labtrack.services import LabService


class TestServiceCreation:
    """Test building isolated services"""

    def test_seeded_by_default(self, lab_service):
        assert len(lab_service.list_tests()) == 4

    def test_without_seed(self, test_settings):
        service = LabService.create(test_settings, seed=False)
        assert service.list_tests() == []

    def test_services_are_isolated(self, test_settings, patient_data):
        first = LabService.create(test_settings)
        second = LabService.create(test_settings)

        first.register_patient(patient_data)
        assert len(first.patients) == 1
        assert len(second.patients) == 0

    def test_settings_flow_into_stores(self, clock):
        config = Settings(_env_file=None, environment="testing", log_to_file=False,
                          sample_id_prefix="LAB", catalog_seed_defaults=False)
        service = LabService.create(config, clock=clock)

        assert service.list_tests() == []
        assert service.samples.id_prefix == "LAB"


class TestCatalogMaintenance:
    """Test catalog maintenance through the service"""

    def test_add_test(self, lab_service, test_definition_data):
        test = lab_service.add_test(test_definition_data)
        assert lab_service.get_test(test.id).name == "Basic Metabolic Panel"

    @pytest.mark.parametrize("field", ["name", "category", "description"])
    def test_add_requires_fields(self, lab_service, test_definition_data, field):
        with pytest.raises(ValidationException) as exc_info:
            lab_service.add_test({**test_definition_data, field: "  "})
        assert exc_info.value.error_code == "MISSING_FIELDS"
        assert field in exc_info.value.message

    def test_update_test(self, lab_service):
        assert lab_service.update_test("T002", {"price": 3600.0}).price == 3600.0

    def test_update_blank_name(self, lab_service):
        with pytest.raises(ValidationException):
            lab_service.update_test("T002", {"name": ""})

    def test_update_missing_test(self, lab_service):
        with pytest.raises(CatalogTestNotFoundException):
            lab_service.update_test("T404", {"price": 1.0})

    def test_remove_unreferenced(self, lab_service):
        assert lab_service.remove_test("T003") is True
        assert lab_service.remove_test("T003") is False

    def test_remove_referenced_test(self, lab_service, cbc_sample):
        with pytest.raises(CatalogTestInUseException) as exc_info:
            lab_service.remove_test("T001")

        assert exc_info.value.sample_count == 1
        assert lab_service.get_test("T001")

    def test_remove_referenced_when_not_enforced(self, clock, patient_data):
        config = Settings(_env_file=None, environment="testing", log_to_file=False,
                          catalog_enforce_references=False)
        service = LabService.create(config, clock=clock)
        patient = service.register_patient(patient_data)
        service.register_sample(patient.id, "T001")

        assert service.remove_test("T001") is True

    def test_toggle_active(self, lab_service):
        assert lab_service.toggle_test_active("T004").is_active is False
        assert [t.id for t in lab_service.list_tests(active_only=True)] == ["T001", "T002", "T003"]
        assert lab_service.toggle_test_active("T004").is_active is True


class TestSampleIntake:
    """Test sample registration"""

    def test_register_sample(self, lab_service, registered_patient):
        sample = lab_service.register_sample(registered_patient.id, "T002",
                                             priority=SamplePriority.URGENT, notes="fasting")

        assert sample.patient_name == "John Doe"
        assert sample.test_definition_id == "T002"
        assert sample.priority == SamplePriority.URGENT
        assert sample.id.startswith("SAM")

    def test_register_unregistered_patient_with_name(self, lab_service):
        sample = lab_service.register_sample("EXT-17", "T001", patient_name=" Walk In ")
        assert sample.patient_name == "Walk In"

    def test_register_requires_patient_name(self, lab_service):
        with pytest.raises(ValidationException):
            lab_service.register_sample("EXT-17", "T001")

    @pytest.mark.parametrize("patient_id,test_id", [("", "T001"), ("P001", ""), ("  ", "T001")])
    def test_register_requires_ids(self, lab_service, registered_patient, patient_id, test_id):
        with pytest.raises(ValidationException):
            lab_service.register_sample(patient_id, test_id)

    def test_register_unknown_test(self, lab_service, registered_patient):
        with pytest.raises(CatalogTestNotFoundException):
            lab_service.register_sample(registered_patient.id, "T999")

    def test_register_inactive_test(self, lab_service, registered_patient):
        lab_service.toggle_test_active("T001")
        with pytest.raises(ValidationException) as exc_info:
            lab_service.register_sample(registered_patient.id, "T001")
        assert exc_info.value.error_code == "TEST_INACTIVE"

    def test_get_missing(self, lab_service):
        with pytest.raises(SampleNotFoundException):
            lab_service.get_sample("SAM404")
        with pytest.raises(PatientNotFoundException):
            lab_service.get_patient("P404")

    def test_register_patient_requires_name(self, lab_service):
        with pytest.raises(ValidationException):
            lab_service.register_patient({"name": " "})


class TestSampleUpdates:
    """Test sample edits and status changes"""

    def test_update_details(self, lab_service, cbc_sample):
        sample = lab_service.update_sample(cbc_sample.id, {"priority": "high", "notes": "rerun"})
        assert sample.priority == SamplePriority.HIGH
        assert sample.notes == "rerun"

    def test_update_routes_status_through_workflow(self, lab_service, cbc_sample):
        with pytest.raises(InvalidStatusTransitionException):
            lab_service.update_sample(cbc_sample.id, {"status": "completed"})

        sample = lab_service.update_sample(cbc_sample.id, {"status": "processing"})
        assert sample.status == SampleStatus.PROCESSING
        assert sample.processed_at is not None

    def test_rejected_transition_keeps_details(self, lab_service, cbc_sample):
        """Test a refused status change does not apply the accompanying edits"""
        with pytest.raises(InvalidStatusTransitionException):
            lab_service.update_sample(cbc_sample.id, {"notes": "hemolysed", "status": "archived"})

        sample = lab_service.get_sample(cbc_sample.id)
        assert sample.notes is None
        assert sample.status == SampleStatus.RECEIVED

    def test_invalid_status_keeps_details(self, lab_service, cbc_sample):
        with pytest.raises(ValidationException) as exc_info:
            lab_service.update_sample(cbc_sample.id, {"priority": "urgent", "status": "lost"})

        assert exc_info.value.error_code == "INVALID_STATUS"
        assert lab_service.get_sample(cbc_sample.id).priority == SamplePriority.NORMAL

    def test_details_and_status_in_one_update(self, lab_service, cbc_sample):
        sample = lab_service.update_sample(cbc_sample.id, {"notes": "on analyser",
                                                           "status": "processing"})
        assert sample.notes == "on analyser"
        assert sample.status == SampleStatus.PROCESSING

    @pytest.mark.parametrize("field,value", [
        ("results", []),
        ("review_status", "approved"),
        ("received_at", "2024-01-01T00:00:00+00:00"),
        ("processed_at", None),
        ("patient_id", "P999"),
    ])
    def test_update_rejects_managed_fields(self, lab_service, cbc_sample, field, value):
        with pytest.raises(ValidationException) as exc_info:
            lab_service.update_sample(cbc_sample.id, {field: value})

        assert exc_info.value.error_code == "FIELD_NOT_EDITABLE"
        assert field in exc_info.value.message
        assert lab_service.get_sample(cbc_sample.id).review_status is None

    def test_update_blank_patient_name(self, lab_service, cbc_sample):
        with pytest.raises(ValidationException):
            lab_service.update_sample(cbc_sample.id, {"patient_name": " "})

    def test_change_status_invalid_value(self, lab_service, cbc_sample):
        with pytest.raises(ValidationException) as exc_info:
            lab_service.change_status(cbc_sample.id, "misplaced")
        assert exc_info.value.error_code == "INVALID_STATUS"

    def test_manual_override_setting(self, clock, patient_data):
        config = Settings(_env_file=None, environment="testing", log_to_file=False,
                          workflow_allow_manual_override=True)
        service = LabService.create(config, clock=clock)
        patient = service.register_patient(patient_data)
        sample = service.register_sample(patient.id, "T001")

        moved = service.change_status(sample.id, "archived", override=True)
        assert moved.status == SampleStatus.ARCHIVED

    def test_track_samples(self, lab_service, registered_patient):
        cbc = lab_service.register_sample(registered_patient.id, "T001")
        lipid = lab_service.register_sample(registered_patient.id, "T002")
        lab_service.change_status(lipid.id, "processing")

        assert [s.id for s in lab_service.track_samples("lipid")] == [lipid.id]
        assert [s.id for s in lab_service.track_samples("", "received")] == [cbc.id]
        assert len(lab_service.track_samples("john", "all")) == 2

        with pytest.raises(ValidationException):
            lab_service.track_samples("", "lost")


class TestResultsAndStatistics:
    """Test result entry via the service"""

    def test_result_round(self, lab_service, cbc_sample):
        lab_service.save_results(cbc_sample.id, {"WBC": "12000"})
        lab_service.submit_results(cbc_sample.id, {"PLT": "40000"}, interpretation="Thrombocytopenia")

        rejected = lab_service.review_results(cbc_sample.id, "Dr. Smith", False, "recount platelets")
        assert rejected.review_status == ReviewStatus.REJECTED

        lab_service.submit_results(cbc_sample.id, {"PLT": "160000"})
        approved = lab_service.review_results(cbc_sample.id, "Dr. Smith", True)

        assert approved.review_status == ReviewStatus.APPROVED
        assert approved.interpretation == "Thrombocytopenia"
        assert not approved.has_critical_results

    def test_reject_needs_comment(self, lab_service, cbc_sample):
        lab_service.submit_results(cbc_sample.id, {"WBC": "7000"})
        with pytest.raises(ValidationException):
            lab_service.review_results(cbc_sample.id, "Dr. Smith", False)

    def test_statistics(self, lab_service, cbc_sample):
        lab_service.save_results(cbc_sample.id, {"WBC": "7000"})
        stats = lab_service.statistics()

        assert stats["tests"] == 4
        assert stats["patients"] == 1
        assert stats["samples"] == 1
        assert stats["processing"] == 1
        assert stats["received"] == 0
        assert stats["inventory_items"] == 4
        assert stats["equipment"] == 4
        assert stats["appointments"] == 0
