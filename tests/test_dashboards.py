"""
Unit tests for role-based views
"""

import pytest

from labtrack.core.exceptions import UnknownViewException, ValidationException
from labtrack.services import Role, View, render_view, resolve_view, views_for
from labtrack.services.dashboards import VIEW_HANDLERS, catalog_view


@pytest.fixture
def populated(lab_service, registered_patient):
    """An urgent critical CBC awaiting review, a normal lipid draft and an approved thyroid"""
    other = lab_service.register_patient({"name": "Jane Smith"})

    cbc = lab_service.register_sample(registered_patient.id, "T001", priority="urgent")
    lab_service.submit_results(cbc.id, {"WBC": "25000", "HGB": "13"})

    lipid = lab_service.register_sample(other.id, "T002")
    lab_service.save_results(lipid.id, {"CHOL": "180"})

    thyroid = lab_service.register_sample(registered_patient.id, "T004", priority="high")
    lab_service.submit_results(thyroid.id, {"TSH": "5.2"})
    lab_service.review_results(thyroid.id, "Dr. Smith", True, "Subclinical hypothyroidism")

    return {"cbc": cbc.id, "lipid": lipid.id, "thyroid": thyroid.id,
            "patient": registered_patient.id, "other": other.id}


class TestViewRegistry:
    """Test role and view lookup"""

    def test_views_for_roles(self):
        assert views_for(Role.LAB_TECHNICIAN) == [
            View.DASHBOARD, View.TEST_CATALOG, View.SAMPLE_TRACKING, View.RESULT_ENTRY,
            View.INVENTORY, View.EQUIPMENT
        ]
        assert views_for("patient") == [View.DASHBOARD, View.VIEW_REPORTS, View.BOOK_APPOINTMENT]
        assert View.STUDY_DATA in views_for(Role.RESEARCHER)

    def test_every_role_has_dashboard(self):
        for role in Role:
            assert (role, View.DASHBOARD) in VIEW_HANDLERS

    def test_resolve(self):
        assert resolve_view("doctor", "test_catalog") is catalog_view

    @pytest.mark.parametrize("role,view", [
        ("patient", "result_entry"),
        ("researcher", "review_results"),
        ("admin", "dashboard"),
        ("doctor", "billing"),
    ])
    def test_unknown_view(self, role, view):
        with pytest.raises(UnknownViewException) as exc_info:
            resolve_view(role, view)
        assert exc_info.value.error_code == "UNKNOWN_VIEW"

    def test_unknown_role_in_views_for(self):
        with pytest.raises(ValueError):
            views_for("admin")


class TestLabTechnicianViews:
    """Test technician screens"""

    def test_dashboard(self, lab_service, populated):
        data = render_view(lab_service, Role.LAB_TECHNICIAN, View.DASHBOARD)

        assert data["stats"] == {"pending": 0, "in_progress": 1, "completed_today": 2, "urgent": 0}
        assert len(data["recent_samples"]) == 3
        assert "result_entry" in data["quick_actions"]
        assert "dashboard" not in data["quick_actions"]

    def test_recent_limit(self, lab_service, registered_patient):
        for _ in range(8):
            lab_service.register_sample(registered_patient.id, "T003")

        data = render_view(lab_service, "lab_technician", "dashboard")
        assert len(data["recent_samples"]) == lab_service.config.dashboard_recent_limit
        assert data["stats"]["pending"] == 8

    def test_catalog(self, lab_service):
        data = render_view(lab_service, "lab_technician", "test_catalog", {"search": "panel"})
        assert data["count"] == 2
        assert {t["id"] for t in data["tests"]} == {"T002", "T004"}

    def test_sample_tracking(self, lab_service, populated):
        data = render_view(lab_service, "lab_technician", "sample_tracking",
                           {"status": "processing"})
        assert data["count"] == 1
        assert data["samples"][0]["id"] == populated["lipid"]
        assert data["samples"][0]["test"] == "Lipid Panel"
        assert data["samples"][0]["received"] == "0m ago"

    def test_result_entry(self, lab_service, populated):
        data = render_view(lab_service, "lab_technician", "result_entry",
                           {"sample_id": populated["cbc"]})

        rows = {row["id"]: row for row in data["parameters"]}
        assert len(rows) == 5
        assert rows["WBC"]["badge"] == "Critical"
        assert rows["HGB"]["badge"] == "Normal"
        assert rows["PLT"]["value"] is None
        assert rows["WBC"]["normal_range"] == "4000 - 11000"
        assert data["summary"] == {"critical": 1, "abnormal": 0, "normal": 1}
        assert data["review_status"] == "pending_review"

    def test_result_entry_requires_sample(self, lab_service):
        with pytest.raises(ValidationException) as exc_info:
            render_view(lab_service, "lab_technician", "result_entry")
        assert exc_info.value.error_code == "MISSING_PARAMETER"

    def test_inventory(self, lab_service):
        data = render_view(lab_service, "lab_technician", "inventory")

        assert data["count"] == 4
        assert data["stats"] == {"total_items": 4, "low_stock": 1, "out_of_stock": 0,
                                 "expired": 1, "expiring_soon": 0}
        assert data["items"][2]["status"] == "expired"

    def test_inventory_filters(self, lab_service):
        data = render_view(lab_service, "lab_technician", "inventory", {"category": "consumable"})
        assert [i["sku"] for i in data["items"]] == ["CON-BCT-002", "CON-GLV-004"]

    def test_equipment(self, lab_service):
        data = render_view(lab_service, "lab_technician", "equipment")

        assert data["count"] == 4
        assert data["stats"]["needs_maintenance"] == 2
        assert data["equipment"][0]["maintenance_label"] == "17 days"
        assert [r["id"] for r in data["recent_maintenance"]] == ["MR001", "MR002"]

    def test_equipment_status_filter(self, lab_service):
        data = render_view(lab_service, "lab_technician", "equipment", {"status": "calibration"})
        assert [e["id"] for e in data["equipment"]] == ["EQ004"]


class TestDoctorViews:
    """Test doctor screens"""

    def test_dashboard(self, lab_service, populated):
        data = render_view(lab_service, "doctor", "dashboard")

        assert data["stats"] == {"awaiting_review": 1, "critical_results": 1,
                                 "approved": 1, "rejected": 0}
        assert data["critical_samples"][0]["id"] == populated["cbc"]

    def test_review_queue_critical_first(self, lab_service, populated, registered_patient):
        routine = lab_service.register_sample(registered_patient.id, "T001", priority="urgent")
        lab_service.submit_results(routine.id, {"WBC": "7000"})

        data = render_view(lab_service, "doctor", "review_results")
        assert [r["id"] for r in data["results"]] == [populated["cbc"], routine.id]
        assert data["results"][0]["results"][0]["badge"] == "Critical"

    def test_review_queue_priority_filter(self, lab_service, populated):
        assert render_view(lab_service, "doctor", "review_results", {"priority": "normal"})["count"] == 0
        assert render_view(lab_service, "doctor", "review_results", {"priority": "all"})["count"] == 1


class TestPatientViews:
    """Test patient screens"""

    def test_dashboard(self, lab_service, populated):
        data = render_view(lab_service, "patient", "dashboard", {"patient_id": populated["patient"]})

        assert data["stats"] == {"total_tests": 2, "in_progress": 0, "reports_ready": 1}
        assert {s["id"] for s in data["samples"]} == {populated["cbc"], populated["thyroid"]}

    def test_reports_only_approved(self, lab_service, populated):
        data = render_view(lab_service, "patient", "view_reports", {"patient_id": populated["patient"]})

        assert [r["id"] for r in data["reports"]] == [populated["thyroid"]]
        assert data["reports"][0]["reviewed_by"] == "Dr. Smith"

    def test_requires_patient_id(self, lab_service):
        with pytest.raises(ValidationException):
            render_view(lab_service, "patient", "dashboard")

    def test_book_appointment(self, lab_service, registered_patient):
        lab_service.book_appointment({
            "patient_id": registered_patient.id, "doctor_id": "D002",
            "scheduled_for": "2024-03-18", "time_slot": "14:00",
            "type": "consultation", "reason": "Annual visit",
        })
        data = render_view(lab_service, "patient", "book_appointment",
                           {"patient_id": registered_patient.id})

        assert [d["id"] for d in data["doctors"]] == ["D001", "D002", "D004"]
        assert data["earliest_date"] == "2024-03-15"
        assert "follow_up" in data["appointment_types"]
        assert data["appointments"][0]["time_slot"] == "14:00"
        assert data["appointments"][0]["status"] == "requested"


class TestResearcherViews:
    """Test researcher screens"""

    def test_dashboard(self, lab_service, populated):
        data = render_view(lab_service, "researcher", "dashboard")

        assert data["total_samples"] == 3
        assert data["samples_by_category"] == {"Hematology": 1, "Chemistry": 1, "Endocrinology": 1}
        assert data["samples_by_test"]["Lipid Panel"] == 1

    def test_study_data(self, lab_service, populated):
        data = render_view(lab_service, "researcher", "study_data")["parameters"]

        assert data["WBC"] == {"total": 1, "abnormal": 1, "critical": 1, "abnormal_rate": 1.0}
        assert data["HGB"]["abnormal_rate"] == 0.0
        assert data["TSH"]["abnormal"] == 1
        assert list(data) == sorted(data)
