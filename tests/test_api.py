"""
Tests for the LabTrack REST API
"""

import pytest


@pytest.fixture
def patient_id(api_client):
    response = api_client.post("/patients", json={"name": "John Doe", "email": "john@example.com"})
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def sample_id(api_client, patient_id):
    response = api_client.post("/samples", json={"patient_id": patient_id,
                                                  "test_definition_id": "T001"})
    assert response.status_code == 201
    return response.json()["id"]


class TestSystemEndpoints:
    """Test health check"""

    def test_health(self, api_client):
        response = api_client.get("/health")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["environment"] == "testing"
        assert data["statistics"]["tests"] == 4

    def test_openapi_documents_error_body(self, api_client):
        schema = api_client.get("/openapi.json").json()

        assert schema["components"]["schemas"]["ErrorResponse"]["required"] == ["detail"]
        responses = schema["paths"]["/samples/{sample_id}"]["get"]["responses"]
        assert responses["404"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/ErrorResponse"
        }
        assert "409" in responses


class TestCatalogEndpoints:
    """Test catalog endpoints"""

    def test_list_and_search(self, api_client):
        assert len(api_client.get("/tests").json()) == 4
        assert [t["id"] for t in api_client.get("/tests", params={"search": "urin"}).json()] == ["T003"]

    def test_create(self, api_client, test_definition_data):
        response = api_client.post("/tests", json=test_definition_data)

        assert response.status_code == 201
        assert response.json()["id"] == "T005"

    def test_create_invalid(self, api_client, test_definition_data):
        response = api_client.post("/tests", json={**test_definition_data, "price": -1})
        assert response.status_code == 422

    def test_create_rejects_id(self, api_client, test_definition_data):
        response = api_client.post("/tests", json={**test_definition_data, "id": "T777"})
        assert response.status_code == 422

    def test_update(self, api_client):
        response = api_client.patch("/tests/T002", json={"price": 3700})
        assert response.status_code == 200
        assert response.json()["price"] == 3700

    def test_update_missing(self, api_client):
        response = api_client.patch("/tests/T404", json={"price": 1})
        assert response.status_code == 404
        assert response.json()["error_code"] == "TEST_NOT_FOUND"

    def test_delete(self, api_client):
        assert api_client.delete("/tests/T003").json() == {"deleted": True, "id": "T003"}
        assert api_client.delete("/tests/T003").status_code == 404
        assert api_client.get("/tests/T003").status_code == 404

    def test_delete_in_use(self, api_client, sample_id):
        response = api_client.delete("/tests/T001")
        assert response.status_code == 409
        assert response.json()["error_code"] == "TEST_IN_USE"

    def test_toggle(self, api_client):
        assert api_client.post("/tests/T004/toggle").json()["is_active"] is False
        assert len(api_client.get("/tests", params={"active_only": True}).json()) == 3


class TestSampleEndpoints:
    """Test intake and tracking endpoints"""

    def test_create_sample(self, api_client, sample_id):
        sample = api_client.get(f"/samples/{sample_id}").json()

        assert sample["barcode"] == sample_id
        assert sample["status"] == "received"
        assert sample["patient_name"] == "John Doe"

    def test_create_for_unknown_test(self, api_client, patient_id):
        response = api_client.post("/samples", json={"patient_id": patient_id,
                                                      "test_definition_id": "T999"})
        assert response.status_code == 404

    def test_create_missing_patient_name(self, api_client):
        response = api_client.post("/samples", json={"patient_id": "EXT-9",
                                                      "test_definition_id": "T001"})
        assert response.status_code == 422
        assert response.json()["error_code"] == "MISSING_FIELDS"

    def test_list_filters(self, api_client, sample_id):
        assert len(api_client.get("/samples", params={"status": "all"}).json()) == 1
        assert api_client.get("/samples", params={"status": "completed"}).json() == []
        assert api_client.get("/samples", params={"status": "lost"}).status_code == 422
        assert len(api_client.get("/samples", params={"search": "blood count"}).json()) == 1

    def test_status_change(self, api_client, sample_id):
        response = api_client.post(f"/samples/{sample_id}/status", json={"status": "processing"})
        assert response.status_code == 200
        assert response.json()["processed_at"] is not None

    def test_illegal_status_change(self, api_client, sample_id):
        response = api_client.post(f"/samples/{sample_id}/status", json={"status": "archived"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATUS_TRANSITION"
        assert api_client.get(f"/samples/{sample_id}").json()["status"] == "received"

    def test_patch_sample(self, api_client, sample_id):
        response = api_client.patch(f"/samples/{sample_id}", json={"priority": "urgent",
                                                                    "notes": "stat"})
        assert response.json()["priority"] == "urgent"

    def test_patch_rejects_barcode(self, api_client, sample_id):
        response = api_client.patch(f"/samples/{sample_id}", json={"barcode": "X"})
        assert response.status_code == 422

    def test_patch_rejected_transition_keeps_notes(self, api_client, sample_id):
        response = api_client.patch(f"/samples/{sample_id}", json={"notes": "hemolysed",
                                                                    "status": "archived"})
        assert response.status_code == 409

        sample = api_client.get(f"/samples/{sample_id}").json()
        assert sample["notes"] is None
        assert sample["status"] == "received"

    def test_patch_rejects_results(self, api_client, sample_id):
        response = api_client.patch(f"/samples/{sample_id}", json={"results": []})
        assert response.status_code == 422

    def test_missing_sample(self, api_client):
        response = api_client.get("/samples/SAM404")
        assert response.status_code == 404
        assert response.json()["error_code"] == "SAMPLE_NOT_FOUND"


class TestResultEndpoints:
    """Test result entry and review endpoints"""

    def test_parameters(self, api_client, sample_id):
        parameters = api_client.get(f"/samples/{sample_id}/parameters").json()

        assert parameters[0]["id"] == "WBC"
        assert parameters[0]["normal_min"] == 4000
        assert parameters[0]["critical_max"] == 20000

    def test_entry_and_review(self, api_client, sample_id):
        draft = api_client.post(f"/samples/{sample_id}/results",
                                json={"values": {"WBC": "12000", "RBC": "??"}}).json()
        assert draft["status"] == "processing"
        assert draft["results"][0]["is_abnormal"] is True
        assert len(draft["results"]) == 1

        submitted = api_client.post(f"/samples/{sample_id}/results/submit",
                                    json={"values": {"HGB": 13.5}, "interpretation": "Mild leukocytosis"})
        assert submitted.json()["review_status"] == "pending_review"

        locked = api_client.post(f"/samples/{sample_id}/results", json={"values": {"WBC": "9000"}})
        assert locked.status_code == 400
        assert locked.json()["error_code"] == "RESULTS_LOCKED"

        reviewed = api_client.post(f"/samples/{sample_id}/review",
                                   json={"reviewer": "Dr. Smith", "approve": True})
        assert reviewed.json()["review_status"] == "approved"

    def test_boolean_value_not_recorded(self, api_client, sample_id):
        response = api_client.post(f"/samples/{sample_id}/results",
                                   json={"values": {"WBC": True, "HGB": "13.5"}})

        assert response.status_code == 200
        assert [r["parameter_id"] for r in response.json()["results"]] == ["HGB"]

    def test_reject_without_reason(self, api_client, sample_id):
        api_client.post(f"/samples/{sample_id}/results/submit", json={"values": {"WBC": "7000"}})
        response = api_client.post(f"/samples/{sample_id}/review",
                                   json={"reviewer": "Dr. Smith", "approve": False})
        assert response.status_code == 422

    def test_submit_empty(self, api_client, sample_id):
        response = api_client.post(f"/samples/{sample_id}/results/submit", json={"values": {}})
        assert response.status_code == 422
        assert response.json()["error_code"] == "NO_RESULTS"


class TestInventoryEndpoints:
    """Test supply and equipment endpoints"""

    def test_list_with_status(self, api_client):
        response = api_client.get("/inventory", params={"category": "control"})
        assert response.status_code == 200
        item = response.json()[0]
        assert item["sku"] == "CTL-GLC-003"
        assert item["status"] == "expired"
        assert item["expiry_label"] == "Expired 65 days ago"

    def test_invalid_category(self, api_client):
        response = api_client.get("/inventory", params={"category": "furniture"})
        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_CATEGORY"

    def test_stats(self, api_client):
        assert api_client.get("/inventory/stats").json() == {
            "total_items": 4, "low_stock": 1, "out_of_stock": 0, "expired": 1, "expiring_soon": 0
        }

    def test_create_and_consume(self, api_client):
        response = api_client.post("/inventory", json={
            "name": "Urine Cups", "category": "consumable", "sku": "CON-URC-005",
            "current_stock": 12, "minimum_stock": 10, "unit": "box",
        })
        assert response.status_code == 201
        item_id = response.json()["id"]
        assert response.json()["status"] == "in_stock"

        consumed = api_client.post(f"/inventory/{item_id}/stock", json={"delta": -2, "reason": "Ward"})
        assert consumed.json()["current_stock"] == 10
        assert consumed.json()["status"] == "low_stock"

        overdrawn = api_client.post(f"/inventory/{item_id}/stock", json={"delta": -11})
        assert overdrawn.status_code == 422
        assert overdrawn.json()["error_code"] == "INSUFFICIENT_STOCK"

    def test_patch_cannot_set_stock(self, api_client):
        response = api_client.patch("/inventory/INV001", json={"current_stock": 0})
        assert response.status_code == 422
        assert api_client.get("/inventory/INV001").json()["current_stock"] == 25

    def test_missing_item(self, api_client):
        response = api_client.get("/inventory/INV404")
        assert response.status_code == 404
        assert response.json()["error_code"] == "ITEM_NOT_FOUND"

    def test_equipment_schedule(self, api_client):
        response = api_client.post("/equipment", json={
            "name": "Coagulation Analyzer", "model": "CoagPro 200", "serial_number": "CP200-2024-007",
            "install_date": "2024-03-01", "maintenance_interval_days": 30,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["next_maintenance"] == "2024-03-31"
        assert body["days_until_maintenance"] == 16
        assert body["needs_maintenance"] is False

    def test_equipment_stats(self, api_client):
        assert api_client.get("/equipment/stats").json() == {
            "total_equipment": 4, "operational": 2, "needs_maintenance": 2, "out_of_service": 0
        }

    def test_record_maintenance(self, api_client):
        response = api_client.post("/equipment/EQ002/maintenance", json={
            "type": "calibration", "description": "Full calibration",
            "performed_by": "BioAnalytics Field Service", "performed_at": "2024-03-14",
        })
        assert response.status_code == 201
        assert response.json()["next_maintenance_date"] == "2024-04-13"

        equipment = api_client.get("/equipment/EQ002").json()
        assert equipment["status"] == "operational"
        assert equipment["last_maintenance"] == "2024-03-14"

        history = api_client.get("/equipment/EQ002/maintenance").json()
        assert [r["performed_at"] for r in history] == ["2024-03-14", "2023-12-15"]

    def test_equipment_status(self, api_client):
        response = api_client.post("/equipment/EQ003/status", json={"status": "out_of_service"})
        assert response.json()["status"] == "out_of_service"
        assert api_client.get("/equipment", params={"status": "out_of_service"}).json()[0]["id"] == "EQ003"
        assert api_client.get("/equipment/EQ404").status_code == 404


class TestAppointmentEndpoints:
    """Test doctor and appointment endpoints"""

    def booking(self, patient_id, **overrides):
        data = {"patient_id": patient_id, "doctor_id": "D001", "scheduled_for": "2024-03-18",
                "time_slot": "10:00", "type": "follow_up", "reason": "Review lipid panel"}
        data.update(overrides)
        return data

    def test_doctors(self, api_client):
        assert len(api_client.get("/doctors").json()) == 3
        assert len(api_client.get("/doctors", params={"available_only": False}).json()) == 4

    def test_book_and_list(self, api_client, patient_id):
        response = api_client.post("/appointments", json=self.booking(patient_id))
        assert response.status_code == 201
        assert response.json()["status"] == "requested"

        listed = api_client.get("/appointments", params={"patient_id": patient_id}).json()
        assert [a["id"] for a in listed] == [response.json()["id"]]

        slots = api_client.get("/doctors/D001/slots", params={"date": "2024-03-18"}).json()
        assert "10:00" not in slots

    def test_slot_taken(self, api_client, patient_id):
        api_client.post("/appointments", json=self.booking(patient_id))
        response = api_client.post("/appointments", json=self.booking(patient_id))

        assert response.status_code == 409
        assert response.json()["error_code"] == "SLOT_TAKEN"

    def test_unknown_patient(self, api_client):
        response = api_client.post("/appointments", json=self.booking("P404"))
        assert response.status_code == 404

    def test_past_date(self, api_client, patient_id):
        response = api_client.post("/appointments",
                                   json=self.booking(patient_id, scheduled_for="2024-03-01"))
        assert response.status_code == 422
        assert response.json()["error_code"] == "DATE_IN_PAST"

    def test_confirm_and_cancel(self, api_client, patient_id):
        appointment_id = api_client.post("/appointments", json=self.booking(patient_id)).json()["id"]

        confirmed = api_client.post(f"/appointments/{appointment_id}/confirm")
        assert confirmed.json()["status"] == "confirmed"

        cancelled = api_client.post(f"/appointments/{appointment_id}/cancel",
                                    json={"reason": "Travelling"})
        assert cancelled.json()["status"] == "cancelled"
        assert cancelled.json()["notes"] == "Travelling"

        again = api_client.post(f"/appointments/{appointment_id}/confirm")
        assert again.status_code == 422
        assert again.json()["error_code"] == "NOT_REQUESTED"


class TestViewEndpoints:
    """Test role view endpoints"""

    def test_list_views(self, api_client):
        assert api_client.get("/views/patient").json()["views"] == ["dashboard", "view_reports",
                                                                    "book_appointment"]
        assert api_client.get("/views/admin").status_code == 404

    def test_render(self, api_client, sample_id):
        response = api_client.get("/views/lab_technician/result_entry",
                                  params={"sample_id": sample_id})
        assert response.status_code == 200
        assert response.json()["data"]["sample"]["id"] == sample_id

    def test_view_not_for_role(self, api_client):
        response = api_client.get("/views/patient/study_data")
        assert response.status_code == 404
        assert response.json()["error_code"] == "UNKNOWN_VIEW"

    def test_missing_view_parameter(self, api_client):
        response = api_client.get("/views/patient/dashboard")
        assert response.status_code == 422
