# rx_core/prescriptions/tests/test_records_api.py
import pytest
from rest_framework.test import APIClient

from rx_core.audit.models import AuditEntry
from rx_core.conftest import client_for, make_user
from rx_core.prescriptions.models import Prescription
from rx_core.tests.helpers import RECORDS_URL, create_record, record_url

pytestmark = pytest.mark.django_db


def test_create_returns_envelope_with_prescriber_snapshot(prescriber_client, rx_payload, prescriber):
    res = prescriber_client.post(RECORDS_URL, rx_payload, format="json")
    assert res.status_code == 201, res.data

    body = res.data
    assert body["success"] is True
    data = body["data"]
    assert data["prescriber_id"] == prescriber.id
    assert data["prescriber_name"] == "Dr. Gregory House"
    assert data["prescriber_specialty"] == "Diagnostics"
    assert data["prescriber_license_number"] == "LIC-1001"
    assert data["version"] == 1
    assert data["status"] == "active"
    assert [m["index"] for m in data["medicines"]] == [0, 1]

    entry = AuditEntry.objects.get(record_id=data["id"], action="created")
    assert entry.actor_role == "prescriber"
    assert entry.actor_name == "Dr. Gregory House"


def test_create_with_empty_medicines_reports_rule(prescriber_client, rx_payload):
    rx_payload["medicines"] = []
    res = prescriber_client.post(RECORDS_URL, rx_payload, format="json")

    assert res.status_code == 400
    assert res.data["success"] is False
    assert res.data["error"]["code"] == "validation_error"
    assert "At least one medicine required" in res.data["error"]["details"]
    assert "request_id" in res.data["error"]
    assert Prescription.objects.count() == 0
    assert not AuditEntry.objects.filter(action="created").exists()


def test_create_with_over_long_medicine_name_is_400(prescriber_client, rx_payload):
    rx_payload["medicines"][0]["name"] = "N" * 256
    res = prescriber_client.post(RECORDS_URL, rx_payload, format="json")
    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"
    assert "Medicine 1: name must be at most 255 characters" in res.data["error"]["details"]
    assert Prescription.objects.count() == 0


def test_create_missing_specialty_falls_back_to_request(db, rx_payload):
    doc = make_user("dr_blank", "prescriber", display_name="Dr. Blank")
    rx_payload["prescriber"] = {"specialty": "Dermatology", "name": "Someone Else"}

    res = client_for(doc).post(RECORDS_URL, rx_payload, format="json")
    assert res.status_code == 201, res.data
    assert res.data["data"]["prescriber_specialty"] == "Dermatology"
    assert res.data["data"]["prescriber_name"] == "Dr. Blank"


def test_create_for_unknown_patient_is_404(prescriber_client, rx_payload):
    rx_payload["patient"]["id"] = 987654
    res = prescriber_client.post(RECORDS_URL, rx_payload, format="json")
    assert res.status_code == 404
    assert res.data["error"]["code"] == "not_found"


def test_only_prescribers_create(patient_client, dispenser_client, rx_payload):
    for c in (patient_client, dispenser_client):
        res = c.post(RECORDS_URL, rx_payload, format="json")
        assert res.status_code == 403
        assert res.data["error"]["code"] == "forbidden"


def test_forbidden_envelope_names_operation_and_role(patient_client, rx_payload):
    res = patient_client.post(RECORDS_URL, rx_payload, format="json")
    assert res.status_code == 403
    assert res.data["error"]["details"] == {"operation": "create", "role": "patient"}


def test_unauthenticated_is_401(rx_payload):
    res = APIClient().get(RECORDS_URL)
    assert res.status_code == 401
    assert res.data["error"]["code"] == "not_authenticated"


def test_user_without_role_is_forbidden(db):
    nobody = make_user("no_role", None)
    res = client_for(nobody).get(RECORDS_URL)
    assert res.status_code == 403


def test_user_with_two_roles_is_forbidden(db):
    from django.contrib.auth.models import Group

    both = make_user("two_hats", "prescriber")
    both.groups.add(Group.objects.get_or_create(name="DISPENSER")[0])
    res = client_for(both).get(RECORDS_URL)
    assert res.status_code == 403


def test_list_is_scoped_by_role(
    prescriber_client, other_prescriber_client, patient_client, other_patient_client, dispenser_client, rx_payload
):
    create_record(prescriber_client, rx_payload)
    create_record(prescriber_client, rx_payload)

    res = prescriber_client.get(RECORDS_URL)
    assert res.status_code == 200
    assert res.data["success"] is True
    assert res.data["pagination"]["count"] == 2
    assert res.data["pagination"]["page"] == 1

    assert other_prescriber_client.get(RECORDS_URL).data["pagination"]["count"] == 0
    assert patient_client.get(RECORDS_URL).data["pagination"]["count"] == 2
    assert other_patient_client.get(RECORDS_URL).data["pagination"]["count"] == 0
    assert dispenser_client.get(RECORDS_URL).data["pagination"]["count"] == 2

    viewed = AuditEntry.objects.filter(action="viewed", record_id=None)
    assert viewed.count() == 5


def test_list_filters_and_pagination(prescriber_client, rx_payload):
    first = create_record(prescriber_client, rx_payload)
    create_record(prescriber_client, rx_payload)
    prescriber_client.put(record_url(first["id"]), {"status": "completed"}, format="json")

    res = prescriber_client.get(RECORDS_URL, {"status": "completed"})
    assert [r["id"] for r in res.data["data"]] == [first["id"]]

    res = prescriber_client.get(RECORDS_URL, {"page_size": 1})
    assert len(res.data["data"]) == 1
    assert res.data["pagination"]["total_pages"] == 2

    res = prescriber_client.get(RECORDS_URL, {"status": "archived"})
    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"

    res = prescriber_client.get(RECORDS_URL, {"start_date": "2000-01-01", "end_date": "2000-01-02"})
    assert res.data["pagination"]["count"] == 0


def test_retrieve_rules(prescriber_client, other_prescriber_client, patient_client, overseer_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)

    assert prescriber_client.get(record_url(rec["id"])).status_code == 200
    assert patient_client.get(record_url(rec["id"])).status_code == 200
    assert overseer_client.get(record_url(rec["id"])).status_code == 200
    assert other_prescriber_client.get(record_url(rec["id"])).status_code == 403

    bad = prescriber_client.get(record_url("not-a-uuid"))
    assert bad.status_code == 400
    assert bad.data["error"]["code"] == "validation_error"

    missing = prescriber_client.get(record_url("00000000-0000-0000-0000-000000000000"))
    assert missing.status_code == 404


def test_foreign_prescriber_cannot_update(prescriber_client, other_prescriber_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)

    res = other_prescriber_client.put(record_url(rec["id"]), {"notes": "hijack"}, format="json")
    assert res.status_code == 403
    assert res.data["error"]["code"] == "forbidden"

    stored = Prescription.objects.get(pk=rec["id"])
    assert stored.version == 1
    assert stored.notes == "Review in one week"


def test_update_records_diff_in_audit(prescriber_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)

    res = prescriber_client.put(record_url(rec["id"]), {"notes": "  Updated  "}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["data"]["notes"] == "Updated"
    assert res.data["data"]["version"] == 2

    entry = AuditEntry.objects.get(record_id=rec["id"], action="updated")
    assert entry.changes["notes"] == "Updated"
    assert entry.previous_values["notes"] == "Review in one week"
    assert entry.changes["version"] == 2


def test_soft_delete_then_update_fails(prescriber_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)

    res = prescriber_client.delete(record_url(rec["id"]))
    assert res.status_code == 200
    assert res.data["data"]["status"] == "cancelled"
    assert res.data["data"]["is_deleted"] is True

    again = prescriber_client.put(record_url(rec["id"]), {"notes": "x"}, format="json")
    assert again.status_code == 404

    assert prescriber_client.get(RECORDS_URL).data["pagination"]["count"] == 0
    assert Prescription.objects.filter(pk=rec["id"]).exists()
