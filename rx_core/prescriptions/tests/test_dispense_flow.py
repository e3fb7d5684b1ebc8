# rx_core/prescriptions/tests/test_dispense_flow.py
import pytest

from rx_core.audit.models import AuditEntry
from rx_core.tests.helpers import RECORDS_URL, create_record, record_url

pytestmark = pytest.mark.django_db


def _single_item(rx_payload):
    rx_payload["medicines"] = rx_payload["medicines"][:1]
    return rx_payload


def test_dispense_single_item_then_already_dispensed(prescriber_client, dispenser_client, rx_payload):
    rec = create_record(prescriber_client, _single_item(rx_payload))
    url = record_url(rec["id"]) + "dispense/"

    res = dispenser_client.post(url, {"medicine_index": 0, "notes": "Handed over"}, format="json")
    assert res.status_code == 200, res.data
    data = res.data["data"]
    assert data["status"] == "dispensed"
    assert data["version"] == 2
    assert data["medicines"][0]["dispensed"] is True
    assert data["medicines"][0]["dispense_notes"] == "Handed over"

    again = dispenser_client.post(url, {"medicine_index": 0}, format="json")
    assert again.status_code == 422
    assert again.data["error"]["code"] == "already_dispensed"

    entry = AuditEntry.objects.get(record_id=rec["id"], action="dispensed")
    assert entry.changes["medicine_index"] == 0
    assert entry.metadata["fully_dispensed"] is True


def test_dispense_bad_index_and_roles(prescriber_client, dispenser_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)
    url = record_url(rec["id"]) + "dispense/"

    out_of_range = dispenser_client.post(url, {"medicine_index": 5}, format="json")
    assert out_of_range.status_code == 400
    assert out_of_range.data["error"]["code"] == "index_out_of_range"

    missing = dispenser_client.post(url, {}, format="json")
    assert missing.status_code == 400
    assert missing.data["error"]["code"] == "validation_error"

    wrong_role = prescriber_client.post(url, {"medicine_index": 0}, format="json")
    assert wrong_role.status_code == 403

    unknown = dispenser_client.post(
        record_url("00000000-0000-0000-0000-000000000000") + "dispense/",
        {"medicine_index": 0},
        format="json",
    )
    assert unknown.status_code == 404


def test_wrong_role_is_forbidden_before_body_is_checked(prescriber_client, patient_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)

    empty_dispense = patient_client.post(record_url(rec["id"]) + "dispense/", {}, format="json")
    assert empty_dispense.status_code == 403
    assert empty_dispense.data["error"]["details"] == {"operation": "dispense", "role": "patient"}

    bad_id = patient_client.post(record_url("not-a-uuid") + "dispense/", {}, format="json")
    assert bad_id.status_code == 403

    empty_verify = patient_client.post(RECORDS_URL + "verify/", {}, format="json")
    assert empty_verify.status_code == 403


def test_dispensed_record_rejects_update_and_delete(prescriber_client, dispenser_client, rx_payload):
    rec = create_record(prescriber_client, _single_item(rx_payload))
    dispenser_client.post(record_url(rec["id"]) + "dispense/", {"medicine_index": 0}, format="json")

    upd = prescriber_client.put(record_url(rec["id"]), {"notes": "late"}, format="json")
    assert upd.status_code == 422
    assert upd.data["error"]["code"] == "immutable"

    rm = prescriber_client.delete(record_url(rec["id"]))
    assert rm.status_code == 422


def test_verify_by_id_and_by_number(prescriber_client, dispenser_client, patient_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)

    res = dispenser_client.post(record_url(rec["id"]) + "verify/", format="json")
    assert res.status_code == 200, res.data
    assert res.data["data"]["verified_at"] is not None
    assert res.data["data"]["status"] == "active"

    by_number = dispenser_client.post(
        RECORDS_URL + "verify/",
        {"prescription_number": rec["prescription_number"]},
        format="json",
    )
    assert by_number.status_code == 200
    assert by_number.data["data"]["version"] == 3

    missing = dispenser_client.post(RECORDS_URL + "verify/", {}, format="json")
    assert missing.status_code == 400

    unknown = dispenser_client.post(RECORDS_URL + "verify/", {"prescription_number": "RX-0-00000"}, format="json")
    assert unknown.status_code == 404

    assert patient_client.post(record_url(rec["id"]) + "verify/", format="json").status_code == 403
    assert AuditEntry.objects.filter(record_id=rec["id"], action="verified").count() == 2


def test_idempotency_key_replays_dispense(prescriber_client, dispenser_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)
    url = record_url(rec["id"]) + "dispense/"

    first = dispenser_client.post(url, {"medicine_index": 0}, format="json", HTTP_IDEMPOTENCY_KEY="k-1")
    replay = dispenser_client.post(url, {"medicine_index": 0}, format="json", HTTP_IDEMPOTENCY_KEY="k-1")

    assert first.status_code == 200
    assert replay.status_code == 200
    assert replay.data["data"]["version"] == first.data["data"]["version"] == 2
    assert AuditEntry.objects.filter(record_id=rec["id"], action="dispensed").count() == 1


def test_idempotency_key_replays_create(prescriber_client, rx_payload):
    a = prescriber_client.post(RECORDS_URL, rx_payload, format="json", HTTP_IDEMPOTENCY_KEY="create-1")
    b = prescriber_client.post(RECORDS_URL, rx_payload, format="json", HTTP_IDEMPOTENCY_KEY="create-1")

    assert a.status_code == b.status_code == 201
    assert a.data["data"]["id"] == b.data["data"]["id"]
