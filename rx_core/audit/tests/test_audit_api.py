# rx_core/audit/tests/test_audit_api.py
import pytest

from rx_core.audit.models import AuditEntry
from rx_core.tests.helpers import create_record, record_url

pytestmark = pytest.mark.django_db


@pytest.fixture
def record(prescriber_client, dispenser_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)
    prescriber_client.put(record_url(rec["id"]), {"notes": "changed"}, format="json")
    dispenser_client.post(record_url(rec["id"]) + "dispense/", {"medicine_index": 0}, format="json")
    return rec


def test_trail_newest_first_with_filters(record, prescriber_client, patient_client, overseer_client):
    url = record_url(record["id"]) + "audit/"

    res = prescriber_client.get(url)
    assert res.status_code == 200
    actions = [e["action"] for e in res.data["data"]]
    assert actions == ["dispensed", "updated", "created"]
    assert res.data["count"] == 3

    only = overseer_client.get(url, {"action": "updated"})
    assert [e["action"] for e in only.data["data"]] == ["updated"]

    by_role = patient_client.get(url, {"actor_role": "dispenser"})
    assert [e["actor_role"] for e in by_role.data["data"]] == ["dispenser"]

    limited = overseer_client.get(url, {"limit": 1})
    assert len(limited.data["data"]) == 1

    bad = overseer_client.get(url, {"action": "nuked"})
    assert bad.status_code == 400


def test_trail_forbidden_for_foreign_actors(record, other_prescriber_client, other_patient_client):
    url = record_url(record["id"]) + "audit/"
    assert other_prescriber_client.get(url).status_code == 403
    assert other_patient_client.get(url).status_code == 403


def test_trail_survives_soft_delete(prescriber_client, rx_payload):
    rec = create_record(prescriber_client, rx_payload)
    prescriber_client.delete(record_url(rec["id"]))

    res = prescriber_client.get(record_url(rec["id"]) + "audit/")
    assert res.status_code == 200
    assert [e["action"] for e in res.data["data"]] == ["deleted", "created"]


def test_integrity_endpoint_is_overseer_only(record, overseer_client, dispenser_client):
    url = record_url(record["id"]) + "audit/integrity/"

    res = overseer_client.get(url)
    assert res.status_code == 200
    assert res.data["data"]["valid"] is True
    assert res.data["data"]["entries_checked"] == 3

    assert dispenser_client.get(url).status_code == 403


def test_activity_self_and_overseer(record, dispenser, dispenser_client, overseer_client, patient_client):
    mine = dispenser_client.get("/api/v1/audit/activity/")
    assert mine.status_code == 200
    assert {e["actor_id"] for e in mine.data["data"]} == {str(dispenser.id)}

    other = patient_client.get("/api/v1/audit/activity/", {"actor_id": str(dispenser.id)})
    assert other.status_code == 403

    seen = overseer_client.get("/api/v1/audit/activity/", {"actor_id": str(dispenser.id), "role": "dispenser"})
    assert seen.status_code == 200
    assert [e["action"] for e in seen.data["data"]] == ["dispensed"]


def test_stats_and_compliance_report(record, overseer_client, prescriber_client):
    stats = overseer_client.get("/api/v1/audit/stats/")
    assert stats.status_code == 200
    by_action = {row["action"]: row for row in stats.data["data"]}
    assert by_action["created"]["count"] == 1
    assert by_action["created"]["by_role"] == {"prescriber": 1}
    assert by_action["dispensed"]["by_role"] == {"dispenser": 1}

    report = overseer_client.get("/api/v1/audit/compliance-report/", {"start_date": "2000-01-01"})
    assert report.status_code == 200
    data = report.data["data"]
    total = AuditEntry.objects.count()
    assert data["total_actions"] == total
    assert data["records_touched"] == 1
    assert sum(a["count"] for a in data["actions"]) == total
    assert {a["action"] for a in data["actions"]} >= {"created", "pdf_generated"}

    assert prescriber_client.get("/api/v1/audit/stats/").status_code == 403
    assert prescriber_client.get("/api/v1/audit/compliance-report/").status_code == 403

    bad = overseer_client.get("/api/v1/audit/stats/", {"start_date": "2024-02-01", "end_date": "2024-01-01"})
    assert bad.status_code == 400
