# rx_core/tests/helpers.py
from rx_core.iam.actors import resolve_actor

RECORDS_URL = "/api/v1/records/"


def record_url(record_id) -> str:
    return f"{RECORDS_URL}{record_id}/"


def actor_of(user):
    actor = resolve_actor(user)
    assert actor is not None, f"{user} has no usable role"
    return actor


def create_record(client, payload) -> dict:
    res = client.post(RECORDS_URL, payload, format="json")
    assert res.status_code == 201, res.data
    return res.data["data"]
