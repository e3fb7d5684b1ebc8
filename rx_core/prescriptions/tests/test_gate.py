# rx_core/prescriptions/tests/test_gate.py
from types import SimpleNamespace

import pytest

from rx_core.common.errors import DomainError, ErrorCode
from rx_core.prescriptions.gate import DECISION_TABLE, Operation, authorize, is_allowed

PRESCRIBER, PATIENT, DISPENSER, OVERSEER = "prescriber", "patient", "dispenser", "overseer"

RECORD = SimpleNamespace(prescriber_id=10, patient_id=20)

OWN_PRESCRIBER = "10"
OTHER_PRESCRIBER = "11"
OWN_PATIENT = "20"
OTHER_PATIENT = "21"
ANYONE = "99"


@pytest.mark.parametrize(
    "role, operation, actor_id, expected",
    [
        # create
        (PRESCRIBER, Operation.CREATE, OWN_PRESCRIBER, True),
        (PATIENT, Operation.CREATE, OWN_PATIENT, False),
        (DISPENSER, Operation.CREATE, ANYONE, False),
        (OVERSEER, Operation.CREATE, ANYONE, False),
        # retrieve
        (PRESCRIBER, Operation.RETRIEVE, OWN_PRESCRIBER, True),
        (PRESCRIBER, Operation.RETRIEVE, OTHER_PRESCRIBER, False),
        (PATIENT, Operation.RETRIEVE, OWN_PATIENT, True),
        (PATIENT, Operation.RETRIEVE, OTHER_PATIENT, False),
        (DISPENSER, Operation.RETRIEVE, ANYONE, True),
        (OVERSEER, Operation.RETRIEVE, ANYONE, True),
        # update / soft delete
        (PRESCRIBER, Operation.UPDATE, OWN_PRESCRIBER, True),
        (PRESCRIBER, Operation.UPDATE, OTHER_PRESCRIBER, False),
        (PATIENT, Operation.UPDATE, OWN_PATIENT, False),
        (DISPENSER, Operation.UPDATE, ANYONE, False),
        (OVERSEER, Operation.UPDATE, ANYONE, False),
        (PRESCRIBER, Operation.SOFT_DELETE, OWN_PRESCRIBER, True),
        (PRESCRIBER, Operation.SOFT_DELETE, OTHER_PRESCRIBER, False),
        (OVERSEER, Operation.SOFT_DELETE, ANYONE, False),
        # verify / dispense
        (DISPENSER, Operation.VERIFY, ANYONE, True),
        (PRESCRIBER, Operation.VERIFY, OWN_PRESCRIBER, False),
        (OVERSEER, Operation.VERIFY, ANYONE, False),
        (DISPENSER, Operation.DISPENSE, ANYONE, True),
        (PRESCRIBER, Operation.DISPENSE, OWN_PRESCRIBER, False),
        (PATIENT, Operation.DISPENSE, OWN_PATIENT, False),
        # audit trail
        (PRESCRIBER, Operation.AUDIT_TRAIL, OWN_PRESCRIBER, True),
        (PRESCRIBER, Operation.AUDIT_TRAIL, OTHER_PRESCRIBER, False),
        (PATIENT, Operation.AUDIT_TRAIL, OWN_PATIENT, True),
        (DISPENSER, Operation.AUDIT_TRAIL, ANYONE, True),
        (OVERSEER, Operation.AUDIT_TRAIL, ANYONE, True),
        # overseer-only reports
        (OVERSEER, Operation.AUDIT_STATS, ANYONE, True),
        (DISPENSER, Operation.AUDIT_STATS, ANYONE, False),
        (OVERSEER, Operation.AUDIT_INTEGRITY, ANYONE, True),
        (PRESCRIBER, Operation.AUDIT_INTEGRITY, OWN_PRESCRIBER, False),
        (OVERSEER, Operation.COMPLIANCE_REPORT, ANYONE, True),
        (PATIENT, Operation.COMPLIANCE_REPORT, OWN_PATIENT, False),
    ],
)
def test_decision_table(role, operation, actor_id, expected):
    assert is_allowed(role, operation, actor_id=actor_id, record=RECORD) is expected


@pytest.mark.parametrize("role", [PRESCRIBER, PATIENT, DISPENSER, OVERSEER])
def test_every_role_may_list(role):
    assert is_allowed(role, Operation.LIST, actor_id=ANYONE)


def test_unknown_role_and_operation_are_denied():
    assert not is_allowed("admin", Operation.RETRIEVE, actor_id=ANYONE, record=RECORD)
    assert not is_allowed(OVERSEER, "drop_table", actor_id=ANYONE)


def test_ownership_rules_deny_without_record():
    assert not is_allowed(PRESCRIBER, Operation.UPDATE, actor_id=OWN_PRESCRIBER, record=None)


def test_record_may_be_a_mapping():
    assert is_allowed(PATIENT, "retrieve", actor_id=20, record={"prescriber_id": 10, "patient_id": 20})


def test_activity_is_self_only_except_overseer():
    assert is_allowed(PATIENT, Operation.AUDIT_ACTIVITY, actor_id="20", subject_id="20")
    assert not is_allowed(PATIENT, Operation.AUDIT_ACTIVITY, actor_id="20", subject_id="21")
    assert is_allowed(OVERSEER, Operation.AUDIT_ACTIVITY, actor_id="1", subject_id="21")


def test_every_operation_has_an_entry():
    assert set(DECISION_TABLE) == set(Operation)


def test_authorize_raises_forbidden():
    with pytest.raises(DomainError) as ei:
        authorize(PATIENT, Operation.UPDATE, actor_id=OWN_PATIENT, record=RECORD)
    assert ei.value.code == ErrorCode.FORBIDDEN
    assert ei.value.details == {"operation": "update", "role": "patient"}
