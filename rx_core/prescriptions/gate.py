# rx_core/prescriptions/gate.py
"""
Authorization decisions over (role, operation, ownership).

Pure: no model or storage imports. A "record" is anything exposing
`prescriber_id` and `patient_id` (model instance, dict-like snapshot or
a simple namespace in tests).
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from rx_core.common.errors import forbidden
from rx_core.iam.roles import ROLE_DISPENSER, ROLE_OVERSEER, ROLE_PATIENT, ROLE_PRESCRIBER


class Operation(str, Enum):
    CREATE = "create"
    LIST = "list"
    RETRIEVE = "retrieve"
    UPDATE = "update"
    SOFT_DELETE = "soft_delete"
    VERIFY = "verify"
    DISPENSE = "dispense"
    AUDIT_TRAIL = "audit_trail"
    AUDIT_ACTIVITY = "audit_activity"
    AUDIT_STATS = "audit_stats"
    AUDIT_INTEGRITY = "audit_integrity"
    COMPLIANCE_REPORT = "compliance_report"


class Rule(str, Enum):
    ANY = "any"
    OWN_AS_PRESCRIBER = "own_as_prescriber"
    OWN_AS_PATIENT = "own_as_patient"
    SELF = "self"


# operation -> {role: rule}; a role missing from the inner map is denied.
DECISION_TABLE: Mapping[Operation, Mapping[str, Rule]] = {
    Operation.CREATE: {ROLE_PRESCRIBER: Rule.ANY},
    Operation.LIST: {
        ROLE_PRESCRIBER: Rule.ANY,
        ROLE_PATIENT: Rule.ANY,
        ROLE_DISPENSER: Rule.ANY,
        ROLE_OVERSEER: Rule.ANY,
    },
    Operation.RETRIEVE: {
        ROLE_PRESCRIBER: Rule.OWN_AS_PRESCRIBER,
        ROLE_PATIENT: Rule.OWN_AS_PATIENT,
        ROLE_DISPENSER: Rule.ANY,
        ROLE_OVERSEER: Rule.ANY,
    },
    Operation.UPDATE: {ROLE_PRESCRIBER: Rule.OWN_AS_PRESCRIBER},
    Operation.SOFT_DELETE: {ROLE_PRESCRIBER: Rule.OWN_AS_PRESCRIBER},
    Operation.VERIFY: {ROLE_DISPENSER: Rule.ANY},
    Operation.DISPENSE: {ROLE_DISPENSER: Rule.ANY},
    Operation.AUDIT_TRAIL: {
        ROLE_PRESCRIBER: Rule.OWN_AS_PRESCRIBER,
        ROLE_PATIENT: Rule.OWN_AS_PATIENT,
        ROLE_DISPENSER: Rule.ANY,
        ROLE_OVERSEER: Rule.ANY,
    },
    Operation.AUDIT_ACTIVITY: {
        ROLE_PRESCRIBER: Rule.SELF,
        ROLE_PATIENT: Rule.SELF,
        ROLE_DISPENSER: Rule.SELF,
        ROLE_OVERSEER: Rule.ANY,
    },
    Operation.AUDIT_STATS: {ROLE_OVERSEER: Rule.ANY},
    Operation.AUDIT_INTEGRITY: {ROLE_OVERSEER: Rule.ANY},
    Operation.COMPLIANCE_REPORT: {ROLE_OVERSEER: Rule.ANY},
}

# Rules that can only be decided against a concrete record.
RECORD_RULES = frozenset({Rule.OWN_AS_PRESCRIBER, Rule.OWN_AS_PATIENT})


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _same(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def is_allowed(
    role: str,
    operation: Operation | str,
    *,
    actor_id: Any,
    record: Any = None,
    subject_id: Any = None,
) -> bool:
    """
    `subject_id` is the actor whose activity is being queried (audit_activity only).
    """
    try:
        op = Operation(operation)
    except ValueError:
        return False

    rule = DECISION_TABLE.get(op, {}).get(role)
    if rule is None:
        return False

    if rule is Rule.ANY:
        return True

    if rule is Rule.SELF:
        return _same(subject_id, actor_id)

    if rule in RECORD_RULES and record is None:
        return False

    if rule is Rule.OWN_AS_PRESCRIBER:
        return _same(_field(record, "prescriber_id"), actor_id)

    if rule is Rule.OWN_AS_PATIENT:
        return _same(_field(record, "patient_id"), actor_id)

    return False


def authorize(role: str, operation: Operation | str, *, actor_id: Any, record: Any = None, subject_id: Any = None) -> None:
    if not is_allowed(role, operation, actor_id=actor_id, record=record, subject_id=subject_id):
        op = operation.value if isinstance(operation, Operation) else str(operation)
        raise forbidden(operation=op, role=role)
