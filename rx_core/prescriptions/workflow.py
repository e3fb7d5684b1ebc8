# rx_core/prescriptions/workflow.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from django.db.models import QuerySet

from rx_core.audit import selectors as audit_selectors
from rx_core.audit.models import AuditAction, AuditEntry
from rx_core.audit.services import AuditLedger, IntegrityReport, RequestMeta
from rx_core.iam.actors import Actor, prescriber_details
from rx_core.prescriptions.gate import Operation, authorize
from rx_core.prescriptions.models import Prescription
from rx_core.prescriptions.repository import PrescriptionRepository, diff, snapshot
from rx_core.prescriptions.selectors import PrescriptionSelectors

CREATE_FIELDS = ("patient", "medicines", "notes", "lab_tests", "follow_up_instructions", "appointment_ref")
PRESCRIBER_FIELDS = ("name", "specialty", "license_number", "phone", "email")


def _log(
    *,
    action: str,
    actor: Actor,
    record_id: UUID | None,
    meta: RequestMeta | None,
    changes: dict | None = None,
    previous_values: dict | None = None,
    metadata: dict | None = None,
) -> None:
    AuditLedger.dispatch(
        action=action,
        actor_id=actor.actor_id,
        actor_role=actor.role,
        actor_name=actor.display_name,
        record_id=record_id,
        changes=changes,
        previous_values=previous_values,
        metadata=metadata,
        request_meta=meta,
    )


class PrescriptionWorkflow:
    """
    Service facade: authorize -> repository -> audit.

    The repository result is returned once the mutation succeeded; the audit
    append is best-effort and never changes the outcome.
    """

    # ---------------------------------------------------------------------
    # Records
    # ---------------------------------------------------------------------
    @staticmethod
    def create(*, actor: Actor, data: Mapping[str, Any], meta: RequestMeta | None = None) -> Prescription:
        authorize(actor.role, Operation.CREATE, actor_id=actor.actor_id)

        # Profile values win; request values only fill what the profile lacks.
        prescriber = prescriber_details(actor)
        supplied = data.get("prescriber") if isinstance(data.get("prescriber"), Mapping) else {}
        for name in PRESCRIBER_FIELDS:
            if not prescriber.get(name) and supplied.get(name):
                prescriber[name] = supplied[name]
        prescriber["id"] = actor.actor_id

        candidate = {key: data[key] for key in CREATE_FIELDS if key in data}
        candidate["prescriber"] = prescriber

        record = PrescriptionRepository.create(data=candidate, actor=actor)

        _log(
            action=AuditAction.CREATED,
            actor=actor,
            record_id=record.pk,
            meta=meta,
            changes=snapshot(record),
            metadata={"prescription_number": record.prescription_number},
        )
        return record

    @staticmethod
    def list_records(*, actor: Actor, params: Mapping[str, Any], meta: RequestMeta | None = None) -> QuerySet[Prescription]:
        authorize(actor.role, Operation.LIST, actor_id=actor.actor_id)
        qs = PrescriptionSelectors.list_for(actor=actor, params=params)

        _log(
            action=AuditAction.VIEWED,
            actor=actor,
            record_id=None,
            meta=meta,
            metadata={
                "filters": {k: params.get(k) for k in ("status", "start_date", "end_date") if params.get(k)},
                "result_count": qs.count(),
            },
        )
        return qs

    @staticmethod
    def retrieve(*, actor: Actor, record_id: UUID, meta: RequestMeta | None = None) -> Prescription:
        record = PrescriptionSelectors.get(record_id=record_id)
        authorize(actor.role, Operation.RETRIEVE, actor_id=actor.actor_id, record=record)

        _log(action=AuditAction.VIEWED, actor=actor, record_id=record.pk, meta=meta)
        return record

    @staticmethod
    def update(
        *,
        actor: Actor,
        record_id: UUID,
        patch: Mapping[str, Any],
        meta: RequestMeta | None = None,
    ) -> Prescription:
        current = PrescriptionSelectors.get(record_id=record_id)
        authorize(actor.role, Operation.UPDATE, actor_id=actor.actor_id, record=current)

        record, before = PrescriptionRepository.update(
            record_id=record_id, patch=patch, actor=actor, with_previous=True
        )
        changes, previous = diff(before, snapshot(record))

        _log(
            action=AuditAction.UPDATED,
            actor=actor,
            record_id=record.pk,
            meta=meta,
            changes=changes,
            previous_values=previous,
            metadata={"version": record.version},
        )
        return record

    @staticmethod
    def soft_delete(*, actor: Actor, record_id: UUID, meta: RequestMeta | None = None) -> Prescription:
        current = PrescriptionSelectors.get(record_id=record_id)
        authorize(actor.role, Operation.SOFT_DELETE, actor_id=actor.actor_id, record=current)

        record, before = PrescriptionRepository.soft_delete(record_id=record_id, actor=actor, with_previous=True)
        changes, previous = diff(before, snapshot(record))

        _log(
            action=AuditAction.DELETED,
            actor=actor,
            record_id=record.pk,
            meta=meta,
            changes=changes,
            previous_values=previous,
            metadata={"prescription_number": record.prescription_number},
        )
        return record

    @staticmethod
    def verify(*, actor: Actor, id_or_number: Any, meta: RequestMeta | None = None) -> Prescription:
        authorize(actor.role, Operation.VERIFY, actor_id=actor.actor_id)

        record = PrescriptionRepository.verify(id_or_number=id_or_number, actor=actor)

        _log(
            action=AuditAction.VERIFIED,
            actor=actor,
            record_id=record.pk,
            meta=meta,
            changes={"verified_by": record.verified_by_id, "verified_at": record.verified_at},
            metadata={"prescription_number": record.prescription_number, "status": record.status},
        )
        return record

    @staticmethod
    def dispense(
        *,
        actor: Actor,
        record_id: UUID,
        medicine_index: Any,
        notes: str | None = None,
        meta: RequestMeta | None = None,
    ) -> Prescription:
        authorize(actor.role, Operation.DISPENSE, actor_id=actor.actor_id)

        record = PrescriptionRepository.dispense_item(
            record_id=record_id,
            medicine_index=medicine_index,
            actor=actor,
            notes=notes,
        )
        item = record.medicines.all()[medicine_index]

        _log(
            action=AuditAction.DISPENSED,
            actor=actor,
            record_id=record.pk,
            meta=meta,
            changes={
                "medicine_index": medicine_index,
                "medicine_name": item.name,
                "dispensed_at": item.dispensed_at,
                "status": record.status,
            },
            metadata={"notes": item.dispense_notes, "fully_dispensed": record.is_fully_dispensed()},
        )
        return record

    # ---------------------------------------------------------------------
    # Audit reads
    # ---------------------------------------------------------------------
    @staticmethod
    def audit_trail(
        *,
        actor: Actor,
        record_id: UUID,
        action: str | None = None,
        actor_role: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditEntry]:
        # History outlives cancellation, so soft-deleted records stay reachable here.
        record = PrescriptionSelectors.get_including_deleted(record_id=record_id)
        authorize(actor.role, Operation.AUDIT_TRAIL, actor_id=actor.actor_id, record=record)

        return audit_selectors.trail(
            record_id=record.pk,
            action=action,
            actor_role=actor_role,
            start=start,
            end=end,
            limit=limit,
        )

    @staticmethod
    def audit_integrity(*, actor: Actor, record_id: UUID) -> IntegrityReport:
        authorize(actor.role, Operation.AUDIT_INTEGRITY, actor_id=actor.actor_id)
        record = PrescriptionSelectors.get_including_deleted(record_id=record_id)
        return AuditLedger.validate_integrity(record_id=record.pk)

    @staticmethod
    def activity(
        *,
        actor: Actor,
        subject_id: str | None = None,
        role: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditEntry]:
        subject = str(subject_id) if subject_id else actor.actor_id
        authorize(actor.role, Operation.AUDIT_ACTIVITY, actor_id=actor.actor_id, subject_id=subject)
        return audit_selectors.activity(actor_id=subject, role=role, start=start, end=end, limit=limit)

    @staticmethod
    def stats(*, actor: Actor, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
        authorize(actor.role, Operation.AUDIT_STATS, actor_id=actor.actor_id)
        return audit_selectors.stats(start=start, end=end)

    @staticmethod
    def compliance_report(*, actor: Actor, start: datetime | None = None, end: datetime | None = None) -> dict:
        authorize(actor.role, Operation.COMPLIANCE_REPORT, actor_id=actor.actor_id)
        return audit_selectors.compliance_report(start=start, end=end)
