# rx_core/prescriptions/repository.py
from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from rx_core.common.errors import (
    DomainError,
    ErrorCode,
    immutable,
    not_found,
    translate_store_errors,
    validation_error,
)
from rx_core.iam.actors import Actor
from rx_core.iam.roles import GROUP_FOR_ROLE, ROLE_PATIENT
from rx_core.prescriptions.identifiers import MAX_ATTEMPTS, IdentifierGenerator
from rx_core.prescriptions.models import Prescription, PrescriptionMedicine, PrescriptionStatus
from rx_core.prescriptions.validators import validate_prescription

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("patient", "medicines", "notes", "lab_tests", "follow_up_instructions", "appointment_ref", "status")
PATIENT_SNAPSHOT_FIELDS = ("name", "age", "gender", "external_id")

# target statuses reachable through update(), per current status
UPDATE_TRANSITIONS = {
    PrescriptionStatus.ACTIVE: {PrescriptionStatus.ACTIVE, PrescriptionStatus.COMPLETED},
    PrescriptionStatus.COMPLETED: {PrescriptionStatus.COMPLETED},
}


def next_version(current: int) -> int:
    """Every successful mutation after creation bumps the version by exactly one."""
    return int(current) + 1


def _trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _medicine_dict(m: PrescriptionMedicine) -> dict[str, Any]:
    return {
        "name": m.name,
        "dosage": m.dosage,
        "frequency": m.frequency,
        "duration": m.duration,
        "instructions": m.instructions,
        "dispensed": m.dispensed,
        "dispensed_at": m.dispensed_at,
        "dispensed_by": m.dispensed_by_id,
    }


def snapshot(record: Prescription) -> dict[str, Any]:
    """Plain-dict view of a record, used for merged validation and audit diffs."""
    return {
        "prescriber": {
            "id": record.prescriber_id,
            "name": record.prescriber_name,
            "specialty": record.prescriber_specialty,
            "license_number": record.prescriber_license_number,
            "phone": record.prescriber_phone,
            "email": record.prescriber_email,
        },
        "patient": {
            "id": record.patient_id,
            "name": record.patient_name,
            "age": record.patient_age,
            "gender": record.patient_gender,
            "external_id": record.patient_external_id,
        },
        "appointment_ref": record.appointment_ref,
        "medicines": [_medicine_dict(m) for m in record.medicines.all()],
        "notes": record.notes,
        "lab_tests": list(record.lab_tests or []),
        "follow_up_instructions": record.follow_up_instructions,
        "status": record.status,
        "version": record.version,
        "is_deleted": record.is_deleted,
        "verified_by": record.verified_by_id,
        "verified_at": record.verified_at,
    }


def diff(before: Mapping[str, Any], after: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Returns (changes, previous_values) for top-level keys that differ."""
    changes: dict[str, Any] = {}
    previous: dict[str, Any] = {}
    for key in after:
        if before.get(key) != after.get(key):
            changes[key] = after.get(key)
            previous[key] = before.get(key)
    return changes, previous


def _clean_medicines(medicines: list[Mapping[str, Any]]) -> list[dict[str, str]]:
    return [
        {
            "name": _trim(m.get("name")),
            "dosage": _trim(m.get("dosage")),
            "frequency": _trim(m.get("frequency")),
            "duration": _trim(m.get("duration")),
            "instructions": _trim(m.get("instructions") or ""),
        }
        for m in medicines
    ]


def _write_medicines(record: Prescription, medicines: list[dict[str, str]]) -> None:
    PrescriptionMedicine.objects.bulk_create(
        [PrescriptionMedicine(prescription=record, position=pos, **m) for pos, m in enumerate(medicines)]
    )


def _resolve_patient(patient_ref: Any):
    User = get_user_model()
    try:
        pk = int(patient_ref)
    except (TypeError, ValueError):
        raise not_found("Patient not found.", patient_id=patient_ref)

    user = User.objects.filter(pk=pk, is_active=True, groups__name=GROUP_FOR_ROLE[ROLE_PATIENT]).first()
    if user is None:
        raise not_found("Patient not found.", patient_id=patient_ref)
    return user


def _reload(pk: UUID) -> Prescription:
    return Prescription.objects.prefetch_related("medicines").get(pk=pk)


def _lock(record_id: UUID) -> Prescription:
    """Row lock for the rest of the transaction: one writer per record."""
    record = Prescription.objects.select_for_update().filter(pk=record_id, is_deleted=False).first()
    if record is None:
        raise not_found(record_id=str(record_id))
    return record


def _parse_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class PrescriptionRepository:
    """
    Canonical prescription state, state machine and versioning.
    All mutating paths run inside one transaction holding the record's row lock.
    """

    generator_class = IdentifierGenerator

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def create(*, data: Mapping[str, Any], actor: Actor) -> Prescription:
        result = validate_prescription(data, is_update=False)
        if not result.is_valid:
            raise validation_error(result.errors)

        patient_user = _resolve_patient(data["patient"]["id"])
        prescriber = data["prescriber"]
        patient = data["patient"]
        medicines = _clean_medicines(data["medicines"])

        generator = PrescriptionRepository.generator_class()
        for attempt in range(1, MAX_ATTEMPTS + 1):
            number = generator.generate()
            try:
                with transaction.atomic():
                    record = Prescription.objects.create(
                        prescription_number=number,
                        prescriber_id=int(actor.actor_id),
                        prescriber_name=_trim(prescriber["name"]),
                        prescriber_specialty=_trim(prescriber["specialty"]),
                        prescriber_license_number=_trim(prescriber.get("license_number") or ""),
                        prescriber_phone=_trim(prescriber.get("phone") or ""),
                        prescriber_email=_trim(prescriber.get("email") or ""),
                        patient=patient_user,
                        patient_name=_trim(patient["name"]),
                        patient_age=patient["age"],
                        patient_gender=patient["gender"],
                        patient_external_id=_trim(patient.get("external_id") or ""),
                        appointment_ref=_trim(data.get("appointment_ref") or ""),
                        notes=_trim(data.get("notes") or ""),
                        lab_tests=[t.strip() for t in data.get("lab_tests") or []],
                        follow_up_instructions=_trim(data.get("follow_up_instructions") or ""),
                        status=PrescriptionStatus.ACTIVE,
                        version=1,
                    )
            except IntegrityError:
                # Lost the race between pre-check and insert; anything else is a real fault.
                if not Prescription.objects.filter(prescription_number=number, is_deleted=False).exists():
                    raise
                logger.warning("Prescription number %s taken at insert (attempt %s/%s)", number, attempt, MAX_ATTEMPTS)
                continue

            _write_medicines(record, medicines)
            logger.info("Prescription %s created by %s", record.prescription_number, actor.actor_id)
            return _reload(record.pk)

        raise DomainError(ErrorCode.IDENTIFIER_GENERATION_EXHAUSTED, details={"attempts": MAX_ATTEMPTS})

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def update(
        *,
        record_id: UUID,
        patch: Mapping[str, Any],
        actor: Actor,
        with_previous: bool = False,
    ) -> Prescription | tuple[Prescription, dict[str, Any]]:
        """
        Applies a partial patch to a live record.
        with_previous=True also returns the snapshot taken under the row lock.
        """
        record = _lock(record_id)
        if not record.can_be_modified():
            raise immutable(record_id=str(record.pk), status=record.status)

        current = snapshot(record)
        candidate = {key: current[key] for key in EDITABLE_FIELDS if key in current}

        for key in EDITABLE_FIELDS:
            if key not in patch:
                continue
            if key == "patient" and isinstance(patch["patient"], Mapping):
                merged = dict(current["patient"])
                merged.update({k: v for k, v in patch["patient"].items() if k in PATIENT_SNAPSHOT_FIELDS})
                candidate["patient"] = merged
            else:
                candidate[key] = patch[key]

        result = validate_prescription(candidate, is_update=True)
        if not result.is_valid:
            raise validation_error(result.errors)

        new_status = candidate["status"]
        if new_status not in UPDATE_TRANSITIONS.get(record.status, set()):
            raise validation_error([f"Status cannot change from {record.status} to {new_status}"])

        if "medicines" in patch and any(m["dispensed"] for m in current["medicines"]):
            raise immutable(
                "Medicines cannot be replaced once dispensing has started.",
                record_id=str(record.pk),
            )

        patient = candidate["patient"]
        record.patient_name = _trim(patient["name"])
        record.patient_age = patient["age"]
        record.patient_gender = patient["gender"]
        record.patient_external_id = _trim(patient.get("external_id") or "")
        record.appointment_ref = _trim(candidate.get("appointment_ref") or "")
        record.notes = _trim(candidate.get("notes") or "")
        record.lab_tests = [t.strip() for t in candidate.get("lab_tests") or []]
        record.follow_up_instructions = _trim(candidate.get("follow_up_instructions") or "")
        record.status = new_status
        record.version = next_version(record.version)
        record.save()

        if "medicines" in patch:
            record.medicines.all().delete()
            _write_medicines(record, _clean_medicines(candidate["medicines"]))

        updated = _reload(record.pk)
        return (updated, current) if with_previous else updated

    # ------------------------------------------------------------------
    # Soft delete (cancel)
    # ------------------------------------------------------------------
    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def soft_delete(
        *,
        record_id: UUID,
        actor: Actor,
        with_previous: bool = False,
    ) -> Prescription | tuple[Prescription, dict[str, Any]]:
        record = _lock(record_id)
        if record.status == PrescriptionStatus.DISPENSED:
            raise immutable(record_id=str(record.pk), status=record.status)

        before = snapshot(record) if with_previous else None

        record.is_deleted = True
        record.deleted_at = timezone.now()
        record.status = PrescriptionStatus.CANCELLED
        record.version = next_version(record.version)
        record.save(update_fields=["is_deleted", "deleted_at", "status", "version", "updated_at"])

        logger.info("Prescription %s cancelled by %s", record.prescription_number, actor.actor_id)
        deleted = _reload(record.pk)
        return (deleted, before) if with_previous else deleted

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------
    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def verify(*, id_or_number: Any, actor: Actor) -> Prescription:
        if id_or_number in (None, ""):
            raise validation_error(["Prescription ID or prescription number is required"])

        qs = Prescription.objects.select_for_update().filter(is_deleted=False)
        pk = _parse_uuid(id_or_number)
        if pk is not None:
            record = qs.filter(pk=pk).first()
        else:
            record = qs.filter(prescription_number=str(id_or_number).strip().upper()).first()

        if record is None:
            raise not_found(identifier=str(id_or_number))
        if record.status == PrescriptionStatus.DISPENSED:
            raise immutable(record_id=str(record.pk), status=record.status)

        record.verified_by_id = int(actor.actor_id)
        record.verified_at = timezone.now()
        record.version = next_version(record.version)
        record.save(update_fields=["verified_by", "verified_at", "version", "updated_at"])
        return _reload(record.pk)

    # ------------------------------------------------------------------
    # Dispense one medicine line
    # ------------------------------------------------------------------
    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def dispense_item(*, record_id: UUID, medicine_index: Any, actor: Actor, notes: str | None = None) -> Prescription:
        record = _lock(record_id)
        items = list(record.medicines.select_for_update().order_by("position"))

        if isinstance(medicine_index, bool) or not isinstance(medicine_index, int) or not (
            0 <= medicine_index < len(items)
        ):
            raise DomainError(
                ErrorCode.INDEX_OUT_OF_RANGE,
                details={"medicine_index": medicine_index, "medicine_count": len(items)},
            )

        item = items[medicine_index]
        if item.dispensed:
            raise DomainError(ErrorCode.ALREADY_DISPENSED, details={"medicine_index": medicine_index})

        item.dispensed = True
        item.dispensed_at = timezone.now()
        item.dispensed_by_id = int(actor.actor_id)
        item.dispense_notes = _trim(notes or "")
        item.save(update_fields=["dispensed", "dispensed_at", "dispensed_by", "dispense_notes"])

        update_fields = ["version", "updated_at"]
        # Last check before save: only a fully dispensed record becomes terminal.
        if all(m.dispensed for m in items):
            record.status = PrescriptionStatus.DISPENSED
            update_fields.append("status")

        record.version = next_version(record.version)
        record.save(update_fields=update_fields)
        return _reload(record.pk)
