# rx_core/prescriptions/validators.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from rx_core.prescriptions.models import PatientGender, Prescription, PrescriptionMedicine, PrescriptionStatus

MIN_PATIENT_AGE = 1
MAX_PATIENT_AGE = 150

MEDICINE_REQUIRED_FIELDS = ("name", "dosage", "frequency", "duration")
FREE_TEXT_FIELDS = ("notes", "follow_up_instructions", "appointment_ref")

# input key -> bounded column it is stored in
PRESCRIBER_COLUMNS = {
    "name": "prescriber_name",
    "specialty": "prescriber_specialty",
    "license_number": "prescriber_license_number",
    "phone": "prescriber_phone",
    "email": "prescriber_email",
}
PATIENT_COLUMNS = {"name": "patient_name", "external_id": "patient_external_id"}
RECORD_COLUMNS = {"appointment_ref": "appointment_ref"}


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def _filled(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _valid_age(value: Any) -> bool:
    # bool is an int subclass; True must not pass as age 1
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return MIN_PATIENT_AGE <= value <= MAX_PATIENT_AGE


def _max_length(model, column: str) -> int:
    return model._meta.get_field(column).max_length


def _check_lengths(values: Mapping[str, Any], columns: Mapping[str, str], model, label: str, errors: list[str]) -> None:
    for key, column in columns.items():
        value = values.get(key)
        limit = _max_length(model, column)
        # stored trimmed
        if isinstance(value, str) and len(value.strip()) > limit:
            subject = f"{label}{key.replace('_', ' ')}"
            errors.append(f"{subject[0].upper()}{subject[1:]} must be at most {limit} characters")


def _check_prescriber(prescriber: Any, errors: list[str]) -> None:
    if not isinstance(prescriber, Mapping):
        errors.append("Prescriber information is required")
        return
    if not _filled(prescriber.get("name")):
        errors.append("Prescriber name is required")
    if not _filled(prescriber.get("specialty")):
        errors.append("Prescriber specialty is required")
    _check_lengths(prescriber, PRESCRIBER_COLUMNS, Prescription, "Prescriber ", errors)


def _check_patient(patient: Any, errors: list[str], *, require_reference: bool) -> None:
    if not isinstance(patient, Mapping):
        errors.append("Patient information is required")
        return
    if require_reference and patient.get("id") in (None, ""):
        errors.append("Patient reference is required")
    if not _filled(patient.get("name")):
        errors.append("Patient name is required")
    if not _valid_age(patient.get("age")):
        errors.append(f"Patient age must be a whole number between {MIN_PATIENT_AGE} and {MAX_PATIENT_AGE}")
    if patient.get("gender") not in PatientGender.values:
        errors.append("Patient gender must be one of: " + ", ".join(PatientGender.values))
    _check_lengths(patient, PATIENT_COLUMNS, Prescription, "Patient ", errors)


def _check_medicines(medicines: Any, errors: list[str]) -> None:
    if not isinstance(medicines, list) or not medicines:
        errors.append("At least one medicine required")
        return

    for pos, med in enumerate(medicines, start=1):
        if not isinstance(med, Mapping):
            errors.append(f"Medicine {pos}: must be an object")
            continue
        for name in MEDICINE_REQUIRED_FIELDS:
            if not _filled(med.get(name)):
                errors.append(f"Medicine {pos}: {name} is required")
        _check_lengths(
            med,
            {name: name for name in MEDICINE_REQUIRED_FIELDS},
            PrescriptionMedicine,
            f"Medicine {pos}: ",
            errors,
        )
        instructions = med.get("instructions")
        if instructions is not None and not isinstance(instructions, str):
            errors.append(f"Medicine {pos}: instructions must be a string")


def validate_prescription(candidate: Mapping[str, Any], *, is_update: bool) -> ValidationResult:
    """
    Structural and business-rule check of a prescription candidate.

    On create, prescriber and patient are mandatory; on update only the
    sub-objects that are present get checked. Every violation is collected,
    never just the first.
    """
    errors: list[str] = []

    if not isinstance(candidate, Mapping):
        return ValidationResult(is_valid=False, errors=["Prescription data must be an object"])

    if not is_update or "prescriber" in candidate:
        _check_prescriber(candidate.get("prescriber"), errors)

    if not is_update or "patient" in candidate:
        _check_patient(candidate.get("patient"), errors, require_reference=not is_update)

    if not is_update or "medicines" in candidate:
        _check_medicines(candidate.get("medicines"), errors)

    if "status" in candidate and candidate.get("status") not in PrescriptionStatus.values:
        errors.append("Status must be one of: " + ", ".join(PrescriptionStatus.values))

    if "lab_tests" in candidate:
        lab_tests = candidate.get("lab_tests")
        if not isinstance(lab_tests, list) or not all(isinstance(t, str) for t in lab_tests):
            errors.append("Lab tests must be a list of names")

    for name in FREE_TEXT_FIELDS:
        value = candidate.get(name)
        if value is not None and not isinstance(value, str):
            errors.append(f"{name.replace('_', ' ').capitalize()} must be a string")
    _check_lengths(candidate, RECORD_COLUMNS, Prescription, "", errors)

    return ValidationResult(is_valid=not errors, errors=errors)
