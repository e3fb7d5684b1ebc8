# rx_core/prescriptions/models.py
from __future__ import annotations

import uuid

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Q

from rx_core.common.models import TimeStampedModel


class PrescriptionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    DISPENSED = "dispensed", "Dispensed"
    CANCELLED = "cancelled", "Cancelled"


class PatientGender(models.TextChoices):
    MALE = "Male", "Male"
    FEMALE = "Female", "Female"
    OTHER = "Other", "Other"


class Prescription(TimeStampedModel):
    """
    A prescription record. Prescriber and patient details are snapshots
    taken at creation; later profile edits do not flow back here.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    prescription_number = models.CharField(max_length=32, db_index=True, editable=False)

    # Prescriber snapshot
    prescriber = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="prescriptions_written",
    )
    prescriber_name = models.CharField(max_length=255)
    prescriber_specialty = models.CharField(max_length=128)
    prescriber_license_number = models.CharField(max_length=64, blank=True, default="")
    prescriber_phone = models.CharField(max_length=32, blank=True, default="")
    prescriber_email = models.CharField(max_length=254, blank=True, default="")

    # Patient snapshot
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="prescriptions_received",
    )
    patient_name = models.CharField(max_length=255)
    patient_age = models.PositiveSmallIntegerField()
    patient_gender = models.CharField(max_length=16, choices=PatientGender.choices)
    patient_external_id = models.CharField(max_length=64, blank=True, default="")
    appointment_ref = models.CharField(max_length=64, blank=True, default="")

    notes = models.TextField(blank=True, default="")
    lab_tests = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    follow_up_instructions = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=PrescriptionStatus.choices,
        default=PrescriptionStatus.ACTIVE,
        db_index=True,
    )
    version = models.PositiveIntegerField(default=1)

    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="prescriptions_verified",
        null=True,
        blank=True,
    )
    verified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "prescriptions_prescription"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["prescription_number"],
                condition=Q(is_deleted=False),
                name="uq_rx_number_live",
            ),
        ]
        indexes = [
            models.Index(fields=["prescriber", "created_at"], name="rx_prescriber_created_idx"),
            models.Index(fields=["patient", "created_at"], name="rx_patient_created_idx"),
            models.Index(fields=["status", "created_at"], name="rx_status_created_idx"),
        ]

    def __str__(self) -> str:
        return self.prescription_number

    def can_be_modified(self) -> bool:
        return not self.is_deleted and self.status != PrescriptionStatus.DISPENSED

    def is_fully_dispensed(self) -> bool:
        items = list(self.medicines.all())
        return bool(items) and all(m.dispensed for m in items)


class PrescriptionMedicine(models.Model):
    """
    One medicine line. `position` is the 0-based index clients use to dispense.
    """
    id = models.BigAutoField(primary_key=True)

    prescription = models.ForeignKey(Prescription, on_delete=models.CASCADE, related_name="medicines")
    position = models.PositiveSmallIntegerField()

    name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=128)
    frequency = models.CharField(max_length=128)
    duration = models.CharField(max_length=128)
    instructions = models.TextField(blank=True, default="")

    dispensed = models.BooleanField(default=False)
    dispensed_at = models.DateTimeField(null=True, blank=True)
    dispensed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="medicines_dispensed",
        null=True,
        blank=True,
    )
    dispense_notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "prescriptions_medicine"
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["prescription", "position"], name="uq_rx_medicine_position"),
        ]

    def __str__(self) -> str:
        return f"{self.name} {self.dosage}"
