# rx_core/prescriptions/admin.py
from __future__ import annotations

from django.contrib import admin

from rx_core.prescriptions.models import Prescription, PrescriptionMedicine


class PrescriptionMedicineInline(admin.TabularInline):
    model = PrescriptionMedicine
    extra = 0
    can_delete = False
    readonly_fields = ("position", "dispensed", "dispensed_at", "dispensed_by", "dispense_notes")


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = (
        "prescription_number",
        "prescriber_name",
        "patient_name",
        "status",
        "version",
        "is_deleted",
        "created_at",
    )
    list_filter = ("status", "is_deleted")
    search_fields = ("prescription_number", "prescriber_name", "patient_name", "patient_external_id")
    readonly_fields = ("prescription_number", "version", "deleted_at", "verified_by", "verified_at")
    inlines = [PrescriptionMedicineInline]
    ordering = ("-created_at",)
