# rx_core/prescriptions/selectors.py
from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from django.db.models import QuerySet

from rx_core.common.errors import not_found, translate_store_errors, validation_error
from rx_core.iam.actors import Actor
from rx_core.iam.roles import ROLE_PATIENT, ROLE_PRESCRIBER
from rx_core.prescriptions.filters import PrescriptionFilter
from rx_core.prescriptions.models import Prescription


def _flatten_filter_errors(errors: Mapping[str, Any]) -> list[str]:
    return [f"{field}: {msg}" for field, messages in errors.items() for msg in messages]


class PrescriptionSelectors:
    """
    Read-only queries for prescriptions.
    Soft-deleted records are invisible here.
    """

    @staticmethod
    def base_queryset() -> QuerySet[Prescription]:
        return Prescription.objects.filter(is_deleted=False).prefetch_related("medicines")

    @staticmethod
    @translate_store_errors
    def get(*, record_id: UUID) -> Prescription:
        record = PrescriptionSelectors.base_queryset().filter(pk=record_id).first()
        if record is None:
            raise not_found(record_id=str(record_id))
        return record

    @staticmethod
    @translate_store_errors
    def get_including_deleted(*, record_id: UUID) -> Prescription:
        record = Prescription.objects.filter(pk=record_id).first()
        if record is None:
            raise not_found(record_id=str(record_id))
        return record

    @staticmethod
    def visible_to(actor: Actor) -> QuerySet[Prescription]:
        qs = PrescriptionSelectors.base_queryset()
        if actor.role == ROLE_PRESCRIBER:
            return qs.filter(prescriber_id=int(actor.actor_id))
        if actor.role == ROLE_PATIENT:
            return qs.filter(patient_id=int(actor.actor_id))
        return qs

    @staticmethod
    def list_for(*, actor: Actor, params: Mapping[str, Any]) -> QuerySet[Prescription]:
        fs = PrescriptionFilter(data=params, queryset=PrescriptionSelectors.visible_to(actor))
        if not fs.is_valid():
            raise validation_error(_flatten_filter_errors(fs.errors), "Invalid list filters.")
        return fs.qs.order_by("-created_at")
