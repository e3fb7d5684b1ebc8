# rx_core/prescriptions/api/views.py
from __future__ import annotations

from typing import Callable
from uuid import UUID

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from rx_core.audit.api.serializers import AuditEntrySerializer, IntegrityReportSerializer, TrailQuerySerializer
from rx_core.audit.services import request_meta_from
from rx_core.common.api.pagination import paginate
from rx_core.common.api.responses import envelope
from rx_core.common.errors import validation_error
from rx_core.common.idempotency import get_key, release, reserve, save_response
from rx_core.iam.permissions import HasResolvedActor
from rx_core.prescriptions.api.serializers import (
    DispenseInputSerializer,
    PrescriptionCreateSerializer,
    PrescriptionSerializer,
    PrescriptionUpdateSerializer,
    VerifyByNumberSerializer,
)
from rx_core.prescriptions.gate import Operation, authorize
from rx_core.prescriptions.models import Prescription
from rx_core.prescriptions.workflow import PrescriptionWorkflow


def _record_id(pk) -> UUID:
    try:
        return UUID(str(pk))
    except (TypeError, ValueError):
        raise validation_error(["Invalid prescription id"], "Invalid prescription id.")


def _body(request) -> dict:
    data = request.data
    if not hasattr(data, "items"):
        raise validation_error(["Request body must be a JSON object"])
    # QueryDict -> plain dict of single values; JSON bodies are already dicts
    return data.dict() if hasattr(data, "dict") else dict(data)


class PrescriptionViewSet(viewsets.ViewSet):
    """
    Thin API layer:
    - envelope + idempotency replay
    - delegates every decision to PrescriptionWorkflow
    """
    permission_classes = [HasResolvedActor]

    # critical for drf-spectacular
    serializer_class = PrescriptionSerializer
    queryset = Prescription.objects.none()

    # ------------------------------------------------------------
    # Idempotency helpers
    # ------------------------------------------------------------
    def _idempotent(self, request, run: Callable[[], Response]) -> Response:
        """
        Reserve key -> run -> store response. A replay of a finished request
        returns the stored response; a failed run releases the key.
        """
        key = get_key(request)
        if not key:
            return run()

        ident = (request.user.id, request.method, request.path, key)
        stored = reserve(*ident)
        if stored is not None:
            status_code, data = stored
            return Response(data, status=status_code)

        try:
            response = run()
        except Exception:
            release(*ident)
            raise
        save_response(*ident, response.data, response.status_code)
        return response

    def _require(self, request, operation: Operation) -> None:
        # role-only operations: a wrong role is 403 before the body or id is looked at
        authorize(request.actor.role, operation, actor_id=request.actor.actor_id)

    # ------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------
    @extend_schema(tags=["Prescriptions"], responses={200: PrescriptionSerializer(many=True)})
    def list(self, request):
        qs = PrescriptionWorkflow.list_records(
            actor=request.actor,
            params=request.query_params,
            meta=request_meta_from(request),
        )
        return paginate(request, qs, PrescriptionSerializer)

    @extend_schema(tags=["Prescriptions"], request=PrescriptionCreateSerializer, responses={201: PrescriptionSerializer})
    def create(self, request):
        def run():
            record = PrescriptionWorkflow.create(
                actor=request.actor,
                data=_body(request),
                meta=request_meta_from(request),
            )
            return envelope(
                PrescriptionSerializer(record).data,
                status.HTTP_201_CREATED,
                message="Prescription created successfully",
            )

        return self._idempotent(request, run)

    @extend_schema(tags=["Prescriptions"], responses={200: PrescriptionSerializer})
    def retrieve(self, request, pk=None):
        record = PrescriptionWorkflow.retrieve(
            actor=request.actor,
            record_id=_record_id(pk),
            meta=request_meta_from(request),
        )
        return envelope(PrescriptionSerializer(record).data)

    @extend_schema(tags=["Prescriptions"], request=PrescriptionUpdateSerializer, responses={200: PrescriptionSerializer})
    def update(self, request, pk=None):
        record = PrescriptionWorkflow.update(
            actor=request.actor,
            record_id=_record_id(pk),
            patch=_body(request),
            meta=request_meta_from(request),
        )
        return envelope(PrescriptionSerializer(record).data, message="Prescription updated successfully")

    @extend_schema(tags=["Prescriptions"], responses={200: PrescriptionSerializer})
    def destroy(self, request, pk=None):
        record = PrescriptionWorkflow.soft_delete(
            actor=request.actor,
            record_id=_record_id(pk),
            meta=request_meta_from(request),
        )
        return envelope(PrescriptionSerializer(record).data, message="Prescription cancelled successfully")

    # ------------------------------------------------------------
    # Dispensing workflow
    # ------------------------------------------------------------
    @extend_schema(tags=["Prescriptions"], request=None, responses={200: PrescriptionSerializer})
    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request, pk=None):
        self._require(request, Operation.VERIFY)

        def run():
            record = PrescriptionWorkflow.verify(
                actor=request.actor,
                id_or_number=str(_record_id(pk)),
                meta=request_meta_from(request),
            )
            return envelope(PrescriptionSerializer(record).data)

        return self._idempotent(request, run)

    @extend_schema(tags=["Prescriptions"], request=VerifyByNumberSerializer, responses={200: PrescriptionSerializer})
    @action(detail=False, methods=["post"], url_path="verify", url_name="verify-by-number")
    def verify_by_number(self, request):
        self._require(request, Operation.VERIFY)

        def run():
            ser = VerifyByNumberSerializer(data=request.data or {})
            ser.is_valid(raise_exception=True)

            record = PrescriptionWorkflow.verify(
                actor=request.actor,
                id_or_number=(ser.validated_data.get("prescription_number") or "").strip(),
                meta=request_meta_from(request),
            )
            return envelope(PrescriptionSerializer(record).data)

        return self._idempotent(request, run)

    @extend_schema(tags=["Prescriptions"], request=DispenseInputSerializer, responses={200: PrescriptionSerializer})
    @action(detail=True, methods=["post"], url_path="dispense")
    def dispense(self, request, pk=None):
        self._require(request, Operation.DISPENSE)

        def run():
            record_id = _record_id(pk)
            ser = DispenseInputSerializer(data=request.data or {})
            ser.is_valid(raise_exception=True)

            record = PrescriptionWorkflow.dispense(
                actor=request.actor,
                record_id=record_id,
                medicine_index=ser.validated_data["medicine_index"],
                notes=ser.validated_data.get("notes"),
                meta=request_meta_from(request),
            )
            return envelope(PrescriptionSerializer(record).data, message="Medicine dispensed successfully")

        return self._idempotent(request, run)

    # ------------------------------------------------------------
    # Audit history of one record
    # ------------------------------------------------------------
    @extend_schema(tags=["Audit"], parameters=[TrailQuerySerializer], responses={200: AuditEntrySerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="audit")
    def audit(self, request, pk=None):
        record_id = _record_id(pk)
        q = TrailQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        params = q.validated_data

        entries = PrescriptionWorkflow.audit_trail(
            actor=request.actor,
            record_id=record_id,
            action=params.get("action"),
            actor_role=params.get("actor_role"),
            start=params.get("start_date"),
            end=params.get("end_date"),
            limit=params.get("limit"),
        )
        return envelope(AuditEntrySerializer(entries, many=True).data, count=len(entries))

    @extend_schema(tags=["Audit"], responses={200: IntegrityReportSerializer})
    @action(detail=True, methods=["get"], url_path="audit/integrity")
    def audit_integrity(self, request, pk=None):
        report = PrescriptionWorkflow.audit_integrity(actor=request.actor, record_id=_record_id(pk))
        return envelope(IntegrityReportSerializer(report).data)
