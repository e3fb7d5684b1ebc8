# rx_core/audit/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action

from rx_core.audit.api.serializers import (
    ActionStatsSerializer,
    ActivityQuerySerializer,
    AuditEntrySerializer,
    PeriodQuerySerializer,
)
from rx_core.audit.models import AuditEntry
from rx_core.common.api.responses import envelope
from rx_core.iam.permissions import HasResolvedActor
from rx_core.prescriptions.workflow import PrescriptionWorkflow


class AuditViewSet(viewsets.GenericViewSet):
    """
    Cross-record audit queries: per-actor activity, statistics, compliance report.
    """
    permission_classes = [HasResolvedActor]

    # makes drf-spectacular happy
    serializer_class = AuditEntrySerializer
    queryset = AuditEntry.objects.none()

    @extend_schema(
        tags=["Audit"],
        parameters=[ActivityQuerySerializer],
        responses={200: AuditEntrySerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="activity")
    def activity(self, request):
        q = ActivityQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        params = q.validated_data

        entries = PrescriptionWorkflow.activity(
            actor=request.actor,
            subject_id=params.get("actor_id"),
            role=params.get("role"),
            start=params.get("start_date"),
            end=params.get("end_date"),
            limit=params.get("limit"),
        )
        return envelope(AuditEntrySerializer(entries, many=True).data, count=len(entries))

    @extend_schema(
        tags=["Audit"],
        parameters=[PeriodQuerySerializer],
        responses={200: ActionStatsSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        q = PeriodQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        rows = PrescriptionWorkflow.stats(
            actor=request.actor,
            start=q.validated_data.get("start_date"),
            end=q.validated_data.get("end_date"),
        )
        return envelope(ActionStatsSerializer(rows, many=True).data)

    @extend_schema(tags=["Audit"], parameters=[PeriodQuerySerializer], responses={200: None})
    @action(detail=False, methods=["get"], url_path="compliance-report", url_name="compliance-report")
    def compliance_report(self, request):
        q = PeriodQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        report = PrescriptionWorkflow.compliance_report(
            actor=request.actor,
            start=q.validated_data.get("start_date"),
            end=q.validated_data.get("end_date"),
        )
        return envelope(report)
