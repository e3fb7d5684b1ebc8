# rx_core/audit/api/serializers.py
from rest_framework import serializers

from rx_core.audit.models import ActorRole, AuditAction, AuditEntry

DATE_INPUT_FORMATS = ["iso-8601", "%Y-%m-%d"]


class AuditEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditEntry
        fields = [
            "id",
            "record_id",
            "action",
            "actor_id",
            "actor_role",
            "actor_name",
            "changes",
            "previous_values",
            "metadata",
            "ip_address",
            "user_agent",
            "session_id",
            "timestamp",
        ]
        read_only_fields = fields


class PeriodQuerySerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    end_date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must not be after end_date.")
        return attrs


class TrailQuerySerializer(PeriodQuerySerializer):
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    actor_role = serializers.ChoiceField(choices=ActorRole.choices, required=False)
    limit = serializers.IntegerField(required=False, min_value=1)


class ActivityQuerySerializer(PeriodQuerySerializer):
    actor_id = serializers.CharField(required=False, max_length=64)
    role = serializers.ChoiceField(choices=ActorRole.choices, required=False)
    limit = serializers.IntegerField(required=False, min_value=1)


class IntegrityIssueSerializer(serializers.Serializer):
    entry_id = serializers.IntegerField()
    problem = serializers.CharField()


class IntegrityReportSerializer(serializers.Serializer):
    record_id = serializers.UUIDField()
    entries_checked = serializers.IntegerField()
    valid = serializers.BooleanField(source="is_valid")
    issues = IntegrityIssueSerializer(many=True)


class ActionStatsSerializer(serializers.Serializer):
    action = serializers.CharField()
    count = serializers.IntegerField()
    last_activity = serializers.DateTimeField(allow_null=True)
    by_role = serializers.DictField(child=serializers.IntegerField())
