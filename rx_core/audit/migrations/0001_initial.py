import django.core.serializers.json
from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("record_id", models.UUIDField(blank=True, db_index=True, null=True)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("updated", "Updated"),
                            ("deleted", "Deleted"),
                            ("viewed", "Viewed"),
                            ("downloaded", "Downloaded"),
                            ("verified", "Verified"),
                            ("dispensed", "Dispensed"),
                            ("pdf_generated", "PDF generated"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("actor_id", models.CharField(db_index=True, max_length=64)),
                (
                    "actor_role",
                    models.CharField(
                        choices=[
                            ("prescriber", "Prescriber"),
                            ("patient", "Patient"),
                            ("dispenser", "Dispenser"),
                            ("overseer", "Overseer"),
                        ],
                        db_index=True,
                        max_length=16,
                    ),
                ),
                ("actor_name", models.CharField(max_length=255)),
                (
                    "changes",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "previous_values",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=512)),
                ("session_id", models.CharField(blank=True, default="", max_length=128)),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "audit_entry",
                "ordering": ["-timestamp", "-id"],
            },
        ),
        migrations.AddIndex(
            model_name="auditentry",
            index=models.Index(fields=["record_id", "timestamp"], name="audit_record_ts_idx"),
        ),
        migrations.AddIndex(
            model_name="auditentry",
            index=models.Index(fields=["actor_id", "timestamp"], name="audit_actor_ts_idx"),
        ),
        migrations.AddIndex(
            model_name="auditentry",
            index=models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
        ),
    ]
