from django.conf import settings
import django.core.serializers.json
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Prescription",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("prescription_number", models.CharField(db_index=True, editable=False, max_length=32)),
                ("prescriber_name", models.CharField(max_length=255)),
                ("prescriber_specialty", models.CharField(max_length=128)),
                ("prescriber_license_number", models.CharField(blank=True, default="", max_length=64)),
                ("prescriber_phone", models.CharField(blank=True, default="", max_length=32)),
                ("prescriber_email", models.CharField(blank=True, default="", max_length=254)),
                ("patient_name", models.CharField(max_length=255)),
                ("patient_age", models.PositiveSmallIntegerField()),
                (
                    "patient_gender",
                    models.CharField(
                        choices=[("Male", "Male"), ("Female", "Female"), ("Other", "Other")],
                        max_length=16,
                    ),
                ),
                ("patient_external_id", models.CharField(blank=True, default="", max_length=64)),
                ("appointment_ref", models.CharField(blank=True, default="", max_length=64)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "lab_tests",
                    models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                ("follow_up_instructions", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("dispensed", "Dispensed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=16,
                    ),
                ),
                ("version", models.PositiveIntegerField(default=1)),
                ("is_deleted", models.BooleanField(db_index=True, default=False)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "patient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="prescriptions_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "prescriber",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="prescriptions_written",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "verified_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="prescriptions_verified",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "prescriptions_prescription",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PrescriptionMedicine",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("position", models.PositiveSmallIntegerField()),
                ("name", models.CharField(max_length=255)),
                ("dosage", models.CharField(max_length=128)),
                ("frequency", models.CharField(max_length=128)),
                ("duration", models.CharField(max_length=128)),
                ("instructions", models.TextField(blank=True, default="")),
                ("dispensed", models.BooleanField(default=False)),
                ("dispensed_at", models.DateTimeField(blank=True, null=True)),
                ("dispense_notes", models.TextField(blank=True, default="")),
                (
                    "dispensed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="medicines_dispensed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "prescription",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="medicines",
                        to="prescriptions.prescription",
                    ),
                ),
            ],
            options={
                "db_table": "prescriptions_medicine",
                "ordering": ["position"],
            },
        ),
        migrations.AddIndex(
            model_name="prescription",
            index=models.Index(fields=["prescriber", "created_at"], name="rx_prescriber_created_idx"),
        ),
        migrations.AddIndex(
            model_name="prescription",
            index=models.Index(fields=["patient", "created_at"], name="rx_patient_created_idx"),
        ),
        migrations.AddIndex(
            model_name="prescription",
            index=models.Index(fields=["status", "created_at"], name="rx_status_created_idx"),
        ),
        migrations.AddConstraint(
            model_name="prescription",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_deleted", False)),
                fields=("prescription_number",),
                name="uq_rx_number_live",
            ),
        ),
        migrations.AddConstraint(
            model_name="prescriptionmedicine",
            constraint=models.UniqueConstraint(fields=("prescription", "position"), name="uq_rx_medicine_position"),
        ),
    ]
