# rx_core/prescriptions/api/serializers.py
from rest_framework import serializers

from rx_core.prescriptions.models import PatientGender, Prescription, PrescriptionMedicine, PrescriptionStatus


class PrescriptionMedicineSerializer(serializers.ModelSerializer):
    index = serializers.IntegerField(source="position", read_only=True)
    dispensed_by_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PrescriptionMedicine
        fields = [
            "index",
            "name",
            "dosage",
            "frequency",
            "duration",
            "instructions",
            "dispensed",
            "dispensed_at",
            "dispensed_by_id",
            "dispense_notes",
        ]
        read_only_fields = fields


class PrescriptionSerializer(serializers.ModelSerializer):
    prescriber_id = serializers.IntegerField(read_only=True)
    patient_id = serializers.IntegerField(read_only=True)
    verified_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    medicines = PrescriptionMedicineSerializer(many=True, read_only=True)

    class Meta:
        model = Prescription
        fields = [
            "id",
            "prescription_number",
            "prescriber_id",
            "prescriber_name",
            "prescriber_specialty",
            "prescriber_license_number",
            "prescriber_phone",
            "prescriber_email",
            "patient_id",
            "patient_name",
            "patient_age",
            "patient_gender",
            "patient_external_id",
            "appointment_ref",
            "medicines",
            "notes",
            "lab_tests",
            "follow_up_instructions",
            "status",
            "version",
            "is_deleted",
            "deleted_at",
            "verified_by_id",
            "verified_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ---------------------------------------------------------------------------
# Request shapes. Create/update bodies are validated by the record validator
# (which reports every problem at once); these exist for the OpenAPI schema.
# ---------------------------------------------------------------------------
class MedicineInputSerializer(serializers.Serializer):
    name = serializers.CharField()
    dosage = serializers.CharField()
    frequency = serializers.CharField()
    duration = serializers.CharField()
    instructions = serializers.CharField(required=False, allow_blank=True)


class PatientInputSerializer(serializers.Serializer):
    id = serializers.IntegerField(help_text="User id of the patient (required on create).")
    name = serializers.CharField()
    age = serializers.IntegerField(min_value=1, max_value=150)
    gender = serializers.ChoiceField(choices=PatientGender.choices)
    external_id = serializers.CharField(required=False, allow_blank=True)


class PrescriberInputSerializer(serializers.Serializer):
    name = serializers.CharField(required=False)
    specialty = serializers.CharField(required=False)
    license_number = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)


class PrescriptionCreateSerializer(serializers.Serializer):
    patient = PatientInputSerializer()
    prescriber = PrescriberInputSerializer(
        required=False,
        help_text="Only fills details missing from the prescriber's profile.",
    )
    appointment_ref = serializers.CharField(required=False, allow_blank=True)
    medicines = MedicineInputSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    lab_tests = serializers.ListField(child=serializers.CharField(), required=False)
    follow_up_instructions = serializers.CharField(required=False, allow_blank=True)


class PrescriptionUpdateSerializer(serializers.Serializer):
    patient = PatientInputSerializer(required=False)
    appointment_ref = serializers.CharField(required=False, allow_blank=True)
    medicines = MedicineInputSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    lab_tests = serializers.ListField(child=serializers.CharField(), required=False)
    follow_up_instructions = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=PrescriptionStatus.choices, required=False)


class VerifyByNumberSerializer(serializers.Serializer):
    prescription_number = serializers.CharField(required=False, allow_blank=True)


class DispenseInputSerializer(serializers.Serializer):
    medicine_index = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
