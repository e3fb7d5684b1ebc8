# rx_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from rx_core.iam.models import ActorProfile
from rx_core.iam.roles import GROUP_FOR_ROLE, ROLE_DISPENSER, ROLE_OVERSEER, ROLE_PATIENT, ROLE_PRESCRIBER


def make_user(username: str, role: str | None, *, display_name: str = "", specialty: str = "", **profile):
    """
    Creates a user, puts it in the role group (if any) and gives it an ActorProfile.
    """
    User = get_user_model()
    user = User.objects.create_user(
        username=username,
        password="testpass",
        email=f"{username}@example.test",
        is_active=True,
    )
    if role is not None:
        group, _ = Group.objects.get_or_create(name=GROUP_FOR_ROLE[role])
        user.groups.add(group)

    ActorProfile.objects.create(
        user=user,
        display_name=display_name or username.replace("_", " ").title(),
        specialty=specialty,
        **profile,
    )
    return user


def client_for(user) -> APIClient:
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def prescriber(db):
    return make_user(
        "dr_house",
        ROLE_PRESCRIBER,
        display_name="Dr. Gregory House",
        specialty="Diagnostics",
        license_number="LIC-1001",
        phone="+1-555-0100",
    )


@pytest.fixture
def other_prescriber(db):
    return make_user("dr_wilson", ROLE_PRESCRIBER, display_name="Dr. James Wilson", specialty="Oncology")


@pytest.fixture
def patient(db):
    return make_user("pat_jane", ROLE_PATIENT, display_name="Jane Doe")


@pytest.fixture
def other_patient(db):
    return make_user("pat_john", ROLE_PATIENT, display_name="John Roe")


@pytest.fixture
def dispenser(db):
    return make_user("pharm_ann", ROLE_DISPENSER, display_name="Ann Pharmacist")


@pytest.fixture
def overseer(db):
    return make_user("admin_oz", ROLE_OVERSEER, display_name="Oz Overseer")


@pytest.fixture
def prescriber_client(prescriber):
    return client_for(prescriber)


@pytest.fixture
def other_prescriber_client(other_prescriber):
    return client_for(other_prescriber)


@pytest.fixture
def patient_client(patient):
    return client_for(patient)


@pytest.fixture
def other_patient_client(other_patient):
    return client_for(other_patient)


@pytest.fixture
def dispenser_client(dispenser):
    return client_for(dispenser)


@pytest.fixture
def overseer_client(overseer):
    return client_for(overseer)


@pytest.fixture
def rx_payload(patient):
    return {
        "patient": {"id": patient.id, "name": "Jane Doe", "age": 34, "gender": "Female"},
        "medicines": [
            {"name": "Amoxicillin", "dosage": "500mg", "frequency": "3x daily", "duration": "7 days"},
            {
                "name": "Ibuprofen",
                "dosage": "200mg",
                "frequency": "as needed",
                "duration": "5 days",
                "instructions": "Take with food",
            },
        ],
        "notes": "Review in one week",
        "lab_tests": ["CBC"],
    }
