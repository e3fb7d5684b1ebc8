# rx_core/iam/tests/test_ensure_roles.py
import pytest
from django.contrib.auth.models import Group
from django.core.management import call_command

pytestmark = pytest.mark.django_db


def test_ensure_roles_is_idempotent():
    call_command("ensure_roles")
    call_command("ensure_roles")

    names = set(Group.objects.values_list("name", flat=True))
    assert {"PRESCRIBER", "PATIENT", "DISPENSER", "OVERSEER"} <= names
    assert Group.objects.filter(name="PRESCRIBER").count() == 1
