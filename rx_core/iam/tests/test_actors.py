# rx_core/iam/tests/test_actors.py
import pytest
from django.contrib.auth.models import Group
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from rx_core.conftest import make_user
from rx_core.iam.actors import prescriber_details, resolve_actor, user_roles

pytestmark = pytest.mark.django_db


def test_resolve_actor_for_single_role(prescriber):
    actor = resolve_actor(prescriber)
    assert actor.actor_id == str(prescriber.id)
    assert actor.role == "prescriber"
    assert actor.display_name == "Dr. Gregory House"


def test_no_role_or_several_roles_resolve_to_none(db):
    nobody = make_user("nobody", None)
    assert resolve_actor(nobody) is None

    both = make_user("both", "patient")
    both.groups.add(Group.objects.get_or_create(name="OVERSEER")[0])
    assert user_roles(both) == ["overseer", "patient"]
    assert resolve_actor(both) is None


def test_display_name_falls_back_to_username(db):
    from django.contrib.auth import get_user_model

    user = get_user_model().objects.create_user(username="plain", password="x")
    user.groups.add(Group.objects.get_or_create(name="PATIENT")[0])
    assert resolve_actor(user).display_name == "plain"


def test_prescriber_details_reads_profile(prescriber):
    details = prescriber_details(resolve_actor(prescriber))
    assert details == {
        "name": "Dr. Gregory House",
        "specialty": "Diagnostics",
        "license_number": "LIC-1001",
        "phone": "+1-555-0100",
        "email": "dr_house@example.test",
    }


def test_bearer_token_authenticates(patient):
    """
    Must NOT use force_authenticate: the JWT authentication class has to run.
    """
    token = AccessToken.for_user(patient)
    c = APIClient()
    res = c.get("/api/v1/records/", HTTP_AUTHORIZATION=f"Bearer {token}")
    assert res.status_code == 200


def test_cookie_token_authenticates(patient, settings):
    token = AccessToken.for_user(patient)
    c = APIClient()
    c.cookies[settings.SIMPLE_JWT["AUTH_COOKIE"]] = str(token)
    res = c.get("/api/v1/records/")
    assert res.status_code == 200


def test_garbage_token_is_401(db):
    res = APIClient().get("/api/v1/records/", HTTP_AUTHORIZATION="Bearer not-a-jwt")
    assert res.status_code == 401
    assert res.data["error"]["code"] == "not_authenticated"
