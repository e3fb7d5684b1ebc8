# rx_core/iam/actors.py
from __future__ import annotations

from dataclasses import dataclass

from rx_core.iam.roles import ROLE_GROUPS


@dataclass(frozen=True)
class Actor:
    """
    Authenticated caller as seen by the prescription core.
    actor_id is the auth user id rendered as a string.
    """
    actor_id: str
    role: str
    display_name: str


def user_roles(user) -> list[str]:
    if user is None or not getattr(user, "is_authenticated", False):
        return []
    names = user.groups.filter(name__in=list(ROLE_GROUPS)).values_list("name", flat=True)
    return sorted({ROLE_GROUPS[n] for n in names})


def display_name_for(user) -> str:
    profile = getattr(user, "actor_profile", None)
    if profile is not None and profile.display_name:
        return profile.display_name
    full = (user.get_full_name() or "").strip()
    return full or user.get_username()


def resolve_actor(user) -> Actor | None:
    """
    Exactly one role must match. Users with no role group, or with several,
    cannot act: an ambiguous identity is never silently narrowed.
    """
    roles = user_roles(user)
    if len(roles) != 1:
        return None
    return Actor(actor_id=str(user.pk), role=roles[0], display_name=display_name_for(user))


def prescriber_details(actor: Actor) -> dict[str, str]:
    """
    Current profile details of a prescriber, used as the snapshot source.
    """
    from django.contrib.auth import get_user_model

    from rx_core.iam.models import ActorProfile

    user = get_user_model().objects.get(pk=int(actor.actor_id))
    profile = ActorProfile.objects.filter(user=user).first()
    return {
        "name": actor.display_name,
        "specialty": profile.specialty if profile else "",
        "license_number": profile.license_number if profile else "",
        "phone": profile.phone if profile else "",
        "email": user.email or "",
    }
