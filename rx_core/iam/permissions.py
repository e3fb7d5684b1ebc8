# rx_core/iam/permissions.py
from __future__ import annotations

from rest_framework.permissions import BasePermission

from rx_core.iam.actors import resolve_actor


class HasResolvedActor(BasePermission):
    """
    Requires an authenticated user with exactly one role.
    On success attaches request.actor for the view layer.
    """
    message = "Your account has no usable role for this service."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        actor = resolve_actor(user)
        if actor is None:
            return False

        request.actor = actor
        return True
