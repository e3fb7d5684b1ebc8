# rx_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from rx_core.iam.models import ActorProfile


@admin.register(ActorProfile)
class ActorProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "display_name", "specialty", "license_number", "created_at")
    search_fields = ("display_name", "license_number", "user__username", "user__email")
    ordering = ("-created_at",)
