# rx_core/audit/admin.py
from django.contrib import admin

from rx_core.audit.models import AuditEntry


@admin.register(AuditEntry)
class AuditEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "action", "record_id", "actor_role", "actor_id", "actor_name", "timestamp")
    list_filter = ("action", "actor_role")
    search_fields = ("record_id", "actor_id", "actor_name")
    ordering = ("-timestamp", "-id")

    # The ledger is append-only; admin is a viewer.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
