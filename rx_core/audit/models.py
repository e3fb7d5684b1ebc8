# rx_core/audit/models.py
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class AuditImmutableError(Exception):
    """Raised on any attempt to alter or remove a persisted audit entry."""


class AuditAction(models.TextChoices):
    CREATED = "created", "Created"
    UPDATED = "updated", "Updated"
    DELETED = "deleted", "Deleted"
    VIEWED = "viewed", "Viewed"
    DOWNLOADED = "downloaded", "Downloaded"
    VERIFIED = "verified", "Verified"
    DISPENSED = "dispensed", "Dispensed"
    PDF_GENERATED = "pdf_generated", "PDF generated"


class ActorRole(models.TextChoices):
    PRESCRIBER = "prescriber", "Prescriber"
    PATIENT = "patient", "Patient"
    DISPENSER = "dispenser", "Dispenser"
    OVERSEER = "overseer", "Overseer"


class AuditEntryQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditImmutableError("Audit entries cannot be modified.")

    def delete(self):
        raise AuditImmutableError("Audit entries cannot be deleted.")

    def bulk_update(self, objs, fields, batch_size=None):
        raise AuditImmutableError("Audit entries cannot be modified.")

    def bulk_create(self, objs, *args, **kwargs):
        if kwargs.get("update_conflicts") or kwargs.get("ignore_conflicts"):
            raise AuditImmutableError("Audit entries cannot be overwritten.")
        return super().bulk_create(objs, *args, **kwargs)


class AuditEntry(models.Model):
    """
    Immutable audit record. Ascending id is insertion order.
    """
    id = models.BigAutoField(primary_key=True)

    # Null only for list-level "viewed" entries
    record_id = models.UUIDField(null=True, blank=True, db_index=True)
    action = models.CharField(max_length=32, choices=AuditAction.choices, db_index=True)

    actor_id = models.CharField(max_length=64, db_index=True)
    actor_role = models.CharField(max_length=16, choices=ActorRole.choices, db_index=True)
    actor_name = models.CharField(max_length=255)

    changes = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    previous_values = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=512, blank=True, default="")
    session_id = models.CharField(max_length=128, blank=True, default="")

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    objects = AuditEntryQuerySet.as_manager()

    class Meta:
        db_table = "audit_entry"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["record_id", "timestamp"], name="audit_record_ts_idx"),
            models.Index(fields=["actor_id", "timestamp"], name="audit_actor_ts_idx"),
            models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.record_id} by {self.actor_role}:{self.actor_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding or kwargs.get("force_update") or kwargs.get("update_fields"):
            raise AuditImmutableError("Audit entries cannot be modified.")
        # INSERT only: an explicit id that already exists fails instead of updating
        kwargs["force_insert"] = True
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditImmutableError("Audit entries cannot be deleted.")
