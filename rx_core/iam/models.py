# rx_core/iam/models.py
from django.conf import settings
from django.db import models

from rx_core.common.models import TimeStampedModel


class ActorProfile(TimeStampedModel):
    """
    Professional/contact details of a user. Prescriber fields are copied
    onto each prescription at creation time.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="actor_profile",
    )

    display_name = models.CharField(max_length=255, blank=True, default="")
    specialty = models.CharField(max_length=128, blank=True, default="")
    license_number = models.CharField(max_length=64, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")

    class Meta:
        db_table = "iam_actor_profile"

    def __str__(self) -> str:
        return self.display_name or str(self.user_id)
