# rx_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from rx_core.audit.api.views import AuditViewSet
from rx_core.common.views import HealthView
from rx_core.prescriptions.api.views import PrescriptionViewSet

router = DefaultRouter()

router.register(r"records", PrescriptionViewSet, basename="records")
router.register(r"audit", AuditViewSet, basename="audit")

urlpatterns = [
    path("health/", HealthView.as_view(), name="health"),
]

urlpatterns += router.urls
