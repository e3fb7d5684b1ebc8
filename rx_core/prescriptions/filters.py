# rx_core/prescriptions/filters.py
from __future__ import annotations

import django_filters

from rx_core.prescriptions.models import Prescription, PrescriptionStatus


class PrescriptionFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=PrescriptionStatus.choices)
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Prescription
        fields = ["status", "start_date", "end_date"]
