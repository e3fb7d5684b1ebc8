# rx_core/common/views.py
from __future__ import annotations

import logging

from django.db import DatabaseError, connection
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from rx_core.common.api.exceptions import build_error_envelope
from rx_core.common.api.responses import envelope
from rx_core.common.errors import ErrorCode

logger = logging.getLogger(__name__)


class HealthView(APIView):
    """
    Liveness + store reachability. Public; no authentication.
    """
    authentication_classes: list = []
    permission_classes = [AllowAny]

    @extend_schema(tags=["Health"], responses={200: None, 503: None})
    def get(self, request):
        try:
            connection.ensure_connection()
        except DatabaseError as exc:
            logger.error("Health check: store unreachable: %s", exc)
            return Response(
                build_error_envelope(
                    request=request,
                    code=ErrorCode.STORE_UNAVAILABLE.value,
                    message="The record store is temporarily unavailable.",
                ),
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        return envelope({"status": "ok", "time": timezone.now()})
