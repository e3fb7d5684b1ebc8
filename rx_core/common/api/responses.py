# rx_core/common/api/responses.py
from __future__ import annotations

from typing import Any

from rest_framework import status
from rest_framework.response import Response


def envelope(data: Any, status_code: int = status.HTTP_200_OK, **extra: Any) -> Response:
    """
    Success envelope: {"success": true, "data": ...} plus optional top-level keys
    (e.g. "message").
    """
    body = {"success": True, "data": data}
    body.update(extra)
    return Response(body, status=status_code)
