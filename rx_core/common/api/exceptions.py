# rx_core/common/api/exceptions.py
from __future__ import annotations

import logging
import uuid
from typing import Any

from django.db import InterfaceError, OperationalError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from rx_core.common.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical failure envelope. Reusable from Django middleware (JsonResponse) and DRF (Response).
    """
    rid = ensure_request_id(request)
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        },
    }


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return ErrorCode.VALIDATION_ERROR.value
    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return ErrorCode.FORBIDDEN.value
    if isinstance(exc, (Http404, NotFound)):
        return ErrorCode.NOT_FOUND.value
    if http_status >= 500:
        return ErrorCode.INTERNAL.value
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    return "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.error("Store unavailable while serving %s: %s", getattr(request, "path", "?"), exc)
        exc = DomainError(ErrorCode.STORE_UNAVAILABLE)

    if isinstance(exc, DomainError):
        return Response(
            build_error_envelope(
                request=request,
                code=exc.code.value,
                message=exc.message,
                details=exc.details,
            ),
            status=exc.http_status,
        )

    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.exception("Unhandled error while serving %s", getattr(request, "path", "?"), exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code=ErrorCode.INTERNAL.value,
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)
    data = response.data

    # 1) {"detail": "..."} only -> message=detail, details=None
    # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) otherwise -> generic message, details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None
    elif code == ErrorCode.VALIDATION_ERROR.value:
        message = "Request validation failed."

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
