# rx_core/common/middleware.py
from __future__ import annotations

import re

from django.utils.deprecation import MiddlewareMixin

from rx_core.common.api.exceptions import ensure_request_id

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIdMiddleware(MiddlewareMixin):
    """
    Attaches request.request_id (from X-Request-Id when well-formed, otherwise generated)
    and echoes it back on the response so clients can correlate error envelopes with logs.
    """

    HEADER_META_KEY = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-Id"

    def process_request(self, request):
        incoming = request.META.get(self.HEADER_META_KEY) or ""
        if incoming and _SAFE_REQUEST_ID.match(incoming):
            request.request_id = incoming
        else:
            ensure_request_id(request)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid and self.RESPONSE_HEADER not in response:
            response[self.RESPONSE_HEADER] = rid
        return response
