# rx_core/common/idempotency.py
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import APIException

from rx_core.common.models import IdempotencyRecord

# in-process store for dev: key -> (status_code, data), None while the first request runs
LOCAL_STORE_MAX_ENTRIES = 1024

_LOCK = threading.Lock()
_STORE: OrderedDict[tuple[str, str, str, str], tuple[int, Any] | None] = OrderedDict()


class IdempotencyInProgress(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A request with this Idempotency-Key is still being processed."
    default_code = "idempotency_in_progress"


def _use_db() -> bool:
    """
    Enable in production with:
        RX_IDEMPOTENCY_USE_DB = True
    """
    return bool(getattr(settings, "RX_IDEMPOTENCY_USE_DB", False))


def get_key(request):
    # DRF test client: HTTP_IDEMPOTENCY_KEY -> request.META["HTTP_IDEMPOTENCY_KEY"]
    return request.META.get("HTTP_IDEMPOTENCY_KEY")


def _norm(user_id, method, path, key):
    return (str(user_id), method.upper(), path, str(key))


def _records(user_id, method, path, key):
    return IdempotencyRecord.objects.filter(
        user_id=int(user_id),
        method=method.upper(),
        path=path,
        idempotency_key=str(key),
    )


def _evict_local() -> None:
    # oldest finished entries go first; running ones are kept
    while len(_STORE) > LOCAL_STORE_MAX_ENTRIES:
        victim = next((k for k, v in _STORE.items() if v is not None), None)
        if victim is None:
            return
        del _STORE[victim]


def reserve(user_id, method, path, key):
    """
    Claims the key before the request executes.

    Returns None when this caller owns the key and must run the request,
    or the stored (status_code, response_data) when it already finished.
    Raises IdempotencyInProgress while another request holds the key.
    """
    if not _use_db():
        k = _norm(user_id, method, path, key)
        with _LOCK:
            if k not in _STORE:
                _STORE[k] = None
                return None
            stored = _STORE[k]
        if stored is None:
            raise IdempotencyInProgress()
        return stored

    try:
        with transaction.atomic():
            IdempotencyRecord.objects.create(
                user_id=int(user_id),
                method=method.upper(),
                path=path,
                idempotency_key=str(key),
                is_pending=True,
            )
        return None
    except IntegrityError:
        pass

    rec = _records(user_id, method, path, key).first()
    if rec is None or rec.is_pending:
        # still running, or released between our insert and this read
        raise IdempotencyInProgress()
    return (rec.status_code, rec.response_data)


def save_response(user_id, method, path, key, response_data, status_code: int = 200):
    """Stores the outcome of a reserved request so replays can return it."""
    if not key:
        return

    if not _use_db():
        with _LOCK:
            _STORE[_norm(user_id, method, path, key)] = (int(status_code), response_data)
            _evict_local()
        return

    updated = _records(user_id, method, path, key).update(
        is_pending=False,
        status_code=int(status_code),
        response_data=response_data,
        updated_at=timezone.now(),
    )
    if updated:
        return

    # not reserved first (or released meanwhile): plain insert
    try:
        with transaction.atomic():
            IdempotencyRecord.objects.create(
                user_id=int(user_id),
                method=method.upper(),
                path=path,
                idempotency_key=str(key),
                status_code=int(status_code),
                response_data=response_data,
            )
    except IntegrityError:
        # already saved by a concurrent request
        return


def release(user_id, method, path, key) -> None:
    """Drops a reservation whose request failed, so the client may retry."""
    if not key:
        return

    if not _use_db():
        with _LOCK:
            k = _norm(user_id, method, path, key)
            if k in _STORE and _STORE[k] is None:
                del _STORE[k]
        return

    _records(user_id, method, path, key).filter(is_pending=True).delete()
