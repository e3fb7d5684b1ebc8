# rx_core/common/errors.py
from __future__ import annotations

import functools
import logging
from enum import Enum
from typing import Any, Callable, TypeVar

from django.db import InterfaceError, OperationalError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ErrorCode(str, Enum):
    """
    Closed set of machine-stable error codes.
    Clients branch on these values, never on the message text.
    """
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    IMMUTABLE = "immutable"
    ALREADY_DISPENSED = "already_dispensed"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    IDENTIFIER_GENERATION_EXHAUSTED = "identifier_generation_exhausted"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL = "internal"


HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.IMMUTABLE: 422,
    ErrorCode.ALREADY_DISPENSED: 422,
    ErrorCode.INDEX_OUT_OF_RANGE: 400,
    ErrorCode.IDENTIFIER_GENERATION_EXHAUSTED: 503,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.INTERNAL: 500,
}

DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Prescription validation failed.",
    ErrorCode.NOT_FOUND: "The requested record could not be found.",
    ErrorCode.FORBIDDEN: "You are not authorized to perform this action on this record.",
    ErrorCode.IMMUTABLE: "This record is dispensed or deleted and can no longer be modified.",
    ErrorCode.ALREADY_DISPENSED: "This medicine has already been dispensed.",
    ErrorCode.INDEX_OUT_OF_RANGE: "Invalid medicine index.",
    ErrorCode.IDENTIFIER_GENERATION_EXHAUSTED: "Could not generate a unique prescription number.",
    ErrorCode.STORE_UNAVAILABLE: "The record store is temporarily unavailable.",
    ErrorCode.INTERNAL: "An unexpected error occurred.",
}


class DomainError(Exception):
    """
    Single failure type for the prescription core.
    `code` is the discriminant; `details` carries the per-code payload
    (validation error list, record id, medicine index, ...).
    """

    def __init__(self, code: ErrorCode | str, message: str | None = None, details: Any = None):
        self.code = ErrorCode(code)
        self.message = message or DEFAULT_MESSAGES[self.code]
        self.details = details
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]

    def __repr__(self) -> str:
        return f"DomainError({self.code.value!r}, {self.message!r})"


def validation_error(errors: list[str], message: str | None = None) -> DomainError:
    return DomainError(ErrorCode.VALIDATION_ERROR, message, details=list(errors))


def not_found(message: str | None = None, **details: Any) -> DomainError:
    return DomainError(ErrorCode.NOT_FOUND, message, details=details or None)


def forbidden(message: str | None = None, **details: Any) -> DomainError:
    return DomainError(ErrorCode.FORBIDDEN, message, details=details or None)


def immutable(message: str | None = None, **details: Any) -> DomainError:
    return DomainError(ErrorCode.IMMUTABLE, message, details=details or None)


def translate_store_errors(fn: F) -> F:
    """
    Surface connection loss / timeouts from the database as store_unavailable.
    No retry here: callers own their retry policy for non-idempotent writes.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error("Store unavailable during %s: %s", fn.__qualname__, exc)
            raise DomainError(ErrorCode.STORE_UNAVAILABLE) from exc

    return wrapper  # type: ignore[return-value]
