# rx_core/prescriptions/identifiers.py
from __future__ import annotations

import logging
import secrets
import time
from typing import Callable

from rx_core.common.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)

BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
PREFIX = "RX"
SUFFIX_LENGTH = 5
MAX_ATTEMPTS = 10


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def _default_clock_ms() -> int:
    return int(time.time() * 1000)


def _default_suffix() -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(SUFFIX_LENGTH))


def _number_in_use(number: str) -> bool:
    from rx_core.prescriptions.models import Prescription

    return Prescription.objects.filter(prescription_number=number, is_deleted=False).exists()


class IdentifierGenerator:
    """
    RX-<base36 epoch millis>-<5 random base36 chars>, uppercase.

    The pre-check only avoids wasting inserts; the partial unique constraint
    on live prescription numbers is what actually guarantees uniqueness.
    """

    def __init__(
        self,
        *,
        clock_ms: Callable[[], int] = _default_clock_ms,
        suffix: Callable[[], str] = _default_suffix,
        in_use: Callable[[str], bool] = _number_in_use,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self._clock_ms = clock_ms
        self._suffix = suffix
        self._in_use = in_use
        self.max_attempts = max_attempts

    def candidate(self) -> str:
        return f"{PREFIX}-{to_base36(self._clock_ms())}-{self._suffix()}".upper()

    def generate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            number = self.candidate()
            if not self._in_use(number):
                return number
            logger.warning("Prescription number collision on %s (attempt %s/%s)", number, attempt, self.max_attempts)

        raise DomainError(
            ErrorCode.IDENTIFIER_GENERATION_EXHAUSTED,
            details={"attempts": self.max_attempts},
        )
