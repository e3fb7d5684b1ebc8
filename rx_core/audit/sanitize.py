# rx_core/audit/sanitize.py
from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"
SENSITIVE_KEY = re.compile(r"password|token|secret", re.IGNORECASE)


def sanitize(payload: Any) -> Any:
    """
    Returns a copy with credential-like keys redacted, recursing through
    dicts and lists. Non-container values (datetimes included) pass through.
    Applying it twice gives the same result as applying it once.
    """
    if isinstance(payload, dict):
        return {
            key: REDACTED if isinstance(key, str) and SENSITIVE_KEY.search(key) else sanitize(value)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple)):
        return [sanitize(item) for item in payload]
    return payload
