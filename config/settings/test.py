# config/settings/test.py
from .base import *  # noqa

DEBUG = False
SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

SIMPLE_JWT = {**SIMPLE_JWT, "SIGNING_KEY": SECRET_KEY}  # noqa: F405

# pytest-django wraps each test in a transaction that never commits,
# so audit appends are written inline.
RX_AUDIT_DEFER_TO_COMMIT = False

# Replayed responses persist in the test database and roll back with it.
RX_IDEMPOTENCY_USE_DB = True

# let pytest's caplog (attached to the root logger) see rx_core records
LOGGING["loggers"]["rx_core"]["propagate"] = True  # noqa: F405
