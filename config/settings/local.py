# config/settings/local.py
import os

from .base import *  # noqa

DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

# Local development defaults to SQLite unless DB_ENGINE=postgresql is set.
if os.getenv("DB_ENGINE", "sqlite") != "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",  # noqa: F405
            "OPTIONS": {"timeout": DB_CONNECT_TIMEOUT},  # noqa: F405
        }
    }
