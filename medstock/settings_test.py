"""Settings for the test-suite: in-memory SQLite, fast hashing, plain static storage."""
from .settings import *  # noqa: F401,F403
from .settings import LOGGING, STORAGES

DEBUG = False
SECURE_SSL_REDIRECT = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STORAGES = {
    **STORAGES,
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

# Let pytest's caplog see application loggers
for _name in ("auditlog", "dashboard"):
    LOGGING["loggers"][_name]["propagate"] = True
