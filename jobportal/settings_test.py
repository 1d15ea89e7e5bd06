"""Settings overlay for the test suite (SQLite in memory, throwaway media root)."""
import os
import tempfile

os.environ.setdefault("JOBPORTAL_SECRET_KEY", "test-only-secret-key-not-for-production")

from .settings import *  # noqa: E402,F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

MEDIA_ROOT = tempfile.mkdtemp(prefix="jobportal-media-")

LOGGING["root"]["level"] = "WARNING"  # noqa: F405
