"""
Test settings for facility_hub project.

Used by pytest-django (see [tool.pytest.ini_options] in pyproject.toml).
"""

from .base import *  # noqa: F401, F403

DEBUG = False

ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Keep test output quiet; tests assert on logs with assertLogs
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {"class": "logging.NullHandler"},
    },
    "root": {
        "handlers": ["null"],
        "level": "WARNING",
    },
    "loggers": {
        "facilities": {
            "handlers": ["null"],
            "level": "DEBUG",
        },
    },
}
