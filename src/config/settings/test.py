"""Test settings - uses SQLite and local-memory cache for fast local testing."""
import os

os.environ.setdefault("SECRET_KEY", "test-only-secret-key-0123456789-abcdefghijklmnopqrstuvwxyz")
os.environ.setdefault("DEBUG", "True")

from .base import *  # noqa: F401,F403,E402

DEBUG = True

# Use SQLite for tests (no PostgreSQL dependency)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"

# Disable API throttling in tests for deterministic runs
REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []  # noqa: F405
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}  # noqa: F405

# Deterministic CRM bindings and dashboard tokens
ATTIO_API_KEY = "test-key"
ATTIO_OWNER_MAP = {  # noqa: F405
    "member-avery": "avery",
    "member-kai": "kai",
    "member-rowan": "rowan",
    "member-sam": "sam",
    "member-quinn": "quinn",
}
COMMISSION_ROSTER = DEFAULT_COMMISSION_ROSTER  # noqa: F405
COMMISSION_ACCESS_TOKENS = {
    "exec": "exec-token",
    "avery": "avery-token",
    "quinn": "quinn-token",
}
SLACK_WEBHOOK_URL = ""

# Disable logging noise during tests
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
for _name in ("crm", "commissions"):
    LOGGING["loggers"][_name]["handlers"] = ["console"]  # noqa: F405
    LOGGING["loggers"][_name]["level"] = "WARNING"  # noqa: F405
