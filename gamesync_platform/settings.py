"""
Django settings for the GameSync platform.

Every deployment-specific value is read from the environment so the same
module serves local development, the Celery workers and production.
"""

import os
from pathlib import Path

from celery.schedules import crontab


BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-dev-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if host.strip()
]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "scheduling.apps.SchedulingConfig",
]

AUTH_USER_MODEL = "scheduling.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Database
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "gamesync.sqlite3")),
        "USER": os.environ.get("DATABASE_USER", ""),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", ""),
        "PORT": os.environ.get("DATABASE_PORT", ""),
        "ATOMIC_REQUESTS": False,
    }
}

# Cache (also backs the single-flight locks of the periodic tasks)
REDIS_URL = os.environ.get("REDIS_URL", "")
if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "gamesync",
        }
    }

# Internationalization: slots and reset times are local wall-clock values
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "Asia/Seoul")
USE_I18N = False
USE_TZ = True

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", REDIS_URL or "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = None
CELERY_TASK_IGNORE_RESULT = True
CELERY_TIMEZONE = TIME_ZONE
CELERY_ENABLE_UTC = False
CELERY_BEAT_SCHEDULE = {
    "reset-timetables": {
        "task": "scheduling.tasks.reset_timetables",
        "schedule": crontab(),
    },
    "send-timetable-reminders": {
        "task": "scheduling.tasks.send_timetable_reminders",
        "schedule": crontab(),
    },
    "drain-notification-outbox": {
        "task": "scheduling.tasks.drain_notification_outbox",
        "schedule": crontab(),
    },
    "cleanup-blacklisted-tokens": {
        "task": "scheduling.tasks.cleanup_blacklisted_tokens",
        "schedule": crontab(hour=3, minute=0),
    },
    "cleanup-audit-logs": {
        "task": "scheduling.tasks.cleanup_audit_logs",
        "schedule": crontab(hour=4, minute=0),
    },
}

# Firebase Cloud Messaging
FIREBASE_CREDENTIALS_PATH = os.environ.get("FIREBASE_CREDENTIALS_PATH", "")

# Domain tunables
GAMESYNC = {
    "AUDIT_RETENTION_DAYS": int(os.environ.get("GAMESYNC_AUDIT_RETENTION_DAYS", "90")),
    "AUDIT_DETAILS_MAX_LENGTH": 1000,
    "DEFAULT_REMINDER_MINUTES": 10,
    "PUSH_BODY_MAX_LENGTH": 120,
    "PAYLOAD_PARSE_LIMIT": 4096,
    "OUTBOX_RETENTION_DAYS": 7,
    "OUTBOX_DRAIN_BATCH": 100,
    "TASK_LOCK_TTL_SECONDS": 55,
    "APP_NAME": "GameSync",
}

# Logging
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "scheduling": {
            "handlers": ["console"],
            "level": os.environ.get("GAMESYNC_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "celery": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
