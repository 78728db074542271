"""
Django settings for gold_factory project.
Adapted for the gold factory workflow engine with PostgreSQL, department
queues, audit safety, and Celery background delivery.
"""

from pathlib import Path
from decouple import config, Csv
import os


# ===============================================================
# Base paths
# ===============================================================
BASE_DIR = Path(__file__).resolve().parent.parent


# ===============================================================
# Security
# ===============================================================
SECRET_KEY = config("SECRET_KEY", default="insecure-key-change-me")
DEBUG = config("DEBUG", default=False, cast=bool)
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="127.0.0.1,localhost,testserver", cast=Csv())


# ===============================================================
# Installed apps
# ===============================================================
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "factory_core.apps.FactoryCoreConfig",
]


# ===============================================================
# Database
# ===============================================================
DJANGO_ENV = os.environ.get("DJANGO_ENV", "").lower()

if DJANGO_ENV in {"production", "staging"}:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": config("DB_NAME", default="gold_factory_db"),
            "USER": config("DB_USER", default="gold_factory_user"),
            "PASSWORD": config("DB_PASSWORD", default="StrongPasswordHere"),
            "HOST": config("DB_HOST", default="127.0.0.1"),
            "PORT": config("DB_PORT", default="5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


# ===============================================================
# Internationalization
# ===============================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = config("TIME_ZONE", default="Asia/Kolkata")
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ===============================================================
# Logging
# ===============================================================
LOG_LEVEL = config("LOG_LEVEL", default="DEBUG" if DEBUG else "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "factory_core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
    },
}


# ===============================================================
# Factory workflow engine
# ===============================================================
# DEPARTMENTS              : pipeline order, first entry is sequence 1
# CROSS_DEPARTMENT_POLICY  : "strict" | "override" | "open"
# EVENT_SINK               : dotted path of the EventSink class
# RETRY_BACKOFF_SECONDS    : pause before the single conflict retry
# LOCK_TIMEOUT_MS          : row lock wait limit (PostgreSQL only)
# ===============================================================
FACTORY_WORKFLOW = {
    "DEPARTMENTS": config(
        "FACTORY_DEPARTMENTS",
        default="CAD,PRINT,CASTING,FILLING,MEENA,POLISH_1,SETTING,POLISH_2,ADDITIONAL",
        cast=Csv(),
    ),
    "CROSS_DEPARTMENT_POLICY": config("FACTORY_CROSS_DEPARTMENT_POLICY", default="override"),
    "EVENT_SINK": config(
        "FACTORY_EVENT_SINK",
        default="factory_core.workflows.events.CeleryEventSink",
    ),
    "RETRY_BACKOFF_SECONDS": config("FACTORY_RETRY_BACKOFF_SECONDS", default=0.05, cast=float),
    "LOCK_TIMEOUT_MS": config("FACTORY_LOCK_TIMEOUT_MS", default=5000, cast=int),
}


# ===============================================================
# Celery configuration
# ===============================================================
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://127.0.0.1:6379/0")

CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TASK_IGNORE_RESULT = True

# Outside production tasks run inline so no broker is needed
CELERY_TASK_ALWAYS_EAGER = config(
    "CELERY_TASK_ALWAYS_EAGER",
    default=DJANGO_ENV not in {"production", "staging"},
    cast=bool,
)

CELERY_TIMEZONE = TIME_ZONE
