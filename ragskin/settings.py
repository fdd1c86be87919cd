"""
Django settings for the ragskin project.

Every value can be overridden through environment variables; the File Search
and storage knobs are read by the apps with ``getattr(settings, NAME, default)``.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = "False") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-ragskin-development-key")
DEBUG = _env_bool("DJANGO_DEBUG", "True")
ALLOWED_HOSTS = [host for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.staticfiles",
    "file_search",
    "corpus",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "ragskin.urls"
ASGI_APPLICATION = "ragskin.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# Corpus state lives in process memory; the cookie only carries the session key
SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Gemini File Search
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL_ID = os.environ.get("GEMINI_MODEL_ID", "gemini-2.5-flash")
FILE_SEARCH_BACKEND = os.environ.get("FILE_SEARCH_BACKEND", "gemini")
FILE_SEARCH_STORE_PREFIX = os.environ.get("FILE_SEARCH_STORE_PREFIX", "ragskin-session")
FILE_SEARCH_WAIT_FOR_IMPORT = _env_bool("FILE_SEARCH_WAIT_FOR_IMPORT", "True")
FILE_SEARCH_POLL_INTERVAL = float(os.environ.get("FILE_SEARCH_POLL_INTERVAL", "2"))
FILE_SEARCH_IMPORT_TIMEOUT = float(os.environ.get("FILE_SEARCH_IMPORT_TIMEOUT", "300"))

# Storage accounting
STORAGE_TIER = os.environ.get("STORAGE_TIER", "free")
STORAGE_ALERT_THRESHOLD = int(os.environ.get("STORAGE_ALERT_THRESHOLD", "80"))
STORAGE_AUTO_UPGRADE = _env_bool("STORAGE_AUTO_UPGRADE", "True")

# Prompts
RAG_SYSTEM_PROMPT = os.environ.get(
    "RAG_SYSTEM_PROMPT",
    "You are a helpful assistant. Answer questions using only the uploaded documents "
    "and say so when the documents do not contain the answer.",
)
RAG_ARCHITECTURE_PROMPTS = [
    prompt for prompt in os.environ.get("RAG_ARCHITECTURE_PROMPTS", "").split("||") if prompt.strip()
]
RAG_MARKDOWN_RENDERER = os.environ.get("RAG_MARKDOWN_RENDERER", "")

# Intake
MAX_UPLOAD_SIZE = int(os.environ.get("MAX_UPLOAD_SIZE", str(100 * 1024 * 1024)))
DATA_UPLOAD_MAX_MEMORY_SIZE = MAX_UPLOAD_SIZE
FILE_UPLOAD_MAX_MEMORY_SIZE = MAX_UPLOAD_SIZE

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
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
        "file_search": {
            "handlers": ["console"],
            "level": os.environ.get("FILE_SEARCH_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "corpus": {
            "handlers": ["console"],
            "level": os.environ.get("CORPUS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
