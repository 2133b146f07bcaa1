# ruff: noqa: ERA001, E501
"""Base settings to build other settings files upon."""

from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve(strict=True).parent.parent.parent
env = environ.Env()

READ_DOT_ENV_FILE = env.bool("DJANGO_READ_DOT_ENV_FILE", default=False)
if READ_DOT_ENV_FILE:
    # OS environment variables take precedence over variables from .env
    env.read_env(str(BASE_DIR / ".env"))

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = env.bool("DJANGO_DEBUG", False)
# https://docs.djangoproject.com/en/dev/ref/settings/#time-zone
TIME_ZONE = "UTC"
# https://docs.djangoproject.com/en/dev/ref/settings/#language-code
LANGUAGE_CODE = "en-us"
# https://docs.djangoproject.com/en/dev/ref/settings/#use-i18n
USE_I18N = True
# https://docs.djangoproject.com/en/dev/ref/settings/#use-tz
USE_TZ = True

# DATABASES
# ------------------------------------------------------------------------------
# The relay keeps no records of its own; presence is stored by the
# application server behind COLLAB_API_URL.
DATABASES: dict = {}

# URLS
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#root-urlconf
ROOT_URLCONF = "config.urls"

# APPS
# ------------------------------------------------------------------------------
LOCAL_APPS = [
    "collab_relay.realtime",
]
# https://docs.djangoproject.com/en/dev/ref/settings/#installed-apps
INSTALLED_APPS = LOCAL_APPS

# MIDDLEWARE
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#middleware
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# SECURITY
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#secure-browser-xss-filter
SECURE_BROWSER_XSS_FILTER = True
# https://docs.djangoproject.com/en/dev/ref/settings/#x-frame-options
X_FRAME_OPTIONS = "DENY"

# LOGGING
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#logging
# See https://docs.djangoproject.com/en/dev/topics/logging for
# more details on how to customize your logging configuration.
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(levelname)s %(asctime)s %(module)s %(process)d %(thread)d %(message)s",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "collab_relay": {
            "level": env("DJANGO_LOG_LEVEL", default="INFO"),
        },
    },
}

# CORS
# ------------------------------------------------------------------------------
# Passed straight to python-socketio; "*" allows every origin.
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=["*"])
if CORS_ALLOWED_ORIGINS == ["*"]:
    CORS_ALLOWED_ORIGINS = "*"

# COLLABORATION RELAY
# ------------------------------------------------------------------------------
# Shared secret used by the application server to sign session tokens.
COLLAB_TOKEN_SECRET = env("COLLAB_TOKEN_SECRET", default="")
# Base URL of the application server that records presence,
# e.g. https://app.example.com/api. Leave empty to disable presence sync.
COLLAB_API_URL = env("COLLAB_API_URL", default="")
COLLAB_API_TOKEN = env("COLLAB_API_TOKEN", default="")
COLLAB_API_TIMEOUT = env.float("COLLAB_API_TIMEOUT", default=5.0)
COLLAB_STATE_UPDATE_INTERVAL_MS = env.int("COLLAB_STATE_UPDATE_INTERVAL_MS", default=200)
COLLAB_PRESENCE_PING_INTERVAL_MS = env.int("COLLAB_PRESENCE_PING_INTERVAL_MS", default=5000)
COLLAB_SOCKETIO_PATH = env("COLLAB_SOCKETIO_PATH", default="socket.io")
