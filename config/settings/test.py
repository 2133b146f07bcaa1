"""
With these settings, tests run faster.
"""

from .base import *  # noqa: F403
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="AlGzerkUv160WCFbKM8vn2qyFYWS5jX0AHND8TnRj55iqlMSPtJsUllwpba1oqOO",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#test-runner
TEST_RUNNER = "django.test.runner.DiscoverRunner"
ALLOWED_HOSTS = ["testserver", "localhost"]

# COLLABORATION RELAY
# ------------------------------------------------------------------------------
COLLAB_TOKEN_SECRET = "test-collab-secret"  # noqa: S105
COLLAB_API_URL = "http://records.testserver/api"
COLLAB_API_TOKEN = ""
COLLAB_API_TIMEOUT = 1.0
