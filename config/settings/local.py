from .base import *  # noqa: F403
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = True
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="local-only-8nYb3kQmW0tHc2vJxR5pLs7dFz1gUe4a",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104

# COLLABORATION RELAY
# ------------------------------------------------------------------------------
COLLAB_TOKEN_SECRET = env("COLLAB_TOKEN_SECRET", default="local-collab-secret")
