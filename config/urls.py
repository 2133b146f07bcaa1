from django.urls import path

from .health import health as health_view
from .health import index as index_view

urlpatterns = [
    path("", index_view, name="index"),
    path("health/", health_view, name="health"),
]
