"""URL configuration for the property inventory project."""

from django.urls import path

from propinv.views import health_check

urlpatterns = [
    path("health/", health_check, name="health_check"),
]
