"""Celery configuration for the property inventory project."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "propinv.settings")

app = Celery("propinv")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
