"""Celery tasks for the inventory app."""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def check_overdue_properties():
    """Periodic task: notify dashboards about newly overdue units."""
    from .services.overdue import notify_overdue_units

    count = notify_overdue_units()
    if count:
        logger.info("Notified %d overdue unit(s)", count)
    return count
