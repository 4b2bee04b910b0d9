"""Detection and notification of overdue borrowed units."""

import logging

from django.utils import timezone

from .. import notifications
from ..models import InventoryUnit, PropertyStatus

logger = logging.getLogger(__name__)


def get_overdue_units(now=None):
    """InUse units with a borrower whose return date has passed."""
    now = now or timezone.now()
    return (
        InventoryUnit.objects.filter(
            status=PropertyStatus.IN_USE,
            return_due_at__isnull=False,
            return_due_at__lt=now,
        )
        .exclude(borrower_name="")
        .order_by("return_due_at")
    )


def overdue_payload(unit: InventoryUnit, now=None) -> dict:
    now = now or timezone.now()
    days_overdue = (now - unit.return_due_at).days
    due = timezone.localtime(unit.return_due_at).strftime("%b %d, %Y")
    return {
        "unit_id": unit.pk,
        "property_code": unit.property_code,
        "property_name": unit.name,
        "tag_number": unit.tag_or_code,
        "borrower_name": unit.borrower_name,
        "return_date": due,
        "days_overdue": days_overdue,
        "message": (
            f"{unit.name} (Tag: {unit.tag_or_code}) borrowed by "
            f"{unit.borrower_name} is {days_overdue} day(s) overdue. "
            f"Return date was {due}."
        ),
    }


def notify_overdue_units(now=None) -> int:
    """Broadcast one notification per newly overdue unit.

    Units already notified for the current borrowing are skipped; the
    flag resets on the next borrow or return. A unit whose broadcast fails
    stays pending for the next run. Returns the count sent.
    """
    now = now or timezone.now()
    pending = list(get_overdue_units(now).filter(overdue_notified=False))
    if not pending:
        logger.info("No overdue properties to notify.")
        return 0

    logger.info("Sending overdue notifications for %d unit(s)", len(pending))
    sent = 0
    for unit in pending:
        if not notifications.broadcast(
            notifications.OVERDUE_PROPERTY, overdue_payload(unit, now)
        ):
            logger.warning(
                "Overdue notification for %s not delivered; will retry",
                unit.property_code,
            )
            continue
        # Leaves version untouched.
        InventoryUnit.objects.filter(pk=unit.pk).update(overdue_notified=True)
        sent += 1
        logger.info(
            "Overdue notification sent for %s (tag %s)",
            unit.property_code,
            unit.tag_or_code,
        )
    return sent
