"""Real-time event broadcasting over the Channels layer.

Every event is sent to one group that all connected admin dashboards join.
Consumers receive it as ``{"type": <event>, ...payload}``.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

GROUP_NAME = "property_updates"

PROPERTY_CREATED = "property_created"
PROPERTY_UPDATED = "property_updated"
PROPERTY_DELETED = "property_deleted"
OVERDUE_PROPERTY = "overdue_property"
ACCOUNT_REQUEST_CREATED = "account_request_created"


def broadcast(event: str, payload: dict) -> bool:
    """Send an event to every connected dashboard.

    Returns False when the channel layer is unavailable or the send
    fails; notification failures never fail the calling operation.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer configured; dropped %s", event)
        return False
    message = {"type": "broadcast.event", "event": event, "payload": payload}
    try:
        async_to_sync(channel_layer.group_send)(GROUP_NAME, message)
    except Exception:
        logger.exception("Failed to broadcast %s", event)
        return False
    return True


def property_created(unit) -> bool:
    return broadcast(
        PROPERTY_CREATED,
        {"property_code": unit.property_code, "unit_id": unit.pk},
    )


def property_updated(unit, action: str) -> bool:
    return broadcast(
        PROPERTY_UPDATED,
        {
            "property_code": unit.property_code,
            "unit_id": unit.pk,
            "action": action,
            "borrower_name": unit.borrower_name or None,
        },
    )


def property_deleted(property_code: str) -> bool:
    return broadcast(PROPERTY_DELETED, {"property_code": property_code})
