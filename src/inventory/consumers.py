"""WebSocket consumer pushing live inventory events to admin dashboards."""

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .notifications import GROUP_NAME

logger = logging.getLogger(__name__)


class PropertyUpdatesConsumer(AsyncJsonWebsocketConsumer):
    """Forward property, overdue and account-request events.

    Only authenticated admin users may subscribe; everyone else is
    closed with code 4003 before the handshake completes.
    """

    async def connect(self):
        self.joined = False
        user = self.scope.get("user")
        if not _is_admin(user):
            await self.close(code=4003)
            return

        await self.channel_layer.group_add(GROUP_NAME, self.channel_name)
        self.joined = True
        await self.accept()
        logger.info(
            "Dashboard connected: user=%s channel=%s",
            user.pk,
            self.channel_name,
        )

    async def disconnect(self, close_code):
        if getattr(self, "joined", False):
            await self.channel_layer.group_discard(
                GROUP_NAME, self.channel_name
            )

    async def receive_json(self, content, **kwargs):
        if content.get("type") == "ping":
            await self.send_json({"type": "pong"})
            return
        await self.send_json(
            {
                "type": "error",
                "code": "invalid_message",
                "message": (
                    f"Unrecognised message type: {content.get('type')}"
                ),
            }
        )

    async def broadcast_event(self, event):
        """Channel layer handler for ``broadcast.event`` messages."""
        await self.send_json({"type": event["event"], **event["payload"]})


def _is_admin(user):
    if user is None or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return getattr(user, "user_type", None) == "admin"
