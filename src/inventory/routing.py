"""WebSocket URL routing for the inventory app."""

from django.urls import path

from inventory.consumers import PropertyUpdatesConsumer

websocket_urlpatterns = [
    path(
        "ws/property-updates/",
        PropertyUpdatesConsumer.as_asgi(),
    ),
]
