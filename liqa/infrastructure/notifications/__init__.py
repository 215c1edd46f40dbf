"""
Live push notifications over WebSocket.
"""

from liqa.infrastructure.notifications.broadcaster import (
    NotificationBroadcaster,
    Subscriber,
    WebSocketSubscriber,
)

__all__ = ["NotificationBroadcaster", "Subscriber", "WebSocketSubscriber"]
