"""
NotificationBroadcaster - registry of live push subscribers with fan-out.

One instance is created per application (see ``liqa.main.lifespan``) and
shared by the WebSocket endpoint and the meeting reminder job. Membership is
guarded by an ``asyncio.Lock``; ``broadcast`` sends to a snapshot so
concurrent subscribe/unsubscribe calls never disturb an in-flight fan-out.

Delivery guarantees:
- At most once per open subscriber, no retries
- Non-open subscribers are skipped but stay registered
- Each send is bounded by a timeout and isolated from the others
"""

import asyncio
from typing import Protocol, runtime_checkable

from starlette.websockets import WebSocket, WebSocketState

from liqa.config import settings
from liqa.errors import DeliveryError
from liqa.infrastructure.observability.best_effort import best_effort
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.domain.notification_domain import BroadcastResult, NotificationMessage

logger = get_logger(__name__)


@runtime_checkable
class Subscriber(Protocol):
    """Anything that can receive a text frame."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


class WebSocketSubscriber:
    """Adapts a Starlette WebSocket to the Subscriber protocol."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)

    def __hash__(self) -> int:
        return hash(id(self.websocket))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, WebSocketSubscriber) and other.websocket is self.websocket


class NotificationBroadcaster:
    """Process-wide set of push subscribers."""

    def __init__(self, send_timeout: float | None = None):
        self.send_timeout = (
            send_timeout if send_timeout is not None else settings.BROADCAST_SEND_TIMEOUT_SECONDS
        )
        self._subscribers: set[Subscriber] = set()
        self._lock = asyncio.Lock()

    async def subscribe(self, subscriber: Subscriber) -> None:
        """Add a subscriber. Subscribing twice keeps a single membership."""
        async with self._lock:
            self._subscribers.add(subscriber)
            count = len(self._subscribers)
        logger.info("Push subscriber connected", subscriber_count=count)

    async def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove a subscriber. No-op when it is not registered."""
        async with self._lock:
            self._subscribers.discard(subscriber)
            count = len(self._subscribers)
        logger.info("Push subscriber disconnected", subscriber_count=count)

    async def subscriber_count(self) -> int:
        async with self._lock:
            return len(self._subscribers)

    async def broadcast(self, message: NotificationMessage) -> BroadcastResult:
        """
        Send ``message`` to every open subscriber.

        Args:
            message: Notification to serialize and deliver

        Returns:
            BroadcastResult with delivered, skipped and failed counts.
            Never raises for delivery failures.
        """
        async with self._lock:
            snapshot = list(self._subscribers)

        result = BroadcastResult()
        payload = message.to_wire()

        targets = []
        for subscriber in snapshot:
            if subscriber.is_open:
                targets.append(subscriber)
            else:
                result.skipped += 1

        attempts = await asyncio.gather(
            *(self._deliver(subscriber, payload, message.type) for subscriber in targets)
        )

        for attempt in attempts:
            if attempt.ok:
                result.delivered += 1
            else:
                result.failed += 1
                result.errors.append(str(attempt.error))

        logger.info(
            "Notification broadcast",
            message_type=message.type,
            delivered=result.delivered,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    async def _deliver(self, subscriber: Subscriber, payload: str, message_type: str):
        async def _send() -> None:
            try:
                await asyncio.wait_for(subscriber.send_text(payload), timeout=self.send_timeout)
            except TimeoutError as e:
                raise DeliveryError(f"Send timed out after {self.send_timeout}s") from e

        return await best_effort(
            "push_delivery",
            _send,
            log_level="warning",
            message_type=message_type,
        )
