"""Inter-capability event bus.

Fan-out publish/subscribe: each subscriber owns a bounded queue and every
publish copies the event into each queue. A full queue drops the event for
that subscriber only; publishing never waits. There is no history, so a
subscriber only sees events published after it subscribed.

The bus is not thread-safe. Code running on another thread publishes with
``loop.call_soon_threadsafe(bus.publish, event)``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from feishu_channel.messages.models import InboundMessage

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 256


class MessageReceived(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["message_received"] = "message_received"
    message: InboundMessage


class TokenRefreshed(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["token_refreshed"] = "token_refreshed"
    expires_in_secs: int


class ConnectionStateChanged(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["connection_state_changed"] = "connection_state_changed"
    connected: bool


FeishuEvent = Annotated[
    Union[MessageReceived, TokenRefreshed, ConnectionStateChanged],
    Field(discriminator="kind"),
]


class Subscription:
    """Receive handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: EventBus, capacity: int) -> None:
        self._bus = bus
        self._queue: asyncio.Queue[FeishuEvent] = asyncio.Queue(maxsize=capacity)
        self.dropped = 0

    def _offer(self, event: FeishuEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def recv(self) -> FeishuEvent:
        return await self._queue.get()

    def try_recv(self) -> FeishuEvent | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> FeishuEvent:
        return await self.recv()


class EventBus:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._capacity = capacity
        self._subscribers: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self._capacity)
        self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    def publish(self, event: FeishuEvent) -> int:
        """Deliver ``event`` to every current subscriber. Returns the delivery count."""
        delivered = 0
        for sub in list(self._subscribers):
            if sub._offer(event):
                delivered += 1
            else:
                logger.warning("EventBus: subscriber queue full, dropped %s", event.kind)
        return delivered
