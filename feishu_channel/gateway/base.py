"""Channel abstraction."""

from __future__ import annotations

import abc
import asyncio

from feishu_channel.messages.models import InboundMessage


class Channel(abc.ABC):
    @abc.abstractmethod
    def name(self) -> str:
        """Channel identifier."""

    @abc.abstractmethod
    async def send(self, message: str, recipient: str) -> None:
        """Send a text message to a chat or user."""

    @abc.abstractmethod
    async def listen(self, out: asyncio.Queue[InboundMessage]) -> None:
        """Deliver authorized inbound messages to ``out`` until the listener ends."""

    async def start(self) -> None:
        """Bring the channel up (optional override)."""

    async def stop(self) -> None:
        """Graceful shutdown (optional override)."""

    async def health_check(self) -> bool:
        return True
