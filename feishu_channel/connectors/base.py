"""Driven port abstractions.

The channel service only talks to these interfaces; the httpx, lark-oapi
and FastAPI adapters live next to them and can be swapped for fakes.
"""

from __future__ import annotations

import abc
import asyncio
from typing import Any, Callable

from feishu_channel.messages.models import InboundMessage


class AuthPort(abc.ABC):
    @abc.abstractmethod
    async def get_token(self) -> str:
        """Return a valid tenant_access_token, refreshing if needed."""

    @abc.abstractmethod
    def is_token_expired(self) -> bool:
        """Best-effort, non-blocking expiry check."""


class BotInfoPort(abc.ABC):
    @abc.abstractmethod
    async def get_bot_open_id(self) -> str | None:
        """Resolve the bot's own open_id."""

    @abc.abstractmethod
    async def health_check(self) -> bool:
        """True if the bot API is reachable and the token is valid."""


class MessageSenderPort(abc.ABC):
    @abc.abstractmethod
    async def send_text(self, receive_id: str, text: str) -> None:
        """Send a text message to a chat, user or union id."""


class EventListenerPort(abc.ABC):
    @abc.abstractmethod
    async def listen(self, sink: asyncio.Queue[InboundMessage]) -> None:
        """Receive inbound events and put decoded messages on ``sink``.

        Returns on graceful close, raises on terminal failure.
        """


class PushTransport(abc.ABC):
    """A blocking push connection, run on its own thread by the listener.

    Implementations own whatever event loop the underlying SDK needs; they
    must not touch the caller's loop. ``on_event`` is handed the raw
    ``event`` body of every ``im.message.receive_v1`` payload.
    """

    @abc.abstractmethod
    def run(self, on_event: Callable[[dict[str, Any]], None]) -> None:
        """Connect and dispatch until the connection ends.

        Returns on graceful close, raises on any other closure.
        """

    def close(self) -> None:
        """Ask a running connection to end (optional override)."""
