"""Capability wrappers that let port adapters take part in the kernel lifecycle.

The adapters themselves never depend on the kernel.
"""

from __future__ import annotations

import logging

from feishu_channel.connectors.api import FeishuApiClient
from feishu_channel.connectors.base import AuthPort, BotInfoPort, MessageSenderPort
from feishu_channel.errors import FeishuError
from feishu_channel.kernel.capability import Capability

logger = logging.getLogger(__name__)


class ApiClientCapability(Capability):
    """Owns the shared HTTP client; registered first so it is closed last."""

    def __init__(self, api: FeishuApiClient) -> None:
        self._api = api

    def name(self) -> str:
        return "api"

    async def stop(self) -> None:
        await self._api.aclose()


class AuthCapability(Capability):
    def __init__(self, auth: AuthPort) -> None:
        self._auth = auth

    def name(self) -> str:
        return "auth"

    async def start(self) -> None:
        await self._auth.get_token()

    async def health_check(self) -> bool:
        try:
            await self._auth.get_token()
        except FeishuError as e:
            logger.warning("auth health check failed: %s", e)
            return False
        return True


class BotCapability(Capability):
    def __init__(self, bot_info: BotInfoPort) -> None:
        self._bot_info = bot_info

    def name(self) -> str:
        return "bot"

    async def start(self) -> None:
        await self._bot_info.get_bot_open_id()

    async def health_check(self) -> bool:
        return await self._bot_info.health_check()


class ImCapability(Capability):
    """IM is stateless: if auth is healthy, sending works."""

    def __init__(self, sender: MessageSenderPort) -> None:
        self._sender = sender

    def name(self) -> str:
        return "im"
