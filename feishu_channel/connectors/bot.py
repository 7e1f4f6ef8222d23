"""Bot adapter: resolves the bot's own open_id.

``/open-apis/bot/v3/info`` returns the bot object at the root of the body
rather than under ``data``.
"""

from __future__ import annotations

import httpx

from feishu_channel.connectors.api import FeishuApiClient, FeishuApiError
from feishu_channel.connectors.base import AuthPort, BotInfoPort
from feishu_channel.errors import BotInfoFetchError, FeishuError

BOT_INFO_PATH = "/open-apis/bot/v3/info"


class HttpBotAdapter(BotInfoPort):
    def __init__(self, api: FeishuApiClient, auth: AuthPort) -> None:
        self._api = api
        self._auth = auth

    async def get_bot_open_id(self) -> str | None:
        token = await self._auth.get_token()
        try:
            body = await self._api.call("GET", BOT_INFO_PATH, token=token)
        except httpx.HTTPError as e:
            raise BotInfoFetchError(f"request failed: {e}") from e
        except FeishuApiError as e:
            raise BotInfoFetchError(str(e)) from e
        except ValueError as e:
            raise BotInfoFetchError(f"parse failed: {e}") from e
        bot = body.get("bot")
        if bot is None:
            return None
        if not isinstance(bot, dict):
            raise BotInfoFetchError(f"unexpected bot object: {bot!r}")
        open_id = bot.get("open_id")
        if open_id is not None and not isinstance(open_id, str):
            raise BotInfoFetchError(f"unexpected open_id: {open_id!r}")
        return open_id

    async def health_check(self) -> bool:
        try:
            await self.get_bot_open_id()
        except FeishuError:
            return False
        return True
