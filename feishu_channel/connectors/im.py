"""IM adapter: outbound text messages."""

from __future__ import annotations

import logging

import httpx

from feishu_channel.connectors.api import FeishuApiClient, FeishuApiError
from feishu_channel.connectors.base import AuthPort, MessageSenderPort
from feishu_channel.errors import MessageSendError
from feishu_channel.messages.codec import encode_text_message, infer_receive_id_type

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/open-apis/im/v1/messages"


class HttpImAdapter(MessageSenderPort):
    def __init__(self, api: FeishuApiClient, auth: AuthPort) -> None:
        self._api = api
        self._auth = auth

    async def send_text(self, receive_id: str, text: str) -> None:
        id_type = infer_receive_id_type(receive_id)
        token = await self._auth.get_token()
        try:
            await self._api.call(
                "POST",
                MESSAGES_PATH,
                token=token,
                params={"receive_id_type": id_type},
                json={"receive_id": receive_id, "msg_type": "text", "content": encode_text_message(text)},
            )
        except (httpx.HTTPError, FeishuApiError, ValueError) as e:
            raise MessageSendError(str(e)) from e
        logger.debug("IM: sent %d chars to %s (%s)", len(text), receive_id, id_type)
