"""Push transport over the lark-oapi long-connection (WebSocket) client.

``lark.ws.Client.start()`` blocks and drives a module-level event loop, so it
cannot run on the application's loop. ``run`` is meant to be called on a
dedicated thread (see ``gateway.listener``) and gives the SDK a fresh loop
of its own.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

import lark_oapi as lark
from lark_oapi.api.im.v1 import P2ImMessageReceiveV1
from lark_oapi.ws import client as lark_ws_client

from feishu_channel.connectors.base import PushTransport
from feishu_channel.types import FeishuDomain

logger = logging.getLogger(__name__)


class LarkWsTransport(PushTransport):
    def __init__(
        self,
        app_id: str,
        app_secret: str,
        domain: FeishuDomain = FeishuDomain.FEISHU,
        log_level: lark.LogLevel = lark.LogLevel.INFO,
    ) -> None:
        self._app_id = app_id
        self._app_secret = app_secret
        self._domain = domain
        self._log_level = log_level
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closing = False

    def run(self, on_event: Callable[[dict[str, Any]], None]) -> None:
        def handle(data: P2ImMessageReceiveV1) -> None:
            on_event(json.loads(lark.JSON.marshal(data.event)))

        handler = (
            lark.EventDispatcherHandler.builder("", "")
            .register_p2_im_message_receive_v1(handle)
            .build()
        )

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        # the SDK captures a loop at import time; point it at this thread's
        # for the duration of the run
        previous_loop = lark_ws_client.loop
        lark_ws_client.loop = loop
        self._loop = loop
        self._closing = False

        try:
            client = lark.ws.Client(
                self._app_id,
                self._app_secret,
                event_handler=handler,
                domain=self._domain.base_url,
                log_level=self._log_level,
            )
            client.start()
        except RuntimeError:
            # loop.stop() from close() aborts run_until_complete
            if not self._closing:
                raise
            logger.info("WebSocket: connection closed on request")
        finally:
            lark_ws_client.loop = previous_loop
            self._loop = None
            asyncio.set_event_loop(None)
            loop.close()

    def close(self) -> None:
        self._closing = True
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(loop.stop)
