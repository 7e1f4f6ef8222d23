"""Feishu channel service: the aggregate root.

Receives every port adapter through its constructor and never touches
HTTP or WebSocket details itself.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from feishu_channel.config import FeishuConfig
from feishu_channel.connectors.base import AuthPort, BotInfoPort, EventListenerPort, MessageSenderPort
from feishu_channel.gateway.base import Channel
from feishu_channel.gateway.dedup import MessageDeduplicator
from feishu_channel.gateway.filter import FilterParams, should_forward_message
from feishu_channel.kernel.kernel import FeishuKernel
from feishu_channel.messages.models import InboundMessage
from feishu_channel.observability.metrics import MetricsCollector
from feishu_channel.security.guard import SecurityGuard

logger = logging.getLogger(__name__)


class FeishuChannelService(Channel):
    def __init__(
        self,
        config: FeishuConfig,
        auth: AuthPort,
        sender: MessageSenderPort,
        bot_info: BotInfoPort,
        events: EventListenerPort,
        security: SecurityGuard,
        kernel: FeishuKernel,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config
        self._auth = auth
        self._sender = sender
        self._bot_info = bot_info
        self._events = events
        self._security = security
        self._kernel = kernel
        self._metrics = metrics if metrics is not None else MetricsCollector()

    @property
    def config(self) -> FeishuConfig:
        return self._config

    @property
    def security(self) -> SecurityGuard:
        return self._security

    @property
    def kernel(self) -> FeishuKernel:
        return self._kernel

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def name(self) -> str:
        return "feishu"

    async def start(self) -> None:
        await self._kernel.start_all()

    async def stop(self) -> None:
        await self._kernel.stop_all()

    async def send(self, message: str, recipient: str) -> None:
        await self._sender.send_text(recipient, message)

    async def listen(self, out: asyncio.Queue[InboundMessage]) -> None:
        """Listen with security + @mention filtering.

        1. resolve the bot's open_id for group mention detection
        2. spawn the filter task: raw messages -> dedup -> guard/mention -> ``out``
        3. delegate to the inbound listener; when it returns or raises, cancel
           the filter task and hand over what is still queued without waiting
        """
        logger.info("Feishu channel: starting listener")

        bot_open_id: str | None = None
        try:
            bot_open_id = await self._bot_info.get_bot_open_id()
        except Exception as e:
            logger.warning("Feishu channel: could not resolve bot open_id: %s", e)
        else:
            if bot_open_id:
                logger.info("Feishu channel: bot open_id = %s", bot_open_id)

        params = FilterParams(
            security=self._security,
            bot_open_id=bot_open_id or None,
            group_require_mention=self._config.group_require_mention,
        )
        dedup = MessageDeduplicator(self._config.dedup_window_seconds)
        internal: asyncio.Queue[InboundMessage] = asyncio.Queue(maxsize=self._config.queue_capacity)
        filter_task = asyncio.create_task(
            self._filter_loop(internal, out, params, dedup), name="feishu-filter"
        )

        try:
            await self._events.listen(internal)
        finally:
            filter_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await filter_task
            self._drain(internal, out, params, dedup)

    def _admit(self, msg: InboundMessage, params: FilterParams, dedup: MessageDeduplicator) -> bool:
        if dedup.is_duplicate(msg.id):
            logger.debug("Feishu: ignoring duplicate message %s", msg.id)
            self._metrics.record_duplicate()
            return False
        if not should_forward_message(msg, params):
            self._metrics.record_dropped("filtered")
            return False
        return True

    def _forward_nowait(self, msg: InboundMessage, out: asyncio.Queue[InboundMessage]) -> None:
        try:
            out.put_nowait(msg)
        except asyncio.QueueFull:
            logger.error("Feishu: output queue full, dropping message %s", msg.id)
            self._metrics.record_dropped("queue_full")
        else:
            self._metrics.record_forwarded()

    async def _filter_loop(
        self,
        internal: asyncio.Queue[InboundMessage],
        out: asyncio.Queue[InboundMessage],
        params: FilterParams,
        dedup: MessageDeduplicator,
    ) -> None:
        while True:
            msg = await internal.get()
            try:
                if not self._admit(msg, params, dedup):
                    continue
                try:
                    await out.put(msg)
                except asyncio.CancelledError:
                    self._forward_nowait(msg, out)
                    raise
                self._metrics.record_forwarded()
            finally:
                internal.task_done()

    def _drain(
        self,
        internal: asyncio.Queue[InboundMessage],
        out: asyncio.Queue[InboundMessage],
        params: FilterParams,
        dedup: MessageDeduplicator,
    ) -> None:
        while True:
            try:
                msg = internal.get_nowait()
            except asyncio.QueueEmpty:
                return
            if self._admit(msg, params, dedup):
                self._forward_nowait(msg, out)
            internal.task_done()

    async def health_check(self) -> bool:
        """Aggregate health of every registered capability."""
        results = await self._kernel.health_check_all()
        all_healthy = all(healthy for _, healthy in results)
        if not all_healthy:
            for name, healthy in results:
                if not healthy:
                    logger.warning("Feishu: capability '%s' is unhealthy", name)
        return all_healthy
