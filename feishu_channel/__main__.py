"""Entry point: python -m feishu_channel"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from feishu_channel import __version__
from feishu_channel.app import create_channel
from feishu_channel.config import FeishuConfig
from feishu_channel.messages.models import InboundMessage
from feishu_channel.observability.health import aggregate_health
from feishu_channel.observability.logging import setup_logging

logger = logging.getLogger("feishu_channel")


async def _log_messages(queue: asyncio.Queue[InboundMessage]) -> None:
    while True:
        msg = await queue.get()
        logger.info("Inbound %s from %s in %s: %s", msg.id, msg.sender, msg.channel, msg.content[:80])


async def run(config: FeishuConfig) -> None:
    channel = create_channel(config)
    await channel.start()
    logger.info("feishu-channel %s started: %s", __version__, await aggregate_health(channel.kernel))

    queue: asyncio.Queue[InboundMessage] = asyncio.Queue(maxsize=config.queue_capacity)
    consumer = asyncio.create_task(_log_messages(queue))
    try:
        await channel.listen(queue)
    finally:
        consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await consumer
        await channel.stop()
        logger.info("Pipeline summary: %s", channel.metrics.summary())


def main() -> None:
    config = FeishuConfig.from_yaml()
    setup_logging(config.log_level)
    asyncio.run(run(config))


if __name__ == "__main__":
    main()
