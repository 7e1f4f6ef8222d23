"""Composition root: wires config, adapters, kernel and channel together."""

from __future__ import annotations

import logging

import httpx

from feishu_channel.config import FeishuConfig
from feishu_channel.connectors.api import FeishuApiClient
from feishu_channel.connectors.auth import HttpAuthAdapter
from feishu_channel.connectors.base import EventListenerPort, PushTransport
from feishu_channel.connectors.bot import HttpBotAdapter
from feishu_channel.connectors.im import HttpImAdapter
from feishu_channel.gateway.capabilities import (
    ApiClientCapability,
    AuthCapability,
    BotCapability,
    ImCapability,
)
from feishu_channel.gateway.listener import ReconnectingListener
from feishu_channel.gateway.service import FeishuChannelService
from feishu_channel.gateway.webhook import WebhookListener
from feishu_channel.kernel.event_bus import EventBus
from feishu_channel.kernel.kernel import FeishuKernel
from feishu_channel.observability.metrics import MetricsCollector
from feishu_channel.security.guard import SecurityGuard
from feishu_channel.types import ConnectionMode

logger = logging.getLogger(__name__)


def _default_transport(config: FeishuConfig) -> PushTransport:
    # imported lazily: the SDK sets up its own loop and logging on import
    from feishu_channel.connectors.ws import LarkWsTransport

    return LarkWsTransport(config.app_id, config.app_secret, config.domain)


def create_channel(
    config: FeishuConfig | None = None,
    *,
    transport: PushTransport | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FeishuChannelService:
    """Build a fully wired channel: adapters, kernel, event bus and guard."""
    if config is None:
        config = FeishuConfig.from_yaml()

    event_bus = EventBus(config.event_bus_capacity)
    metrics = MetricsCollector()

    # -- Port adapters --
    api = FeishuApiClient(config.base_url, timeout=config.http_timeout, transport=http_transport)
    auth = HttpAuthAdapter(api, config.app_id, config.app_secret, event_bus=event_bus)
    bot_info = HttpBotAdapter(api, auth)
    sender = HttpImAdapter(api, auth)

    events: EventListenerPort
    if config.connection_mode == ConnectionMode.WEBHOOK:
        events = WebhookListener(
            host=config.webhook_host,
            port=config.webhook_port,
            encrypt_key=config.encrypt_key,
            verification_token=config.verification_token,
            event_bus=event_bus,
            metrics=metrics,
        )
    else:
        events = ReconnectingListener(
            transport if transport is not None else _default_transport(config),
            event_bus,
            max_attempts=config.max_reconnect_attempts,
            base_delay=config.reconnect_base_delay,
            metrics=metrics,
        )

    security = SecurityGuard.from_config(config)

    # -- Kernel: registration order is start order, reverse is stop order --
    kernel = FeishuKernel(event_bus)
    kernel.register(ApiClientCapability(api))
    kernel.register(AuthCapability(auth))
    kernel.register(BotCapability(bot_info))
    kernel.register(ImCapability(sender))
    kernel.register(events)

    logger.info(
        "Feishu channel wired: domain=%s mode=%s dm_policy=%s group_policy=%s",
        config.domain.value,
        config.connection_mode.value,
        security.dm_policy.value,
        security.group_policy.value,
    )
    return FeishuChannelService(config, auth, sender, bot_info, events, security, kernel, metrics)
