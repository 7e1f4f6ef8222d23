"""Webhook fallback listener: serves the webhook app with uvicorn."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Callable

import uvicorn

from feishu_channel.connectors.base import EventListenerPort
from feishu_channel.connectors.webhook import create_webhook_app
from feishu_channel.errors import ConnectionFailedError
from feishu_channel.gateway.listener import deliver_message
from feishu_channel.kernel.capability import Capability
from feishu_channel.kernel.event_bus import ConnectionStateChanged, EventBus
from feishu_channel.messages.models import InboundMessage
from feishu_channel.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class _NotifyingServer(uvicorn.Server):
    """uvicorn server that reports once its sockets are bound."""

    def __init__(self, config: uvicorn.Config, on_started: Callable[[], None]) -> None:
        super().__init__(config)
        self._on_started = on_started

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            self._on_started()


class WebhookListener(Capability, EventListenerPort):
    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8081,
        encrypt_key: str | None = None,
        verification_token: str | None = None,
        event_bus: EventBus | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._encrypt_key = encrypt_key
        self._verification_token = verification_token
        self._event_bus = event_bus
        self._metrics = metrics
        self._server: uvicorn.Server | None = None
        self._connected = False

    def name(self) -> str:
        return "webhook"

    async def stop(self) -> None:
        if self._server:
            self._server.should_exit = True

    async def listen(self, sink: asyncio.Queue[InboundMessage]) -> None:
        app = create_webhook_app(
            lambda msg: deliver_message(msg, sink, self._event_bus, self._metrics),
            encrypt_key=self._encrypt_key,
            verification_token=self._verification_token,
        )
        config = uvicorn.Config(app, host=self._host, port=self._port, lifespan="off", log_config=None)
        self._server = _NotifyingServer(config, self._on_started)

        try:
            await self._server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise ConnectionFailedError(f"webhook server on port {self._port} failed to start") from e
        finally:
            self._server = None
            if self._connected:
                self._connected = False
                self._publish(ConnectionStateChanged(connected=False))

    def _on_started(self) -> None:
        logger.info("Webhook server listening on http://%s:%d", self._host, self._port)
        self._connected = True
        self._publish(ConnectionStateChanged(connected=True))

    def _publish(self, event: ConnectionStateChanged) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)
