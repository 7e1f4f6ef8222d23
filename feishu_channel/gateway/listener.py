"""Reconnecting push listener.

The push SDK's dispatcher cannot share the caller's event loop, so every
connection attempt runs the transport on a dedicated daemon thread. Results
come back through ``loop.call_soon_threadsafe``: messages are delivered to the
sink on the caller's loop, and the attempt's outcome settles a future that
``listen`` awaits.

States: idle -> connecting -> connected -> (disconnected -> connecting)* -> terminated
"""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any

from feishu_channel.connectors.base import EventListenerPort, PushTransport
from feishu_channel.errors import ConnectionFailedError, MessageDecodeError, ReconnectExhaustedError
from feishu_channel.kernel.capability import Capability
from feishu_channel.kernel.event_bus import ConnectionStateChanged, EventBus, MessageReceived
from feishu_channel.messages.codec import decode_message_event
from feishu_channel.messages.models import InboundMessage
from feishu_channel.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 10
RECONNECT_BASE_DELAY_SECS = 2.0
MAX_BACKOFF_EXPONENT = 5


class ListenerState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    TERMINATED = "terminated"


class ListenerThreadCrashed(ConnectionFailedError):
    summary = "listener thread crashed"


def deliver_message(
    msg: InboundMessage,
    sink: asyncio.Queue[InboundMessage],
    event_bus: EventBus | None = None,
    metrics: MetricsCollector | None = None,
) -> bool:
    """Hand one decoded message to ``sink`` without waiting.

    A full sink drops this message only; the connection stays up.
    """
    if event_bus is not None:
        event_bus.publish(MessageReceived(message=msg))
    try:
        sink.put_nowait(msg)
    except asyncio.QueueFull:
        logger.error("Failed to forward message %s to channel queue: queue full", msg.id)
        if metrics is not None:
            metrics.record_dropped("queue_full")
        return False
    if metrics is not None:
        metrics.record_received()
    return True


def backoff_delay(attempt: int, base_delay: float, max_exponent: int = MAX_BACKOFF_EXPONENT) -> float:
    """Delay before ``attempt`` (1-based). The first attempt never waits."""
    if attempt <= 1:
        return 0.0
    return base_delay * 2 ** min(attempt - 2, max_exponent)


class ReconnectingListener(Capability, EventListenerPort):
    def __init__(
        self,
        transport: PushTransport,
        event_bus: EventBus | None = None,
        *,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        base_delay: float = RECONNECT_BASE_DELAY_SECS,
        max_backoff_exponent: int = MAX_BACKOFF_EXPONENT,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._transport = transport
        self._event_bus = event_bus
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_exponent = max_backoff_exponent
        self._metrics = metrics
        self._state = ListenerState.IDLE
        self._failed = False
        self._stopping = False

    def name(self) -> str:
        return "event"

    @property
    def state(self) -> ListenerState:
        return self._state

    async def health_check(self) -> bool:
        return not self._failed

    async def stop(self) -> None:
        self._stopping = True
        self._transport.close()
        self._state = ListenerState.TERMINATED

    async def listen(self, sink: asyncio.Queue[InboundMessage]) -> None:
        loop = asyncio.get_running_loop()
        self._stopping = False
        self._failed = False
        self._state = ListenerState.CONNECTING
        self._publish(ConnectionStateChanged(connected=False))

        attempt = 0
        while True:
            attempt += 1
            if attempt > self._max_attempts:
                self._state = ListenerState.TERMINATED
                self._failed = True
                logger.error("Listener: exceeded max reconnect attempts (%d)", self._max_attempts)
                raise ReconnectExhaustedError(f"{self._max_attempts} attempts")

            if attempt > 1:
                delay = backoff_delay(attempt, self._base_delay, self._max_exponent)
                logger.warning(
                    "Listener: reconnect attempt %d/%d in %.1fs", attempt, self._max_attempts, delay
                )
                if self._metrics is not None:
                    self._metrics.record_reconnect()
                await asyncio.sleep(delay)

            if self._stopping:
                logger.info("Listener: stop requested, not reconnecting")
                return

            self._state = ListenerState.CONNECTING
            try:
                await self._run_connection(loop, sink)
            except ListenerThreadCrashed:
                self._state = ListenerState.TERMINATED
                self._failed = True
                raise
            except Exception as e:
                self._state = ListenerState.DISCONNECTED
                if self._stopping:
                    self._state = ListenerState.TERMINATED
                    return
                logger.warning("Listener: connection error: %s", e)
                continue

            self._state = ListenerState.TERMINATED
            logger.info("Listener: connection closed normally")
            return

    async def _run_connection(
        self, loop: asyncio.AbstractEventLoop, sink: asyncio.Queue[InboundMessage]
    ) -> None:
        done: asyncio.Future[None] = loop.create_future()

        def on_event(raw: dict[str, Any]) -> None:
            loop.call_soon_threadsafe(self._deliver_raw, raw, sink)

        def worker() -> None:
            error: BaseException | None = None
            loop.call_soon_threadsafe(self._on_connected)
            try:
                self._transport.run(on_event)
            except Exception as e:
                error = e
            except BaseException as e:
                error = ListenerThreadCrashed(repr(e))
                error.__cause__ = e
            loop.call_soon_threadsafe(self._on_disconnected, done, error)

        logger.info("Listener: connecting to event stream")
        thread = threading.Thread(target=worker, name="feishu-push-listener", daemon=True)
        thread.start()
        try:
            await done
        except asyncio.CancelledError:
            self._transport.close()
            raise

    def _on_connected(self) -> None:
        self._state = ListenerState.CONNECTED
        self._publish(ConnectionStateChanged(connected=True))

    def _on_disconnected(self, done: asyncio.Future[None], error: BaseException | None) -> None:
        self._publish(ConnectionStateChanged(connected=False))
        if done.done():
            return
        if error is None:
            done.set_result(None)
        else:
            done.set_exception(error)

    def _deliver_raw(self, raw: dict[str, Any], sink: asyncio.Queue[InboundMessage]) -> None:
        try:
            msg = decode_message_event(raw)
        except MessageDecodeError as e:
            logger.error("Listener: dropping undecodable event: %s", e)
            if self._metrics is not None:
                self._metrics.record_dropped("decode")
            return
        deliver_message(msg, sink, self._event_bus, self._metrics)

    def _publish(self, event: ConnectionStateChanged) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)
