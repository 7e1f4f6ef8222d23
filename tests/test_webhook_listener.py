"""Test the uvicorn-backed webhook listener's connection state reporting."""

import asyncio
import socket

import pytest

from feishu_channel.errors import ConnectionFailedError
from feishu_channel.gateway.webhook import WebhookListener
from feishu_channel.kernel.event_bus import EventBus


def _drain(sub):
    events = []
    while (event := sub.try_recv()) is not None:
        events.append(event)
    return events


@pytest.mark.asyncio
async def test_bind_failure_reports_no_connection():
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen(1)
    port = blocker.getsockname()[1]
    bus = EventBus()
    sub = bus.subscribe()
    listener = WebhookListener(host="127.0.0.1", port=port, event_bus=bus)

    try:
        with pytest.raises(ConnectionFailedError):
            await asyncio.wait_for(listener.listen(asyncio.Queue()), timeout=5)
    finally:
        blocker.close()

    assert _drain(sub) == []


@pytest.mark.asyncio
async def test_connected_after_bind_and_disconnected_on_stop():
    bus = EventBus()
    sub = bus.subscribe()
    listener = WebhookListener(host="127.0.0.1", port=0, event_bus=bus)

    task = asyncio.create_task(listener.listen(asyncio.Queue()))
    first = await asyncio.wait_for(sub.recv(), timeout=5)
    assert first.connected is True

    await listener.stop()
    await asyncio.wait_for(task, timeout=5)

    assert [e.connected for e in _drain(sub)] == [False]
