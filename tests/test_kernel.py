"""Test capability lifecycle management in the kernel."""

import logging

import pytest

from feishu_channel.errors import CapabilityNotFoundError, CapabilityStartError
from feishu_channel.kernel.capability import Capability
from feishu_channel.kernel.kernel import FeishuKernel


class RecordingCap(Capability):
    def __init__(self, name, log, fail_start=False, fail_stop=False, healthy=True):
        self._name = name
        self._log = log
        self._fail_start = fail_start
        self._fail_stop = fail_stop
        self._healthy = healthy

    def name(self):
        return self._name

    async def start(self):
        self._log.append(("start", self._name))
        if self._fail_start:
            raise RuntimeError("token endpoint down")

    async def stop(self):
        self._log.append(("stop", self._name))
        if self._fail_stop:
            raise RuntimeError("stuck")

    async def health_check(self):
        if self._healthy is None:
            raise RuntimeError("health endpoint exploded")
        return self._healthy


class MinimalCap(Capability):
    def name(self):
        return "minimal"


def _kernel(*caps):
    kernel = FeishuKernel()
    for cap in caps:
        kernel.register(cap)
    return kernel


@pytest.mark.asyncio
async def test_register_and_start():
    log = []
    kernel = _kernel(RecordingCap("auth", log), RecordingCap("im", log))
    assert kernel.capability_count == 2
    await kernel.start_all()
    assert log == [("start", "auth"), ("start", "im")]


@pytest.mark.asyncio
async def test_default_capability_contract():
    cap = MinimalCap()
    await cap.start()
    await cap.stop()
    assert await cap.health_check() is True


@pytest.mark.asyncio
async def test_start_all_fails_fast_naming_capability():
    log = []
    kernel = _kernel(
        RecordingCap("auth", log),
        RecordingCap("bot", log, fail_start=True),
        RecordingCap("im", log),
    )
    with pytest.raises(CapabilityStartError) as exc_info:
        await kernel.start_all()

    assert exc_info.value.capability == "bot"
    assert "bot: token endpoint down" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert log == [("start", "auth"), ("start", "bot")]


@pytest.mark.asyncio
async def test_stop_all_reverse_order_best_effort(caplog):
    log = []
    kernel = _kernel(
        RecordingCap("auth", log),
        RecordingCap("bot", log, fail_stop=True),
        RecordingCap("im", log),
    )
    with caplog.at_level(logging.ERROR):
        await kernel.stop_all()

    assert log == [("stop", "im"), ("stop", "bot"), ("stop", "auth")]
    assert "failed to stop 'bot'" in caplog.text


@pytest.mark.asyncio
async def test_health_check_all_all_healthy():
    log = []
    kernel = _kernel(RecordingCap("auth", log), RecordingCap("bot", log), RecordingCap("im", log))
    results = await kernel.health_check_all()
    assert results == [("auth", True), ("bot", True), ("im", True)]
    assert all(ok for _, ok in results)


@pytest.mark.asyncio
async def test_health_check_all_no_short_circuit():
    log = []
    kernel = _kernel(
        RecordingCap("auth", log, healthy=False),
        RecordingCap("bot", log, healthy=None),
        RecordingCap("im", log),
    )
    assert await kernel.health_check_all() == [("auth", False), ("bot", False), ("im", True)]


def test_get_capability_by_name():
    log = []
    auth = RecordingCap("auth", log)
    kernel = _kernel(auth)
    assert kernel.get("auth") is auth
    assert kernel.names() == ["auth"]
    with pytest.raises(CapabilityNotFoundError):
        kernel.get("cards")


def test_kernel_owns_event_bus():
    kernel = FeishuKernel()
    sub = kernel.event_bus.subscribe()
    assert kernel.event_bus.subscriber_count == 1
    sub.close()
