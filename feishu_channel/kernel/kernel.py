"""Microkernel: capability lifecycle and health aggregation.

Startup is fail-fast (a broken dependency halts immediately), shutdown is
best-effort (every capability gets a chance to release its resources).
"""

from __future__ import annotations

import logging

from feishu_channel.errors import CapabilityNotFoundError, CapabilityStartError
from feishu_channel.kernel.capability import Capability
from feishu_channel.kernel.event_bus import EventBus

logger = logging.getLogger(__name__)


class FeishuKernel:
    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._capabilities: list[Capability] = []
        self._event_bus = event_bus if event_bus is not None else EventBus()

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def capability_count(self) -> int:
        return len(self._capabilities)

    def register(self, capability: Capability) -> None:
        """Append a capability. Must happen before any lifecycle call."""
        logger.debug("Kernel: registered capability '%s'", capability.name())
        self._capabilities.append(capability)

    def get(self, name: str) -> Capability:
        for cap in self._capabilities:
            if cap.name() == name:
                return cap
        raise CapabilityNotFoundError(name)

    def names(self) -> list[str]:
        return [cap.name() for cap in self._capabilities]

    async def start_all(self) -> None:
        """Start capabilities in registration order; stop at the first failure."""
        for cap in self._capabilities:
            logger.info("Kernel: starting '%s'", cap.name())
            try:
                await cap.start()
            except Exception as e:
                raise CapabilityStartError(cap.name(), e) from e
        logger.info("Kernel: all %d capabilities started", len(self._capabilities))

    async def stop_all(self) -> None:
        """Stop capabilities in reverse order. Failures are logged, never raised."""
        for cap in reversed(self._capabilities):
            logger.info("Kernel: stopping '%s'", cap.name())
            try:
                await cap.stop()
            except Exception:
                logger.exception("Kernel: failed to stop '%s'", cap.name())

    async def health_check_all(self) -> list[tuple[str, bool]]:
        results: list[tuple[str, bool]] = []
        for cap in self._capabilities:
            try:
                healthy = bool(await cap.health_check())
            except Exception:
                logger.exception("Kernel: health check of '%s' raised", cap.name())
                healthy = False
            results.append((cap.name(), healthy))
        return results
