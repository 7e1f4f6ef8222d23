"""Capability plugin contract."""

from __future__ import annotations

import abc


class Capability(abc.ABC):
    """A platform capability (auth, im, bot, event, ...) managed by the kernel.

    New capabilities are added by subclassing; the kernel never changes.
    """

    @abc.abstractmethod
    def name(self) -> str:
        """Capability identifier, e.g. "auth"."""

    async def start(self) -> None:
        """Initialize (optional override). Raise to abort kernel startup."""

    async def stop(self) -> None:
        """Graceful shutdown (optional override)."""

    async def health_check(self) -> bool:
        return True
