"""In-process message pipeline counters, no external deps."""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field


@dataclass
class MetricsCollector:
    received: int = 0
    forwarded: int = 0
    duplicates: int = 0
    reconnects: int = 0
    dropped: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _start_time: float = field(default_factory=time.time)

    def record_received(self) -> None:
        self.received += 1

    def record_forwarded(self) -> None:
        self.forwarded += 1

    def record_duplicate(self) -> None:
        self.duplicates += 1

    def record_dropped(self, reason: str) -> None:
        self.dropped[reason] += 1

    def record_reconnect(self) -> None:
        self.reconnects += 1

    def summary(self) -> dict:
        return {
            "uptime_seconds": int(time.time() - self._start_time),
            "received": self.received,
            "forwarded": self.forwarded,
            "duplicates": self.duplicates,
            "reconnects": self.reconnects,
            "dropped": dict(self.dropped),
        }
