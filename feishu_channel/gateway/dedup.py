"""Message id deduplication.

Feishu may push the same event more than once, e.g. after a reconnect.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable

DEDUP_WINDOW_SECS = 60.0


class MessageDeduplicator:
    def __init__(
        self, window: float = DEDUP_WINDOW_SECS, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._window = window
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def is_duplicate(self, message_id: str) -> bool:
        """Record ``message_id`` and report whether it was seen within the window."""
        if not message_id:
            return False
        now = self._clock()
        self._prune(now)
        if message_id in self._seen:
            return True
        self._seen[message_id] = now
        return False

    def _prune(self, now: float) -> None:
        # insertion order == age order
        while self._seen:
            oldest_id, seen_at = next(iter(self._seen.items()))
            if now - seen_at <= self._window:
                break
            del self._seen[oldest_id]
