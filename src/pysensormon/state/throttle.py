"""Per-channel commit throttling.

Decouples the raw callback rate of a sensor (10-60 Hz) from the rate at
which the snapshot is mutated. Throttle keys are a channel name or a
channel sub-stream (``"location.climb"``, ``"motion.vibration"``).
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from pysensormon.state.policy import should_commit


class ChannelThrottler:
    """Tracks the last commit time per throttle key."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._last_commit: dict[str, float] = {}

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def try_acquire(self, key: str, interval: float, *, now: float | None = None) -> bool:
        """Return True and record the commit when *key* may commit now."""
        with self._lock:
            current = self._clock() if now is None else now
            if not should_commit(now=current, last_commit=self._last_commit.get(key), interval=interval):
                return False
            self._last_commit[key] = current
            return True

    def last_commit(self, key: str) -> float | None:
        with self._lock:
            return self._last_commit.get(key)

    def reset(self) -> None:
        with self._lock:
            self._last_commit.clear()
