from __future__ import annotations

import threading
import time as time_module
from dataclasses import dataclass
from typing import Callable


@dataclass
class RateLimitRecord:
    count: int
    window_reset_at: float


class FixedWindowRateLimiter:
    """Per-identifier fixed-window request throttle.

    A window opens on the first request from an identifier and closes
    ``window_seconds`` later; up to ``capacity`` requests are allowed inside it.
    Bursts of up to twice the capacity are possible across a window boundary.
    """

    # Expired records are swept once every this many calls.
    PRUNE_EVERY = 1000

    def __init__(
        self,
        capacity: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time_module.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.capacity = int(capacity)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._calls = 0

    def allow(self, identifier: str) -> bool:
        with self._lock:
            now = self._clock()
            self._calls += 1
            if self._calls % self.PRUNE_EVERY == 0:
                self._prune(now)
            record = self._records.get(identifier)
            if record is None or now > record.window_reset_at:
                self._records[identifier] = RateLimitRecord(1, now + self.window_seconds)
                return True
            if record.count < self.capacity:
                record.count += 1
                return True
            return False

    def record_for(self, identifier: str) -> RateLimitRecord | None:
        with self._lock:
            record = self._records.get(identifier)
            return RateLimitRecord(record.count, record.window_reset_at) if record else None

    def reset(self):
        with self._lock:
            self._records.clear()
            self._calls = 0

    def _prune(self, now: float):
        expired = [key for key, rec in self._records.items() if now > rec.window_reset_at]
        for key in expired:
            del self._records[key]
