from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from time import time
from typing import Callable


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_epoch: float
    count: int = 0

    def retry_after(self, now: float) -> int:
        return max(1, int(round(self.reset_epoch - now)))


class FixedWindowRateLimiter:
    """In-memory counter map keyed by client and scope.

    A window opens on the first hit for a key and lasts `window_seconds`;
    hits past `limit` inside the window are rejected.
    """

    def __init__(self, *, clock: Callable[[], float] = time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._buckets: dict[str, dict[str, float]] = {}

    def check(self, *, key: str, limit: int, window_seconds: int = 60) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = {"count": 0, "reset_at": now + window_seconds}
                self._buckets[key] = bucket

            bucket["count"] += 1
            count = int(bucket["count"])
            return RateLimitDecision(
                allowed=count <= limit,
                limit=limit,
                remaining=max(0, limit - count),
                reset_epoch=bucket["reset_at"],
                count=count,
            )

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _purge_expired(self, now: float) -> None:
        stale_keys = [key for key, bucket in self._buckets.items() if now >= bucket["reset_at"]]
        for key in stale_keys:
            self._buckets.pop(key, None)
