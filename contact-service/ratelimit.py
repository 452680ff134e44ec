"""
ratelimit.py — Per-Session Rate Gate
=====================================
Keeps the last request time of every client session and decides whether a new
request is far enough from the previous one.

The stored time is overwritten on every request after the first, including
rejected ones. A client that keeps retrying inside the interval keeps pushing
its own gate forward; it only gets through after a full quiet interval.

In-memory and per-process. Run the service as a single process.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    allowed: bool
    elapsed: float | None    # None on the first request of a session


class RateLimiter:
    def __init__(self, interval: float = 60.0, ttl: float = 1440.0,
                 clock: Callable[[], float] = time.time):
        self.interval = interval
        self.ttl = ttl
        self._clock = clock
        self._last_seen: dict[str, float] = {}
        self._last_purge = clock()
        self._lock = threading.Lock()

    def hit(self, key: str) -> RateLimitDecision:
        """Record a request for `key` and report whether it may proceed."""
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            previous = self._last_seen.get(key)
            self._last_seen[key] = now

        if previous is None:
            return RateLimitDecision(allowed=True, elapsed=None)

        elapsed = now - previous
        return RateLimitDecision(allowed=elapsed >= self.interval, elapsed=elapsed)

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock.
        if now - self._last_purge < self.ttl:
            return
        expired = [k for k, seen in self._last_seen.items() if now - seen >= self.ttl]
        for k in expired:
            del self._last_seen[k]
        self._last_purge = now
        if expired:
            log.info(f"Expired {len(expired)} idle session(s) from rate gate")

    def reset(self) -> None:
        with self._lock:
            self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._last_seen)
