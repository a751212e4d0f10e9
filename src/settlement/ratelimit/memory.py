"""In-process sliding-window rate limiter.

Good for a single worker and for tests. Deployments running several workers
plug a shared limiter in through ``set_rate_limiter``.
"""

import math
import threading
import time
from collections import deque

from settlement.ratelimit.port import RATE_LIMITS, RateLimit, RateLimitDecision, RateLimiter


class InMemoryRateLimiter(RateLimiter):
    def __init__(self, limits: dict[str, RateLimit] | None = None, clock=time.monotonic):
        self.limits = limits or RATE_LIMITS
        self.clock = clock
        self._hits: dict[tuple[str, str], deque] = {}
        self._lock = threading.Lock()
        self._sweep_every = max(limit.window_seconds for limit in self.limits.values())
        self._last_sweep = clock()

    def _limit_for(self, bucket) -> RateLimit:
        return self.limits.get(bucket) or RATE_LIMITS["public"]

    def _sweep(self, now) -> None:
        """Forget identities whose every hit has left its window."""
        stale = [
            key
            for key, hits in self._hits.items()
            if not hits or hits[-1] <= now - self._limit_for(key[0]).window_seconds
        ]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    def check(self, identity: str, bucket: str) -> RateLimitDecision:
        limit = self._limit_for(bucket)
        now = self.clock()
        key = (bucket, identity)

        with self._lock:
            if now - self._last_sweep >= self._sweep_every:
                self._sweep(now)

            hits = self._hits.pop(key, None) or deque()
            while hits and hits[0] <= now - limit.window_seconds:
                hits.popleft()

            if len(hits) >= limit.max_requests:
                self._hits[key] = hits
                retry_after = max(1, math.ceil(hits[0] + limit.window_seconds - now))
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            hits.append(now)
            self._hits[key] = hits
            return RateLimitDecision(allowed=True, remaining=limit.max_requests - len(hits))

    def tracked_identities(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
