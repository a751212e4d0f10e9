"""Rate limiter port — a pre-check consulted before any settlement work."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimit:
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


# Buckets per kind of request
RATE_LIMITS = {
    "checkout": RateLimit(max_requests=10, window_seconds=60),
    "public": RateLimit(max_requests=30, window_seconds=60),
    "form_submit": RateLimit(max_requests=5, window_seconds=300),
}


class RateLimiter(ABC):
    @abstractmethod
    def check(self, identity: str, bucket: str) -> RateLimitDecision:
        """Count one request for ``identity`` in ``bucket`` and decide on it."""
        ...
