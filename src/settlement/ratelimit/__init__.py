"""Rate limiter factory."""

from settlement.ratelimit.memory import InMemoryRateLimiter
from settlement.ratelimit.port import RateLimiter

_current_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Return the current rate limiter. Defaults to InMemoryRateLimiter."""
    global _current_limiter
    if _current_limiter is None:
        _current_limiter = InMemoryRateLimiter()
    return _current_limiter


def set_rate_limiter(limiter: RateLimiter) -> None:
    global _current_limiter
    _current_limiter = limiter


def reset_rate_limiter() -> None:
    global _current_limiter
    _current_limiter = None
