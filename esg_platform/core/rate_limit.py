"""
Fixed-window request rate limiting keyed by client address.
"""
import math
import time
from typing import Callable, Dict, NamedTuple, Tuple

from esg_platform.core.config import RateLimitConfig


class RateLimitDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the current window closes


class FixedWindowRateLimiter:
    """
    Allows `max_requests` hits per key within each window of `window_ms`.
    The window for a key starts at its first hit.
    """

    # Expired windows are purged once the table grows past this size
    PURGE_THRESHOLD = 10_000

    def __init__(self, window_ms: int, max_requests: int, clock: Callable[[], float] = time.monotonic):
        self.window = window_ms / 1000.0
        self.max_requests = max_requests
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    @classmethod
    def from_config(cls, rate_limit: RateLimitConfig) -> "FixedWindowRateLimiter":
        return cls(rate_limit.window_ms, rate_limit.max_requests)

    def hit(self, key: str) -> RateLimitDecision:
        now = self.clock()
        started, count = self._windows.get(key, (now, 0))

        if now - started >= self.window:
            started, count = now, 0

        count += 1
        self._windows[key] = (started, count)

        if len(self._windows) > self.PURGE_THRESHOLD:
            self._purge(now)

        return RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(self.max_requests - count, 0),
            reset_after=max(started + self.window - now, 0.0),
        )

    def _purge(self, now: float) -> None:
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]


def rate_limit_headers(decision: RateLimitDecision) -> Dict[str, str]:
    return {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(math.ceil(decision.reset_after)),
    }
