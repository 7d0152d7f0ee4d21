"""
Per-Identity Sliding Window Rate Limiter

Each limiter keeps, per identity id, the timestamps (milliseconds) of the
requests it accepted inside the trailing window. A hit:

    1. drops timestamps at or before ``now - window_ms``
    2. rejects with RateLimited when ``max_requests`` remain (nothing recorded)
    3. otherwise records ``now`` and lets the request through

Requests without an identity are let through untouched.

Limiters are plain objects owned by the application (``app.state``), built
once at startup by ``build_rate_limiters``. Steps 1-3 run under a lock so the
limiter is safe to share between threads.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Hashable, Optional

from orderdesk.core.config import Settings
from orderdesk.core.exceptions import RateLimited

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class SlidingWindowRateLimiter:
    """
    Sliding window counter keyed by identity.

    Attributes:
        max_requests: Requests allowed inside one window
        window_ms: Window length in milliseconds
        clock: Returns "now" in milliseconds
        max_tracked: Idle identities are pruned once this many are tracked
    """

    def __init__(
        self,
        max_requests: int,
        window_ms: int,
        clock: Clock = monotonic_ms,
        max_tracked: int = 10_000,
        name: str = "default",
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be at least 1")

        self.max_requests = max_requests
        self.window_ms = window_ms
        self.clock = clock
        self.max_tracked = max_tracked
        self.name = name
        self._hits: dict[Hashable, deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, identity_id: Optional[Hashable]) -> None:
        """
        Count one request for an identity.

        Raises:
            RateLimited: If the identity already used up its window
        """
        if identity_id is None:
            return

        with self._lock:
            now = self.clock()
            window_start = now - self.window_ms

            timestamps = self._hits.get(identity_id)
            if timestamps is None:
                if len(self._hits) >= self.max_tracked:
                    self._prune(window_start)
                timestamps = self._hits[identity_id] = deque()

            while timestamps and timestamps[0] <= window_start:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                logger.warning(
                    f"Rate limit '{self.name}' exceeded for identity {identity_id} "
                    f"({len(timestamps)}/{self.max_requests} in {self.window_ms}ms)"
                )
                raise RateLimited()

            timestamps.append(now)

    def remaining(self, identity_id: Hashable) -> int:
        """Requests the identity may still make in the current window."""
        with self._lock:
            window_start = self.clock() - self.window_ms
            timestamps = self._hits.get(identity_id, ())
            used = sum(1 for t in timestamps if t > window_start)
            return max(self.max_requests - used, 0)

    @property
    def tracked_identities(self) -> int:
        return len(self._hits)

    def _prune(self, window_start: float) -> None:
        """Forget identities with no request inside the window. Caller holds the lock."""
        idle = [key for key, ts in self._hits.items() if not ts or ts[-1] <= window_start]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug(f"Rate limiter '{self.name}' pruned {len(idle)} idle identities")


def build_rate_limiters(settings: Settings, clock: Clock = monotonic_ms) -> dict[str, SlidingWindowRateLimiter]:
    """
    Build the named limiters used by the API.

    Returns:
        ``{"admin": ..., "orders": ...}``
    """
    return {
        "admin": SlidingWindowRateLimiter(
            max_requests=settings.admin_rate_limit_max_requests,
            window_ms=settings.admin_rate_limit_window_ms,
            clock=clock,
            max_tracked=settings.rate_limit_max_tracked_identities,
            name="admin",
        ),
        "orders": SlidingWindowRateLimiter(
            max_requests=settings.order_rate_limit_max_requests,
            window_ms=settings.order_rate_limit_window_ms,
            clock=clock,
            max_tracked=settings.rate_limit_max_tracked_identities,
            name="orders",
        ),
    }
