"""Fixed-window rate limiting per client IP and endpoint class.

Tracks request counts per (identity, endpoint class) in process memory and
rejects requests above the configured maximum until the window elapses.

Algorithm:
1. First request of a window: count=1, window starts
2. Each further request in the window increments the count
3. count > limit: reject without incrementing further
4. Window elapsed: state resets on the next request

This is an abuse-deterrence control, not a billing meter: state is per
worker process and is lost on restart.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

ENDPOINT_TOKEN = "token"
ENDPOINT_GENERATE = "generate"

UNKNOWN_IDENTITY = "unknown"


@dataclass(frozen=True)
class WindowLimit:
    """Maximum number of requests per window for one endpoint class."""

    max_requests: int
    window_seconds: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check.

    Attributes:
        allowed: Whether the request may proceed.
        count: Requests counted in the current window (including this one if allowed).
        limit: Configured maximum for the endpoint class.
        retry_after: Seconds until the current window resets.
    """

    allowed: bool
    count: int
    limit: int
    retry_after: int


class _Window:
    __slots__ = ("count", "started_at")

    def __init__(self, started_at: float) -> None:
        self.count = 0
        self.started_at = started_at


class FixedWindowRateLimiter:
    """In-memory fixed-window counter keyed by (identity, endpoint class).

    The increment-and-compare step runs under a lock, so concurrent requests
    from the same identity never lose updates or over-admit.

    Attributes:
        limits: Window limit per endpoint class.
        sweep_threshold: Table size above which expired windows are dropped.
    """

    def __init__(
        self,
        limits: dict[str, WindowLimit],
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = 10_000,
    ) -> None:
        if not limits:
            raise ValueError("At least one endpoint class limit is required")
        self.limits = dict(limits)
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._windows: dict[tuple[str, str], _Window] = {}
        self._lock = threading.Lock()

        summary = ", ".join(
            f"{name}={limit.max_requests}/{limit.window_seconds:g}s"
            for name, limit in self.limits.items()
        )
        logger.info(f"FixedWindowRateLimiter initialized ({summary})")

    def hit(self, identity: str | None, endpoint_class: str) -> RateLimitDecision:
        """Count one request and decide whether it is allowed.

        Args:
            identity: Caller network identity (client IP).
            endpoint_class: Endpoint class name, e.g. "token" or "generate".

        Returns:
            RateLimitDecision for this request.

        Raises:
            KeyError: If the endpoint class has no configured limit.
        """
        limit = self.limits[endpoint_class]

        # An unknown origin shares one bucket instead of bypassing the limit
        if not identity or not identity.strip():
            identity = UNKNOWN_IDENTITY

        key = (identity, endpoint_class)
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now - window.started_at >= limit.window_seconds:
                if window is None and len(self._windows) >= self.sweep_threshold:
                    self._sweep(now)
                window = _Window(started_at=now)
                self._windows[key] = window

            retry_after = max(1, math.ceil(window.started_at + limit.window_seconds - now))

            if window.count >= limit.max_requests:
                decision = RateLimitDecision(
                    allowed=False,
                    count=window.count,
                    limit=limit.max_requests,
                    retry_after=retry_after,
                )
            else:
                window.count += 1
                decision = RateLimitDecision(
                    allowed=True,
                    count=window.count,
                    limit=limit.max_requests,
                    retry_after=retry_after,
                )

        if not decision.allowed:
            logger.warning(
                f"Rate limit exceeded: endpoint={endpoint_class}, ip={identity}, "
                f"limit={limit.max_requests}/{limit.window_seconds:g}s"
            )
        return decision

    def allow(self, identity: str | None, endpoint_class: str) -> bool:
        """Count one request; True if it is within the limit."""
        return self.hit(identity, endpoint_class).allowed

    def _sweep(self, now: float) -> None:
        """Drop windows that have fully elapsed. Caller holds the lock."""
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.limits[key[1]].window_seconds
        ]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired windows")

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
