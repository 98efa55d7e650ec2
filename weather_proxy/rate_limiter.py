"""
Fixed-window, in-memory rate limiter keyed by caller API key.

Windows are aligned to the epoch clock hour: a request at 14:59:59 and one at
15:00:00 fall into different windows, while 14:00 today and 14:00 tomorrow
are never confused.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from weather_proxy.access_guard import mask_key
from weather_proxy.config import RateLimitConfig

logger = logging.getLogger(__name__)


@dataclass
class CallerUsage:
    """Requests recorded for one caller key in its current window."""

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int


class RateLimiter:
    """
    Per caller request counter with an atomic check-then-increment.

    The usage map is guarded by a single lock held only while a counter is
    inspected or updated, so concurrent requests from the same key can never
    both observe the last free slot.
    """

    def __init__(
        self,
        max_requests: int = RateLimitConfig.MAX_REQUESTS,
        window_seconds: int = RateLimitConfig.WINDOW_SECONDS,
        cleanup_threshold: int = RateLimitConfig.CLEANUP_THRESHOLD,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_requests: Requests allowed per key per window
            window_seconds: Window length, aligned to the epoch
            cleanup_threshold: Tracked key count that triggers a purge
            clock: Returns the current epoch time (defaults to time.time)
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_threshold = cleanup_threshold
        self._clock = clock or time.time
        self._usage: Dict[str, CallerUsage] = {}
        self._lock = threading.Lock()
        self._last_purged_window = float("-inf")

    def __len__(self) -> int:
        return len(self._usage)

    def _window_start(self, now: float) -> float:
        return float(int(now // self.window_seconds) * self.window_seconds)

    def check_and_record(self, caller_key: str) -> RateLimitDecision:
        """
        Record a request for caller_key if it still has quota.

        A rejected request is not counted.

        Args:
            caller_key: Validated caller API key

        Returns:
            RateLimitDecision describing whether the request may proceed
        """
        with self._lock:
            now = self._clock()
            window_start = self._window_start(now)

            if (
                len(self._usage) > self.cleanup_threshold
                and window_start > self._last_purged_window
            ):
                self._purge_locked(window_start)

            usage = self._usage.get(caller_key)
            if usage is None:
                usage = CallerUsage(count=0, window_start=window_start)
                self._usage[caller_key] = usage
            elif usage.window_start < window_start:
                # Windows only move forward; a late reading counts against the newer one
                usage.count = 0
                usage.window_start = window_start

            if usage.count >= self.max_requests:
                allowed = False
            else:
                usage.count += 1
                allowed = True
            remaining = self.max_requests - usage.count
            reset_at = int(usage.window_start + self.window_seconds)

        if not allowed:
            logger.warning("Rate limit exceeded for API key: %s", mask_key(caller_key))
        else:
            logger.debug(
                "Recorded request for %s (%d remaining)", mask_key(caller_key), remaining
            )

        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=remaining,
            reset_at=reset_at,
            retry_after=max(1, int(reset_at - now)),
        )

    def reset_at(self) -> int:
        """Epoch second at which the current window ends."""
        return int(self._window_start(self._clock()) + self.window_seconds)

    def remaining(self, caller_key: str) -> int:
        """Requests caller_key may still make in the current window."""
        window_start = self._window_start(self._clock())
        with self._lock:
            usage = self._usage.get(caller_key)
            if usage is None or usage.window_start != window_start:
                return self.max_requests
            return self.max_requests - usage.count

    def purge_expired(self) -> int:
        """Drop usage entries from finished windows. Returns how many were dropped."""
        window_start = self._window_start(self._clock())
        with self._lock:
            return self._purge_locked(window_start)

    def _purge_locked(self, window_start: float) -> int:
        self._last_purged_window = max(self._last_purged_window, window_start)
        expired = [
            key for key, usage in self._usage.items() if usage.window_start < window_start
        ]
        for key in expired:
            del self._usage[key]
        if expired:
            logger.info("Purged %d expired rate limit entries", len(expired))
        return len(expired)
