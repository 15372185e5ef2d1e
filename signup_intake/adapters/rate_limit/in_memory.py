"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: check-and-record happens under a single lock.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from signup_intake.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping a timestamp log per key over a rolling window.

    An attempt is allowed when fewer than ``limit`` attempts were recorded for
    the key during the last ``window_seconds``. Unlike a fixed window, this
    bounds every rolling interval, so a burst straddling a window boundary can
    never exceed the limit.

    Keys whose log has fully expired are pruned every ``prune_every`` calls so
    the map does not grow with every address ever seen.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
        prune_every: int = 1000,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per rolling window.
            window_seconds: Size of the rolling window in seconds.
            clock: Time source function returning UNIX time in seconds.
            prune_every: Number of consume() calls between idle-key sweeps.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if prune_every < 1:
            raise ValueError("prune_every must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._prune_every = prune_every
        self._lock = threading.Lock()
        self._hits_by_key: dict[str, deque[float]] = {}
        self._calls = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _expire(self, hits: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _prune_idle_locked(self, now: float) -> None:
        idle = []
        for key, hits in self._hits_by_key.items():
            self._expire(hits, now)
            if not hits:
                idle.append(key)
        for key in idle:
            del self._hits_by_key[key]

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Record an attempt for ``key`` if the rolling budget allows it.

        Args:
            key: Unique identifier for rate limiting (e.g., client address).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if cost > self._limit:
            raise ValueError("cost must not exceed limit")
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()

            self._calls += 1
            if self._calls % self._prune_every == 0:
                self._prune_idle_locked(now)

            hits = self._hits_by_key.setdefault(key, deque())
            self._expire(hits, now)

            if len(hits) + cost <= self._limit:
                hits.extend([now] * cost)
                reset_at = hits[0] + self._window_seconds
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - len(hits),
                    reset_at=int(math.ceil(reset_at)),
                    retry_after_seconds=None,
                )

            # The oldest attempts must age out before ``cost`` more fit.
            unblock_at = hits[len(hits) + cost - self._limit - 1] + self._window_seconds
            retry_after = max(1, int(math.ceil(unblock_at - now)))
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=max(0, self._limit - len(hits)),
                reset_at=int(math.ceil(hits[0] + self._window_seconds)),
                retry_after_seconds=retry_after,
            )

    def reset(self, key: str | None = None) -> None:
        """Forget recorded attempts for one key, or for every key."""
        with self._lock:
            if key is None:
                self._hits_by_key.clear()
            else:
                self._hits_by_key.pop(key, None)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits_by_key)
