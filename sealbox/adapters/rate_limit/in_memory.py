"""In-memory per-identity window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Each identity's window starts at its first request and is forgotten once it
  has elapsed, so no address outlives its counting window in memory.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from sealbox.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _WindowState:
    window_start: float
    count: int


class InMemoryWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key within a window of time.

    The window for a key opens with the key's first request and resets once
    ``window_seconds`` have passed since then (e.g. 10 requests per 15
    minutes).

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        each worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def _is_expired(self, state: _WindowState, now: float) -> bool:
        return now >= state.window_start + self._window_seconds

    def _purge_expired_locked(self, now: float) -> None:
        expired = [k for k, s in self._state_by_key.items() if self._is_expired(s, now)]
        for key in expired:
            del self._state_by_key[key]

    def _get_or_open_state(self, key: str, now: float) -> _WindowState:
        """Get the live window for key, opening a fresh one if none is live."""
        state = self._state_by_key.get(key)
        if state is None or self._is_expired(state, now):
            state = _WindowState(window_start=now, count=0)
            self._state_by_key[key] = state
        return state

    def _build_result(self, *, allowed: bool, now: float, state: _WindowState) -> RateLimitResult:
        reset_at = state.window_start + self._window_seconds
        reset_after = max(0, int(math.ceil(reset_at - now)))
        return RateLimitResult(
            allowed=allowed,
            limit=self._limit,
            remaining=max(0, self._limit - state.count),
            reset_at=int(math.ceil(reset_at)),
            reset_after_seconds=reset_after,
            retry_after_seconds=None if allowed else reset_after,
        )

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Checks the current window usage and counts the request only when it
        is allowed.

        Args:
            key: Unique identifier for rate limiting (the client address).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            self._purge_expired_locked(now)
            state = self._get_or_open_state(key, now)

            if state.count + cost <= self._limit:
                state.count += cost
                return self._build_result(allowed=True, now=now, state=state)

            return self._build_result(allowed=False, now=now, state=state)

    def reset(self) -> None:
        with self._lock:
            self._state_by_key.clear()
