"""
privatepartyy.engine.rate_limit — Fixed-Window Upload Throttle
===============================================================

N actions per window per user, counted in process memory.

This is a **fixed** window, not a sliding one: the counter resets the first
time a user acts after ``window_seconds`` have elapsed since the window
opened.  A burst of ``max_requests`` at the very end of one window followed
by ``max_requests`` more at the start of the next is therefore allowed.
That is known, intended behaviour for this service.

State lives in a dict owned by the limiter instance, so limits are enforced
**per process**: in a multi-instance deployment each instance counts on its
own, and a restart forgets every window.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from privatepartyy.constants import DEFAULT_RATE_LIMIT, DEFAULT_WINDOW_SECONDS


@dataclass(slots=True)
class RateLimitEntry:
    count: int
    window_start: float


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int  # seconds until the current window closes


class FixedWindowRateLimiter:
    """Per-user fixed-window counter.

    ``clock`` defaults to :func:`time.monotonic`; tests pass a fake clock to
    move time forward without sleeping.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def check_and_record(self, user_id: str) -> RateLimitDecision:
        """Count one action for *user_id* and report whether it is allowed.

        Rejected actions are not counted.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)

            if entry is None or now - entry.window_start >= self.window_seconds:
                self._entries[user_id] = RateLimitEntry(count=1, window_start=now)
                return RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - 1,
                    retry_after=self.window_seconds,
                )

            retry_after = max(1, int(entry.window_start + self.window_seconds - now) + 1)

            if entry.count < self.max_requests:
                entry.count += 1
                return RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - entry.count,
                    retry_after=retry_after,
                )

            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                retry_after=retry_after,
            )

    def reset(self, user_id: str | None = None) -> None:
        """Clear rate limit state. If user_id is None, clear all."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
            else:
                self._entries.pop(user_id, None)
