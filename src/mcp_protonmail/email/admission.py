"""Admission control: recipient allow list and fixed-window rate limiting."""

import logging
import math
import threading
import time
from collections.abc import Callable, Iterable

from pydantic import BaseModel, Field

from mcp_protonmail.common.exceptions import AllowListViolation, RateLimitExceeded

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60.0


class AllowListGuard:
    """Rejects requests addressed to anyone outside a configured set.

    An empty set disables the guard.
    """

    def __init__(self, entries: Iterable[str] = ()):
        self._entries = frozenset(entry.lower() for entry in entries)

    @property
    def enabled(self) -> bool:
        return bool(self._entries)

    @property
    def size(self) -> int:
        return len(self._entries)

    def enforce(self, recipients: Iterable[str]) -> None:
        if not self.enabled:
            return

        disallowed = [
            recipient for recipient in recipients if recipient.lower() not in self._entries
        ]
        if disallowed:
            logger.info(f"Blocked recipients not on allow list: {', '.join(disallowed)}")
            raise AllowListViolation(disallowed)

    def describe(self) -> str:
        return f"enabled ({self.size} entries)" if self.enabled else "disabled"


class RateLimiterSnapshot(BaseModel):
    """Point-in-time view of the rate limiter counters."""

    enabled: bool = Field(..., description="Whether limiting is active.")
    limit: int | float = Field(..., description="Configured sends per window.")
    count: int = Field(..., description="Sends admitted in the current window.")
    window_start: float = Field(..., description="Window start, in epoch seconds.")


class RateLimiter:
    """Process-wide fixed-window send counter.

    The window rolls over lazily: the first ``admit`` call at least
    ``window_seconds`` after the window started resets the count. A limit of
    zero or less, or a non-finite limit, disables limiting and leaves the
    counters untouched.
    """

    def __init__(
        self,
        limit: int | float,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._window_start = clock()
        self._count = 0

    @property
    def enabled(self) -> bool:
        return math.isfinite(self.limit) and self.limit > 0

    def admit(self) -> None:
        """Consume one slot in the current window or raise RateLimitExceeded."""
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            if now - self._window_start >= self.window_seconds:
                logger.debug(f"Rate limit window rolled over after {self._count} sends")
                self._window_start = now
                self._count = 0

            if self._count >= self.limit:
                logger.info(f"Rate limit reached ({self._count}/{self.limit})")
                raise RateLimitExceeded(self.limit)

            self._count += 1

    def snapshot(self) -> RateLimiterSnapshot:
        with self._lock:
            return RateLimiterSnapshot(
                enabled=self.enabled,
                limit=self.limit,
                count=self._count,
                window_start=self._window_start,
            )

    def describe(self) -> str:
        snapshot = self.snapshot()
        if not snapshot.enabled:
            return "disabled"
        return f"{snapshot.count}/{snapshot.limit} in current minute window"
