"""Cooldown rate limiter guarding the shared scraping browser."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from deckassist.errors.exceptions import RateLimitError

logger = logging.getLogger(__name__)


class CooldownLimiter:
    """Enforces a minimum interval between calls, failing fast inside it.

    A call inside the cooldown window raises RateLimitError carrying the
    remaining wait instead of queueing. ``acquire`` has no await between the
    check and the timestamp update, so on a single event loop it is atomic;
    callers on other threads need their own lock.
    """

    def __init__(
        self,
        interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = interval
        self._clock = clock
        self._last_call: float | None = None

        # Stats
        self._total_calls = 0
        self._total_rejected = 0

    @property
    def interval(self) -> float:
        return self._interval

    def remaining(self) -> float:
        """Seconds left in the current cooldown window (0 when clear)."""
        if self._last_call is None:
            return 0.0
        elapsed = self._clock() - self._last_call
        return max(0.0, self._interval - elapsed)

    def acquire(self) -> None:
        """Record a call, or raise RateLimitError if still cooling down."""
        wait = self.remaining()
        if wait > 0:
            self._total_rejected += 1
            logger.debug("Cooldown active, %.2fs remaining", wait)
            raise RateLimitError(
                f"Rate limited. Please wait {math.ceil(wait)}s",
                retry_after=wait,
            )
        self._last_call = self._clock()
        self._total_calls += 1

    @property
    def stats(self) -> dict:
        """Return current limiter statistics."""
        return {
            "interval": self._interval,
            "remaining": self.remaining(),
            "total_calls": self._total_calls,
            "total_rejected": self._total_rejected,
        }

    def reset(self) -> None:
        """Reset all state (for testing)."""
        self._last_call = None
        self._total_calls = 0
        self._total_rejected = 0
