"""Token-bucket pacing for outbound provider calls."""

from __future__ import annotations

import threading
import time
from typing import Callable


class RateLimiter:
    """Token bucket refilled at one token per ``interval_seconds``.

    ``acquire`` blocks (via the injected ``sleep``) until a token is
    available. With ``burst=1`` consecutive calls are spaced at least
    ``interval_seconds`` apart, which is what provider usage policies ask for.
    The first call never waits.
    """

    def __init__(
        self,
        interval_seconds: float,
        *,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if burst < 1:
            raise ValueError("burst must be >= 1")
        self.interval_seconds = interval_seconds
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        if self.interval_seconds == 0:
            self._tokens = float(self.burst)
        else:
            elapsed = max(0.0, now - self._updated_at)
            self._tokens = min(float(self.burst), self._tokens + elapsed / self.interval_seconds)
        self._updated_at = now

    def acquire(self) -> float:
        """Take one token, waiting if needed. Returns the seconds waited."""
        with self._lock:
            self._refill(self._clock())
            waited = 0.0
            if self._tokens < 1.0:
                waited = (1.0 - self._tokens) * self.interval_seconds
                self._sleep(waited)
                self._refill(self._clock())
                # The injected sleep may not advance the clock (e.g. a no-op in tests).
                self._tokens = max(self._tokens, 1.0)
            self._tokens -= 1.0
            return waited

