from __future__ import annotations

import time
from typing import Callable, Optional


class RateLimiter:
    """Minimum-interval gate between successive calls of one category.

    ``wait()`` blocks until at least ``interval`` seconds have passed since the
    previous ``wait()`` returned. The first call never blocks.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("Rate limit interval must not be negative.")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> float:
        """Sleep as needed and return the number of seconds slept."""
        slept = 0.0
        if self._last is not None:
            remaining = self.interval - (self._clock() - self._last)
            if remaining > 0:
                self._sleep(remaining)
                slept = remaining
        self._last = self._clock()
        return slept


__all__ = ["RateLimiter"]
