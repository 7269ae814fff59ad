"""Retry policies for connecting and resending."""

from __future__ import annotations

import time
from typing import Callable, Iterator


class RetryPolicy:
    """Yields attempt numbers, sleeping ``interval`` between them.

    ``max_attempts=None`` means retry forever. ``sleep`` is injectable so
    tests can drive the policy without waiting.
    """

    def __init__(
        self,
        interval: float,
        max_attempts: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval = interval
        self.max_attempts = max_attempts
        self.sleep = sleep

    def attempts(self) -> Iterator[int]:
        attempt = 0
        while self.max_attempts is None or attempt < self.max_attempts:
            if attempt and self.interval > 0:
                self.sleep(self.interval)
            attempt += 1
            yield attempt
