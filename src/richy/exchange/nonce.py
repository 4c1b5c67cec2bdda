from __future__ import annotations

import threading
import time
from typing import Callable


def _epoch_microseconds() -> int:
    return time.time_ns() // 1_000


class NonceGenerator:
    """Issues strictly increasing nonces derived from a microsecond clock.

    When the clock has not moved past the previous value (coarse resolution,
    back-to-back calls, a clock step backwards) the last nonce is bumped by one
    instead, so a value is never handed out twice. Issuance is serialized by a
    lock, so one generator can be shared by threads and tasks.
    """

    def __init__(self, *, clock: Callable[[], int] = _epoch_microseconds) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            candidate = int(self._clock())
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate
