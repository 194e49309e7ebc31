from __future__ import annotations

import threading
import time
from typing import Callable


class MonotonicClock:
    """Wall-clock seconds that never step backwards.

    Ticket order ranks on `created_at`, so a wall clock corrected backwards
    (NTP, manual change) is held at the last reading until it catches up.
    """

    def __init__(self, source: Callable[[], float] = time.time) -> None:
        self._source = source
        self._lock = threading.Lock()
        self._last = float("-inf")

    def __call__(self) -> float:
        with self._lock:
            now = self._source()
            if now < self._last:
                now = self._last
            self._last = now
            return now
