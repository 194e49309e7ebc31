"""Change propagation.

Two delivery paths keep observers consistent:

- `ChangeNotifier`: payload-free "state changed" signal. Subscribers re-read
  the stores when it fires. No ordering between subscribers.
- `PollingObserver`: each observer re-reads on a fixed interval anyway, so a
  missed signal (e.g. one delivered to another process) is repaired by the
  next poll. `wake()` hooks a notification into the same loop.

Worst-case staleness of an observer is `poll_interval + publish_latency`
(see `EngineConfig.max_staleness`).
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[], None]

T = TypeVar("T")


class Subscription:
    """Handle returned by `ChangeNotifier.subscribe`."""

    def __init__(self, notifier: "ChangeNotifier", handler: ChangeHandler) -> None:
        self._notifier = notifier
        self.handler = handler

    def cancel(self) -> None:
        self._notifier._remove(self)


class ChangeNotifier:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []
        self._version = 0

    @property
    def version(self) -> int:
        """Number of publishes so far."""
        with self._lock:
            return self._version

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        sub = Subscription(self, handler)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def publish(self) -> None:
        with self._lock:
            self._version += 1
            subs = list(self._subscriptions)

        for sub in subs:
            try:
                sub.handler()
            except Exception:
                # A broken observer must not fail the mutation that triggered it.
                logger.exception("change handler %r failed", sub.handler)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)


class PollingObserver(Generic[T]):
    """Re-read shared state periodically and on demand.

    `on_update` is called from the polling thread whenever the value returned by
    `read` differs from the previous one (and once for the first read).
    """

    def __init__(
        self,
        *,
        read: Callable[[], T],
        on_update: Callable[[T], None],
        interval: float,
        name: str = "observer",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._read = read
        self._on_update = on_update
        self.interval = interval
        self.name = name

        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._offer_lock = threading.Lock()
        self._has_last = False
        self._last: T | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name=f"poll-{self.name}", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        self._wake_event.set()
        t = self._thread
        if t and t.is_alive():
            t.join(timeout=max(1.0, self.interval))

    def wake(self) -> None:
        """Request an immediate re-read (use as a notification handler)."""
        self._wake_event.set()

    def poll_once(self) -> bool:
        """Read now; return True if `on_update` fired."""
        return self.offer(self._read())

    def offer(self, value: T) -> bool:
        """Take a value obtained elsewhere (e.g. a broadcast snapshot) as a read."""
        with self._offer_lock:
            if self._has_last and value == self._last:
                return False
            self._has_last = True
            self._last = value
            self._on_update(value)
            return True

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self._wake_event.clear()
            try:
                self.poll_once()
            except Exception:
                # Keep polling; the next cycle is the retry.
                logger.exception("%s: poll failed", self.name)
            self._wake_event.wait(self.interval)
