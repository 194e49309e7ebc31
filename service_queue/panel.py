from __future__ import annotations

# Public call panel (console).
#
# The panel is an observer: it never writes. It keeps its view fresh through
# both delivery paths:
# - change events from the engine wake it up immediately
# - its own poll every `interval` seconds repairs any missed event
# - the engine's periodic snapshot broadcast is taken as a read too
#
# When the board shows a new call (or a recall) it prints the announcement and
# rings the terminal bell, which stands in for the audio call-out.

import argparse
import sys
import time
from typing import Callable

from .callboard import CallAnnouncer, CallBoard, build_call_board
from .config import DEFAULT_NAMESPACE, DEFAULT_POLL_INTERVAL, configure_logging
from .models import Counter, Ticket
from .notifier import PollingObserver


class CallBoardPanel:
    def __init__(
        self,
        *,
        read_board: Callable[[], CallBoard],
        announce: Callable[[Ticket], None],
        render: Callable[[CallBoard], None] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.announcer = CallAnnouncer(announce)
        self._render = render
        self.board = CallBoard()
        self.poller: PollingObserver[CallBoard] = PollingObserver(
            read=read_board,
            on_update=self._on_board,
            interval=interval,
            name="panel",
        )

    def start(self) -> None:
        self.poller.start()

    def stop(self) -> None:
        self.poller.stop()

    def wake(self) -> None:
        """Notification handler: re-read now instead of at the next poll."""
        self.poller.wake()

    def apply_snapshot(self, tickets: list[Ticket]) -> bool:
        """Snapshot handler: rebuild the board from a broadcast ticket list."""
        return self.poller.offer(build_call_board(tickets))

    def _on_board(self, board: CallBoard) -> None:
        self.board = board
        self.announcer.observe(board)
        if self._render is not None:
            self._render(board)


def format_call(ticket: Ticket, counters: dict[str, Counter]) -> str:
    counter = counters.get(ticket.counter_id or "")
    where = f"counter {counter.number}" if counter else "counter ?"
    return f"{ticket.code} -> {where}"


def main() -> None:
    from .client import QueueClient

    parser = argparse.ArgumentParser(description="Public call panel (console, MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL)
    parser.add_argument("--no-bell", action="store_true", help="do not ring the terminal bell")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level)
    client = QueueClient.connect(
        mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace, name="panel"
    )
    counters = {c.id: c for c in client.list_counters()}

    def announce(ticket: Ticket) -> None:
        bell = "" if args.no_bell else "\a"
        print(f"{bell}[panel] NOW CALLING {format_call(ticket, counters)}")
        sys.stdout.flush()

    def render(board: CallBoard) -> None:
        if board.history:
            print("[panel] previous: " + ", ".join(format_call(t, counters) for t in board.history))

    panel = CallBoardPanel(
        read_board=client.call_board,
        announce=announce,
        render=render,
        interval=args.poll_interval,
    )
    client.on_change(panel.wake)
    client.on_snapshot(panel.apply_snapshot)
    panel.start()
    print(f"[panel] watching namespace={args.namespace} (poll every {args.poll_interval:0.1f}s)")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        panel.stop()
        client.close()


if __name__ == "__main__":
    main()
