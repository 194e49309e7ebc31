from __future__ import annotations

# Admin console: dashboard figures, ticket list, counter labels, reset.

import argparse
from typing import Any

from .client import QueueClient
from .config import DEFAULT_NAMESPACE, configure_logging
from .errors import QueueError
from .stats import QueueStats


def format_stats(stats: QueueStats) -> list[str]:
    def secs(v: float | None) -> str:
        return "-" if v is None else f"{v / 60:0.1f}m"

    lines = [
        f"total={stats.total} waiting={stats.pending} finished={stats.finished}",
        "by status: " + ", ".join(f"{k}={v}" for k, v in stats.by_status.items()),
        "by priority: " + ", ".join(f"{k}={v}" for k, v in stats.by_priority.items()),
        f"avg wait={secs(stats.avg_wait_seconds)} avg service={secs(stats.avg_service_seconds)}",
    ]
    return lines


def run_command(client: Any, args: argparse.Namespace) -> list[str]:
    if args.cmd == "stats":
        return format_stats(client.stats())

    if args.cmd == "tickets":
        return [
            f"{t.code:8} {t.priority.value:24} {t.status.value:11} counter={t.counter_id or '-'}"
            for t in client.list_tickets()
        ] or ["(no tickets)"]

    if args.cmd == "counters":
        return [f"{c.number}: {c.attendant_label} ({c.id})" for c in client.list_counters()]

    if args.cmd == "label":
        counter = client.update_counter_label(args.counter_id, args.label)
        return [f"counter {counter.number} label set to {counter.attendant_label!r}"]

    if args.cmd == "reset":
        if not args.yes:
            return ["refusing to reset without --yes (this deletes every ticket)"]
        client.reset_all()
        return ["all tickets cleared"]

    raise ValueError(f"unknown command {args.cmd!r}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Admin console (MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("stats", help="dashboard figures")
    sub.add_parser("tickets", help="list all tickets")
    sub.add_parser("counters", help="list counters")
    p_label = sub.add_parser("label", help="rename a counter's attendant")
    p_label.add_argument("counter_id")
    p_label.add_argument("label")
    p_reset = sub.add_parser("reset", help="delete every ticket")
    p_reset.add_argument("--yes", action="store_true")
    args = parser.parse_args()

    configure_logging(args.log_level)
    with QueueClient.connect(
        mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace, name="admin"
    ) as client:
        try:
            lines = run_command(client, args)
        except QueueError as e:
            print(f"[admin] rejected ({e.code}): {e}")
            raise SystemExit(1)
    for line in lines:
        print(f"[admin] {line}")


if __name__ == "__main__":
    main()
