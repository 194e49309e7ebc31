from __future__ import annotations

# Kiosk client.
#
# A kiosk draws one ticket per invocation:
# - connect to broker
# - send an issue_ticket request
# - print the ticket code and exit

import argparse

from .client import QueueClient
from .config import DEFAULT_NAMESPACE, configure_logging
from .errors import QueueError
from .models import PriorityClass, Ticket


def issue_ticket(*, mqtt_host: str, mqtt_port: int, namespace: str, category_id: str, priority: str) -> Ticket:
    with QueueClient.connect(mqtt_host=mqtt_host, mqtt_port=mqtt_port, namespace=namespace, name="kiosk") as client:
        return client.issue_ticket(category_id, priority)


def main() -> None:
    parser = argparse.ArgumentParser(description="Kiosk: draw a ticket (MQTT)")
    parser.add_argument("--category", required=True, help="category id")
    parser.add_argument(
        "--priority",
        default=PriorityClass.NORMAL.value,
        choices=[p.value for p in PriorityClass],
    )
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level)
    try:
        ticket = issue_ticket(
            mqtt_host=args.mqtt_host,
            mqtt_port=args.mqtt_port,
            namespace=args.namespace,
            category_id=args.category,
            priority=args.priority,
        )
    except QueueError as e:
        print(f"[kiosk] rejected ({e.code}): {e}")
        raise SystemExit(1)
    print(f"[kiosk] your ticket: {ticket.code} ({ticket.priority.value})")


if __name__ == "__main__":
    main()
