from __future__ import annotations

# Kiosk traffic generator.
#
# Simulates a stream of customers drawing tickets, using the exact same MQTT
# request/response protocol as the `kiosk` CLI. Useful to load the single
# writer with concurrent issuance while attendants dispatch.
#
# Poisson arrival model:
# - customers arrive according to a Poisson process with rate λ
# - each picks a category uniformly and a priority class (see arrival.py)

import argparse
import random
import time
from typing import Any

from .arrival import sample_exponential_interarrival, sample_priority
from .client import QueueClient
from .config import DEFAULT_NAMESPACE, configure_logging
from .errors import QueueError


def generate_tickets(
    client: Any,
    *,
    rate_per_sec: float,
    priority_share: float = 0.2,
    max_tickets: int | None = None,
    rng: random.Random | None = None,
    sleep: Any = time.sleep,
) -> int:
    """Issue tickets until `max_tickets` (or forever). Returns count issued.

    `client` is a QueueClient or a QueueEngine.
    """
    r = rng or random.Random()
    categories = client.list_categories()
    if not categories:
        raise ValueError("no categories configured")

    issued = 0
    while max_tickets is None or issued < max_tickets:
        dt = sample_exponential_interarrival(rate_per_sec=rate_per_sec, rng=r)
        sleep(dt)

        category = r.choice(categories)
        priority = sample_priority(priority_share=priority_share, rng=r)
        try:
            ticket = client.issue_ticket(category.id, priority)
        except QueueError as e:
            print(f"[generator] {category.code_prefix} {priority.value} -> rejected {e.code} (dt={dt:0.2f}s)")
            continue
        issued += 1
        print(f"[generator] {ticket.code} {priority.value} (dt={dt:0.2f}s)")
    return issued


def main() -> None:
    parser = argparse.ArgumentParser(description="Kiosk traffic generator (Poisson arrivals over MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument(
        "--rate",
        type=float,
        required=True,
        help="arrival rate λ in customers/second (Poisson process)",
    )
    parser.add_argument("--priority-share", type=float, default=0.2, help="fraction of priority tickets")
    parser.add_argument("--max-tickets", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level)
    client = QueueClient.connect(
        mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace, name="generator"
    )
    print(
        f"[generator] connected to MQTT {args.mqtt_host}:{args.mqtt_port}, namespace={args.namespace}, "
        f"rate={args.rate} cust/s"
    )
    try:
        generate_tickets(
            client,
            rate_per_sec=args.rate,
            priority_share=args.priority_share,
            max_tickets=args.max_tickets,
            rng=random.Random(args.seed),
        )
    except KeyboardInterrupt:
        pass
    finally:
        client.close()


if __name__ == "__main__":
    main()
