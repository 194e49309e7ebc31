from __future__ import annotations

# Attendant console.
#
# One-shot actions act on the counter's current ticket (the one Calling or
# InService there), like the attendant screen does:
#   call-next | recall | start | finish | cancel | queue
#
# `auto` runs an unattended agent for simulations:
# - call the next ticket (idle briefly when the queue is empty)
# - start service, "serve" by sleeping, finish
# - repeat

import argparse
import time
from typing import Any

from .client import QueueClient
from .config import DEFAULT_NAMESPACE, configure_logging
from .errors import CounterBusy, InvalidTransition, NotFound, QueueError
from .models import Ticket, TicketStatus

ACTIONS = ("call-next", "recall", "start", "finish", "cancel", "queue", "auto")


def run_action(client: Any, *, counter_id: str, action: str, ticket_id: str | None = None) -> str:
    """Run one console action and return the line to show the attendant.

    `client` is a QueueClient or a QueueEngine; both expose the same calls.
    """
    if action == "call-next":
        try:
            ticket = client.call_next(counter_id)
        except CounterBusy:
            return "Finish the current ticket first."
        if ticket is None:
            return "No tickets waiting."
        return f"Calling {ticket.code}"

    if action == "queue":
        waiting = client.waiting_queue()
        if not waiting:
            return "No tickets waiting."
        return "Waiting: " + " ".join(t.code for t in waiting)

    ops = {
        "recall": client.recall,
        "start": client.start_service,
        "finish": client.finish_service,
        "cancel": client.cancel,
    }
    op = ops.get(action)
    if op is None:
        raise ValueError(f"unknown action {action!r}")

    if ticket_id is None:
        current = client.active_ticket(counter_id)
        if current is None:
            return f"Counter {counter_id} has no current ticket."
        ticket_id = current.id
    else:
        try:
            owner = client.get_ticket(ticket_id).counter_id
        except NotFound:
            return f"Unknown ticket {ticket_id}."
        if owner != counter_id:
            return f"Ticket {ticket_id} is not at counter {counter_id}."

    try:
        ticket = op(ticket_id)
    except InvalidTransition as e:
        return f"Not allowed: {e}"
    return f"{ticket.code}: {ticket.status.value}"


def serve_forever(
    client: Any,
    *,
    counter_id: str,
    service_seconds: float,
    idle_seconds: float = 1.0,
    max_tickets: int | None = None,
) -> int:
    """Serve tickets until `max_tickets` are finished (or forever). Returns count served."""
    served = 0
    while max_tickets is None or served < max_tickets:
        current: Ticket | None = client.active_ticket(counter_id)
        if current is None:
            current = client.call_next(counter_id)
            if current is None:
                time.sleep(idle_seconds)
                continue
            print(f"[attendant {counter_id}] calling {current.code}")

        try:
            if current.status is TicketStatus.CALLING:
                client.start_service(current.id)
            time.sleep(service_seconds)
            client.finish_service(current.id)
        except InvalidTransition:
            # Canceled by an admin while we were serving it.
            print(f"[attendant {counter_id}] {current.code} was closed elsewhere")
            continue
        served += 1
        print(f"[attendant {counter_id}] done {current.code} (served={served})")
    return served


def main() -> None:
    parser = argparse.ArgumentParser(description="Attendant console (MQTT)")
    parser.add_argument("action", choices=ACTIONS)
    parser.add_argument("--counter-id", required=True)
    parser.add_argument("--ticket-id", default=None, help="defaults to the counter's current ticket")
    parser.add_argument("--service-seconds", type=float, default=3.0, help="auto mode: time per ticket")
    parser.add_argument("--idle-seconds", type=float, default=1.0, help="auto mode: wait when queue is empty")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level)
    client = QueueClient.connect(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        name=f"attendant-{args.counter_id}",
    )
    try:
        if args.action == "auto":
            print(f"[attendant {args.counter_id}] serving, service_seconds={args.service_seconds}")
            serve_forever(
                client,
                counter_id=args.counter_id,
                service_seconds=args.service_seconds,
                idle_seconds=args.idle_seconds,
            )
        else:
            line = run_action(client, counter_id=args.counter_id, action=args.action, ticket_id=args.ticket_id)
            print(f"[attendant {args.counter_id}] {line}")
    except KeyboardInterrupt:
        pass
    except QueueError as e:
        print(f"[attendant {args.counter_id}] rejected ({e.code}): {e}")
        raise SystemExit(1)
    finally:
        client.close()


if __name__ == "__main__":
    main()
