from __future__ import annotations

# Blocking client for the queue engine service.
#
# Mirrors the QueueEngine boundary operations over MQTT request/response.
# Error envelopes are raised again as the matching QueueError subclass, so
# callers handle CounterBusy / InvalidTransition / NotFound the same way
# whether they talk to a local engine or a remote one.

import time
from typing import Any, Protocol

from .callboard import CallBoard
from .config import DEFAULT_NAMESPACE
from .errors import error_from_message
from .models import Category, Counter, PriorityClass, Ticket
from .mqtt_topics import change_events, engine_requests, engine_responses, state_snapshots
from .stats import QueueStats


class RequestTransport(Protocol):
    client_id: str

    def subscribe(self, topic: str) -> None: ...

    def add_handler(self, handler: Any) -> None: ...

    def request(
        self,
        *,
        request_topic: str,
        response_topic: str,
        message: dict[str, Any],
        timeout: float = 5.0,
    ) -> dict[str, Any]: ...


class QueueClient:
    def __init__(self, mqtt: RequestTransport, *, namespace: str = DEFAULT_NAMESPACE, timeout: float = 5.0) -> None:
        self.mqtt = mqtt
        self.namespace = namespace
        self.timeout = timeout
        self._reply_topic = engine_responses(mqtt.client_id, namespace)
        self._subscribed = False

    @classmethod
    def connect(
        cls,
        *,
        mqtt_host: str,
        mqtt_port: int,
        namespace: str = DEFAULT_NAMESPACE,
        name: str = "client",
        timeout: float = 5.0,
    ) -> "QueueClient":
        """Open a dedicated MQTT connection. Call `close()` when done."""
        from .mqtt_client import MqttClient

        # Unique client id so several kiosks/attendants can run at once.
        mqtt = MqttClient(client_id=f"{name}-{int(time.time() * 1000)}", host=mqtt_host, port=mqtt_port)
        mqtt.start()
        client = cls(mqtt, namespace=namespace, timeout=timeout)
        client.start()
        return client

    def start(self) -> None:
        if not self._subscribed:
            self.mqtt.subscribe(self._reply_topic)
            self._subscribed = True

    def close(self) -> None:
        stop = getattr(self.mqtt, "stop", None)
        if stop is not None:
            stop()

    def __enter__(self) -> "QueueClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def on_change(self, handler: Any) -> None:
        """Call `handler()` whenever the engine broadcasts a change event."""
        topic = change_events(self.namespace)
        self.mqtt.subscribe(topic)

        def _filter(t: str, msg: dict[str, Any]) -> None:
            if t == topic:
                handler()

        self.mqtt.add_handler(_filter)

    def on_snapshot(self, handler: Any) -> None:
        """Call `handler(tickets)` with the ticket list of every broadcast snapshot."""
        topic = state_snapshots(self.namespace)
        self.mqtt.subscribe(topic)

        def _filter(t: str, msg: dict[str, Any]) -> None:
            if t == topic:
                handler([Ticket.from_message(m) for m in msg.get("tickets", [])])

        self.mqtt.add_handler(_filter)

    # -------------------- operations --------------------

    def issue_ticket(self, category_id: str, priority: PriorityClass | str) -> Ticket:
        reply = self._call("issue_ticket", category_id=category_id, priority=PriorityClass(priority).value)
        return _required_ticket(reply)

    def call_next(self, counter_id: str) -> Ticket | None:
        return _ticket(self._call("call_next", counter_id=counter_id))

    def recall(self, ticket_id: str) -> Ticket:
        return _required_ticket(self._call("recall", ticket_id=ticket_id))

    def start_service(self, ticket_id: str) -> Ticket:
        return _required_ticket(self._call("start_service", ticket_id=ticket_id))

    def finish_service(self, ticket_id: str) -> Ticket:
        return _required_ticket(self._call("finish_service", ticket_id=ticket_id))

    def cancel(self, ticket_id: str) -> Ticket:
        return _required_ticket(self._call("cancel", ticket_id=ticket_id))

    def get_ticket(self, ticket_id: str) -> Ticket:
        return _required_ticket(self._call("get_ticket", ticket_id=ticket_id))

    def active_ticket(self, counter_id: str) -> Ticket | None:
        return _ticket(self._call("active_ticket", counter_id=counter_id))

    def list_tickets(self) -> list[Ticket]:
        return [Ticket.from_message(t) for t in self._call("list_tickets")["tickets"]]

    def waiting_queue(self) -> list[Ticket]:
        return [Ticket.from_message(t) for t in self._call("waiting_queue")["tickets"]]

    def list_counters(self) -> list[Counter]:
        return [Counter.from_message(c) for c in self._call("list_counters")["counters"]]

    def list_categories(self) -> list[Category]:
        return [Category.from_message(c) for c in self._call("list_categories")["categories"]]

    def update_counter_label(self, counter_id: str, label: str) -> Counter:
        reply = self._call("update_counter_label", counter_id=counter_id, label=label)
        return Counter.from_message(reply["counter"])

    def reset_all(self) -> None:
        self._call("reset_all")

    def stats(self) -> QueueStats:
        return QueueStats.from_message(self._call("stats")["stats"])

    def call_board(self) -> CallBoard:
        return CallBoard.from_message(self._call("call_board")["board"])

    def snapshot(self) -> dict[str, Any]:
        reply = self._call("snapshot")
        return {k: reply[k] for k in ("tickets", "counters", "categories")}

    def _call(self, mtype: str, **fields: Any) -> dict[str, Any]:
        self.start()
        reply = self.mqtt.request(
            request_topic=engine_requests(self.namespace),
            response_topic=self._reply_topic,
            message={"type": mtype, **fields},
            timeout=self.timeout,
        )
        if reply.get("type") == "error":
            raise error_from_message(reply)
        return reply


def _ticket(reply: dict[str, Any]) -> Ticket | None:
    data = reply.get("ticket")
    return None if data is None else Ticket.from_message(data)


def _required_ticket(reply: dict[str, Any]) -> Ticket:
    ticket = _ticket(reply)
    if ticket is None:
        raise ValueError(f"reply without ticket: {reply}")
    return ticket
