from __future__ import annotations

# MQTT adapter around the QueueEngine.
#
# The engine process is the single writer: kiosks, attendants and admins send
# requests on `<ns>/engine/requests` and get a reply on their own topic. After
# every mutation the service broadcasts a change event, and it also publishes
# a full snapshot on a fixed interval for observers that missed one.

import argparse
import logging
import threading
import time
from typing import Any, Callable, TYPE_CHECKING

from .config import DEFAULT_NAMESPACE, configure_logging, load_config
from .engine import QueueEngine
from .errors import ErrorResponse, QueueError
from .models import Ticket

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

logger = logging.getLogger(__name__)

RequestHandler = Callable[[dict[str, Any]], dict[str, Any]]


class MqttQueueEngineService:
    def __init__(self, *, mqtt: MqttClient, engine: QueueEngine, namespace: str = DEFAULT_NAMESPACE) -> None:
        from .mqtt_topics import change_events, engine_requests, state_snapshots

        self._engine_requests = engine_requests
        self._change_events = change_events
        self._state_snapshots = state_snapshots

        self.mqtt = mqtt
        self.engine = engine
        self.namespace = namespace

        self._routes: dict[str, RequestHandler] = {
            "issue_ticket": self._issue_ticket,
            "call_next": self._call_next,
            "recall": self._by_ticket_id(engine.recall),
            "start_service": self._by_ticket_id(engine.start_service),
            "finish_service": self._by_ticket_id(engine.finish_service),
            "cancel": self._by_ticket_id(engine.cancel),
            "get_ticket": self._by_ticket_id(engine.get_ticket),
            "active_ticket": self._active_ticket,
            "list_tickets": lambda msg: _tickets_reply(engine.list_tickets()),
            "waiting_queue": lambda msg: _tickets_reply(engine.waiting_queue()),
            "list_counters": lambda msg: {
                "type": "counters",
                "counters": [c.to_message() for c in engine.list_counters()],
            },
            "list_categories": lambda msg: {
                "type": "categories",
                "categories": [c.to_message() for c in engine.list_categories()],
            },
            "update_counter_label": self._update_counter_label,
            "reset_all": self._reset_all,
            "stats": lambda msg: {"type": "stats", "stats": engine.stats().to_message()},
            "call_board": lambda msg: {"type": "call_board", "board": engine.call_board().to_message()},
            "snapshot": lambda msg: {"type": "snapshot", **engine.snapshot()},
        }

        self._subscription = None
        self._stop_event = threading.Event()
        self._snapshot_thread: threading.Thread | None = None

    def start(self, *, publish_snapshot_every: float | None = None) -> None:
        interval = publish_snapshot_every or self.engine.config.poll_interval

        self.mqtt.subscribe(self._engine_requests(self.namespace))
        self.mqtt.add_handler(self._handle_message)
        self._subscription = self.engine.notifier.subscribe(self._on_change)

        self._snapshot_thread = threading.Thread(
            target=self._snapshot_publisher_loop,
            args=(interval,),
            daemon=True,
        )
        self._snapshot_thread.start()

    def stop(self) -> None:
        """Stop background work. Call before disconnecting MQTT."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._stop_event.set()
        t = self._snapshot_thread
        if t and t.is_alive():
            t.join(timeout=1.0)

    # -------------------- broadcast --------------------

    def _on_change(self) -> None:
        self.mqtt.publish(
            self._change_events(self.namespace),
            {"type": "changed", "version": self.engine.notifier.version, "ts": time.time()},
        )

    def publish_snapshot(self) -> None:
        msg = {"type": "snapshot", "version": self.engine.notifier.version, **self.engine.snapshot()}
        self.mqtt.publish(self._state_snapshots(self.namespace), msg)

    def _snapshot_publisher_loop(self, interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                self.publish_snapshot()
            except Exception:
                logger.exception("snapshot publish failed")
            self._stop_event.wait(interval)

    # -------------------- request handling --------------------

    def _reply(self, reply_to: str, corr_id: str | None, message: dict[str, Any]) -> None:
        msg = dict(message)
        if corr_id is not None:
            msg["corr_id"] = corr_id
        self.mqtt.publish(reply_to, msg)

    def _handle_message(self, topic: str, msg: dict[str, Any]) -> None:
        if topic != self._engine_requests(self.namespace):
            return

        reply_to = msg.get("reply_to") if isinstance(msg.get("reply_to"), str) else None
        corr_id = msg.get("corr_id") if isinstance(msg.get("corr_id"), str) else None
        if not reply_to:
            return

        self._reply(reply_to, corr_id, self.handle_request(msg))

    def handle_request(self, msg: dict[str, Any]) -> dict[str, Any]:
        """Run one request and build its reply (error envelope on failure)."""
        mtype = msg.get("type")
        route = self._routes.get(mtype) if isinstance(mtype, str) else None
        if route is None:
            return ErrorResponse("bad_request", f"unknown request type {mtype!r}").to_message()

        try:
            return route(msg)
        except QueueError as e:
            return e.to_response().to_message()
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("bad %s request: %s", mtype, e)
            return ErrorResponse("bad_request", f"invalid {mtype} request: {e}").to_message()

    def _issue_ticket(self, msg: dict[str, Any]) -> dict[str, Any]:
        ticket = self.engine.issue_ticket(_required(msg, "category_id"), _required(msg, "priority"))
        return _ticket_reply(ticket)

    def _call_next(self, msg: dict[str, Any]) -> dict[str, Any]:
        return _ticket_reply(self.engine.call_next(_required(msg, "counter_id")))

    def _active_ticket(self, msg: dict[str, Any]) -> dict[str, Any]:
        return _ticket_reply(self.engine.active_ticket(_required(msg, "counter_id")))

    def _update_counter_label(self, msg: dict[str, Any]) -> dict[str, Any]:
        label = msg.get("label")
        if not isinstance(label, str):
            raise ValueError("label required")
        counter = self.engine.update_counter_label(_required(msg, "counter_id"), label)
        return {"type": "counter", "counter": counter.to_message()}

    def _reset_all(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.engine.reset_all()
        return {"type": "ok"}

    @staticmethod
    def _by_ticket_id(op: Callable[[str], Ticket]) -> RequestHandler:
        def handler(msg: dict[str, Any]) -> dict[str, Any]:
            return _ticket_reply(op(_required(msg, "ticket_id")))

        return handler


def _required(msg: dict[str, Any], key: str) -> str:
    value = msg.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} required")
    return value


def _ticket_reply(ticket: Ticket | None) -> dict[str, Any]:
    return {"type": "ticket", "ticket": None if ticket is None else ticket.to_message()}


def _tickets_reply(tickets: list[Ticket]) -> dict[str, Any]:
    return {"type": "tickets", "tickets": [t.to_message() for t in tickets]}


def main() -> None:
    # Import MQTT dependencies only when running the real service.
    from .mqtt_client import MqttClient

    parser = argparse.ArgumentParser(description="Queue engine service (MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--config", default=None, help="JSON file with categories and counters")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument(
        "--publish-snapshot-every",
        type=float,
        default=None,
        help="seconds between snapshot broadcasts (default: config poll_interval)",
    )
    args = parser.parse_args()

    configure_logging(args.log_level)
    config = load_config(args.config)
    engine = QueueEngine(config)

    mqtt_client = MqttClient(client_id=f"engine-{int(time.time())}", host=args.mqtt_host, port=args.mqtt_port)
    mqtt_client.start()

    service = MqttQueueEngineService(mqtt=mqtt_client, engine=engine, namespace=args.namespace)
    service.start(publish_snapshot_every=args.publish_snapshot_every)

    print(
        f"[engine] connected to MQTT {args.mqtt_host}:{args.mqtt_port}, namespace={args.namespace}, "
        f"counters={len(config.counters)}, max staleness={config.max_staleness:0.1f}s"
    )

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()
        mqtt_client.stop()


if __name__ == "__main__":
    main()
