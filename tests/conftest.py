from typing import Any

import pytest

from service_queue.engine import QueueEngine


class FakeClock:
    """Deterministic clock: every reading advances by `step` seconds."""

    def __init__(self, start: float = 1_000.0, step: float = 1.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class FakeMqtt:
    """In-memory stand-in for MqttClient (no broker)."""

    def __init__(self, client_id: str = "fake") -> None:
        self.client_id = client_id
        self.subscriptions: list[str] = []
        self.handlers: list[Any] = []
        self.published: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, topic: str) -> None:
        self.subscriptions.append(topic)

    def add_handler(self, handler: Any) -> None:
        self.handlers.append(handler)

    def publish(self, topic: str, message: dict[str, Any]) -> None:
        self.published.append((topic, message))

    def deliver(self, topic: str, message: dict[str, Any]) -> None:
        for h in list(self.handlers):
            h(topic, message)

    def on_topic(self, topic: str) -> list[dict[str, Any]]:
        return [m for t, m in self.published if t == topic]


class LoopbackMqtt(FakeMqtt):
    """Client-side fake whose request() is answered by a service's FakeMqtt."""

    def __init__(self, server: FakeMqtt, client_id: str = "loop") -> None:
        super().__init__(client_id)
        self.server = server
        self._seq = 0

    def request(self, *, request_topic: str, response_topic: str, message: dict[str, Any], timeout: float = 5.0):
        self._seq += 1
        corr_id = f"c{self._seq}"
        self.server.deliver(request_topic, {**message, "corr_id": corr_id, "reply_to": response_topic})
        for topic, reply in reversed(self.server.published):
            if topic == response_topic and reply.get("corr_id") == corr_id:
                return reply
        raise TimeoutError(f"No response for corr_id={corr_id}")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return QueueEngine(clock=clock)
