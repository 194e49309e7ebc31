import pytest

from conftest import FakeMqtt, LoopbackMqtt

from service_queue.client import QueueClient
from service_queue.errors import CounterBusy, InvalidTransition, NotFound, QueueError
from service_queue.models import PriorityClass, TicketStatus
from service_queue.mqtt_topics import change_events, state_snapshots
from service_queue.panel import CallBoardPanel
from service_queue.service import MqttQueueEngineService

NS = "test/v1"


@pytest.fixture
def client(engine):
    server = FakeMqtt("engine")
    svc = MqttQueueEngineService(mqtt=server, engine=engine, namespace=NS)
    svc.start(publish_snapshot_every=60.0)
    yield QueueClient(LoopbackMqtt(server, client_id="kiosk-1"), namespace=NS)
    svc.stop()


def test_full_ticket_flow(client):
    a = client.issue_ticket("1", "normal")
    b = client.issue_ticket("1", PriorityClass.DISABILITY_OR_PREGNANCY)
    assert (a.code, b.code) == ("M-001", "MP-002")
    assert [t.id for t in client.waiting_queue()] == [b.id, a.id]

    called = client.call_next("m1")
    assert called.id == b.id
    assert client.active_ticket("m1").id == b.id

    client.recall(b.id)
    client.start_service(b.id)
    done = client.finish_service(b.id)
    assert done.status is TicketStatus.FINISHED
    assert client.active_ticket("m1") is None

    assert client.call_next("m1").id == a.id
    assert client.call_next("m2") is None
    assert client.cancel(a.id).status is TicketStatus.CANCELED
    assert client.get_ticket(a.id).status is TicketStatus.CANCELED


def test_errors_come_back_as_exceptions(client):
    client.issue_ticket("1", "normal")
    t = client.call_next("m1")
    with pytest.raises(CounterBusy):
        client.call_next("m1")
    client.finish_service(t.id)
    with pytest.raises(InvalidTransition):
        client.recall(t.id)
    with pytest.raises(NotFound):
        client.issue_ticket("nope", "normal")


def test_admin_operations(client):
    client.issue_ticket("2", "elderly")
    counter = client.update_counter_label("m3", "Carla")
    assert (counter.number, counter.attendant_label) == (3, "Carla")
    assert [c.attendant_label for c in client.list_counters()][2] == "Carla"
    assert [c.code_prefix for c in client.list_categories()] == ["M", "R"]

    stats = client.stats()
    assert stats.total == 1
    assert stats.by_priority["elderly"] == 1

    snap = client.snapshot()
    assert [t["code"] for t in snap["tickets"]] == ["RP-001"]

    client.reset_all()
    assert client.list_tickets() == []
    assert client.list_counters()[2].attendant_label == "Carla"


def test_call_board_over_mqtt(client):
    client.issue_ticket("1", "normal")
    t = client.call_next("m4")
    board = client.call_board()
    assert board.current == t
    assert board.history == []


def test_on_change_handler_filters_topic(engine):
    mqtt = FakeMqtt("panel")
    client = QueueClient(mqtt, namespace=NS)
    hits = []
    client.on_change(lambda: hits.append(1))
    assert change_events(NS) in mqtt.subscriptions

    mqtt.deliver(change_events(NS), {"type": "changed", "version": 1})
    mqtt.deliver(f"{NS}/state/snapshot", {"type": "snapshot"})
    assert hits == [1]


def test_bad_request_is_queue_error(client):
    with pytest.raises(QueueError) as exc:
        client.recall("")
    assert exc.value.code == "bad_request"


def test_panel_catches_up_from_broadcast_snapshot(engine):
    server = FakeMqtt("engine")
    svc = MqttQueueEngineService(mqtt=server, engine=engine, namespace=NS)
    mqtt = FakeMqtt("panel")
    client = QueueClient(mqtt, namespace=NS)
    announced = []
    panel = CallBoardPanel(read_board=engine.call_board, announce=announced.append, interval=60.0)
    client.on_snapshot(panel.apply_snapshot)
    assert state_snapshots(NS) in mqtt.subscriptions
    panel.poller.poll_once()

    engine.issue_ticket("1", "normal")
    called = engine.call_next("m1")
    svc.publish_snapshot()
    (snap,) = server.on_topic(state_snapshots(NS))
    mqtt.deliver(state_snapshots(NS), snap)

    assert panel.board.current == called
    assert [t.id for t in announced] == [called.id]
    assert panel.apply_snapshot(engine.list_tickets()) is False
