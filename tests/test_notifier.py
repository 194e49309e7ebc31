import threading
import time

from service_queue.config import EngineConfig
from service_queue.engine import QueueEngine
from service_queue.notifier import ChangeNotifier, PollingObserver


def test_subscribers_all_called_and_version_counts():
    n = ChangeNotifier()
    seen = []
    n.subscribe(lambda: seen.append("a"))
    n.subscribe(lambda: seen.append("b"))
    n.publish()
    assert sorted(seen) == ["a", "b"]
    assert n.version == 1


def test_cancelled_subscription_is_not_called():
    n = ChangeNotifier()
    seen = []
    sub = n.subscribe(lambda: seen.append(1))
    sub.cancel()
    n.publish()
    assert seen == []


def test_failing_subscriber_does_not_block_others():
    n = ChangeNotifier()
    seen = []

    def boom():
        raise RuntimeError("observer crashed")

    n.subscribe(boom)
    n.subscribe(lambda: seen.append(1))
    n.publish()
    assert seen == [1]


def test_poll_once_reports_only_changes():
    value = {"v": 1}
    updates = []
    obs = PollingObserver(read=lambda: dict(value), on_update=updates.append, interval=10.0)
    assert obs.poll_once() is True
    assert obs.poll_once() is False
    value["v"] = 2
    assert obs.poll_once() is True
    assert updates == [{"v": 1}, {"v": 2}]


def test_wake_triggers_immediate_reread():
    value = {"v": 1}
    got_two = threading.Event()

    def on_update(v):
        if v["v"] == 2:
            got_two.set()

    obs = PollingObserver(read=lambda: dict(value), on_update=on_update, interval=30.0)
    obs.start()
    try:
        time.sleep(0.05)
        value["v"] = 2
        obs.wake()
        assert got_two.wait(2.0)
    finally:
        obs.stop()


def test_missed_notification_is_repaired_within_staleness_bound():
    config = EngineConfig(poll_interval=0.1, publish_latency=0.05)
    engine = QueueEngine(config)
    seen = threading.Event()

    def on_update(tickets):
        if tickets:
            seen.set()

    # The observer never subscribes to the notifier: only polling can deliver.
    obs = PollingObserver(read=engine.list_tickets, on_update=on_update, interval=config.poll_interval)
    obs.start()
    try:
        time.sleep(0.02)
        start = time.monotonic()
        engine.issue_ticket("1", "normal")
        assert seen.wait(config.max_staleness + 1.0)
        # Generous slack for slow CI; the bound itself is poll_interval + latency.
        assert time.monotonic() - start <= config.max_staleness + 0.5
    finally:
        obs.stop()
