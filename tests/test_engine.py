import random
import threading

import pytest

from service_queue.config import EngineConfig
from service_queue.engine import QueueEngine
from service_queue.errors import CounterBusy, InvalidTransition, NotFound
from service_queue.models import PriorityClass, TicketStatus
from service_queue.sequencer import sequence_number


def _count_publishes(engine):
    calls = []
    engine.notifier.subscribe(lambda: calls.append(1))
    return calls


# -------------------- scenarios --------------------


def test_preferential_ticket_called_before_earlier_normal(engine):
    a = engine.issue_ticket("1", PriorityClass.NORMAL)
    b = engine.issue_ticket("1", PriorityClass.PREFERENTIAL)
    assert (a.code, b.code) == ("M-001", "MP-002")

    called = engine.call_next("m1")
    assert called.id == b.id


def test_single_ticket_then_empty_queue(engine):
    a = engine.issue_ticket("1", "normal")
    called = engine.call_next("m1")
    assert called.id == a.id
    assert called.code == "M-001"
    assert called.status is TicketStatus.CALLING
    assert called.counter_id == "m1"
    assert called.called_at is not None

    assert engine.call_next("m2") is None


def test_busy_counter_rejects_second_call(engine):
    engine.issue_ticket("1", "normal")
    engine.issue_ticket("1", "normal")
    first = engine.call_next("m1")

    with pytest.raises(CounterBusy):
        engine.call_next("m1")
    assert engine.get_ticket(first.id).status is TicketStatus.CALLING
    assert len(engine.waiting_queue()) == 1

    engine.start_service(first.id)
    with pytest.raises(CounterBusy):
        engine.call_next("m1")

    engine.finish_service(first.id)
    assert engine.call_next("m1") is not None


def test_busy_counter_reported_even_when_queue_empty(engine):
    engine.issue_ticket("1", "normal")
    engine.call_next("m1")
    with pytest.raises(CounterBusy):
        engine.call_next("m1")


def test_finish_then_recall_is_invalid(engine):
    t = engine.issue_ticket("2", "elderly")
    engine.call_next("m3")
    engine.start_service(t.id)
    done = engine.finish_service(t.id)
    assert done.status is TicketStatus.FINISHED
    assert done.finished_at is not None

    with pytest.raises(InvalidTransition):
        engine.recall(t.id)
    assert engine.get_ticket(t.id) == done


def test_recall_refreshes_called_at(engine):
    engine.issue_ticket("1", "normal")
    called = engine.call_next("m1")
    recalled = engine.recall(called.id)
    assert recalled.status is TicketStatus.CALLING
    assert recalled.called_at > called.called_at
    assert engine.call_board().current.called_at == recalled.called_at


def test_cancel_frees_the_counter(engine):
    engine.issue_ticket("1", "normal")
    engine.issue_ticket("1", "normal")
    t = engine.call_next("m1")
    engine.cancel(t.id)
    assert engine.active_ticket("m1") is None
    assert engine.call_next("m1") is not None


# -------------------- errors --------------------


def test_unknown_ids_raise_not_found(engine):
    with pytest.raises(NotFound):
        engine.issue_ticket("99", "normal")
    with pytest.raises(NotFound):
        engine.call_next("nope")
    with pytest.raises(NotFound):
        engine.finish_service("nope")
    with pytest.raises(NotFound):
        engine.update_counter_label("nope", "x")


def test_unknown_priority_rejected(engine):
    with pytest.raises(ValueError):
        engine.issue_ticket("1", "vip")


def test_failed_operations_do_not_notify(engine):
    t = engine.issue_ticket("1", "normal")
    calls = _count_publishes(engine)
    with pytest.raises(InvalidTransition):
        engine.finish_service(t.id)
    with pytest.raises(NotFound):
        engine.call_next("nope")
    assert engine.call_next("m1") is not None
    calls.clear()
    assert engine.call_next("m2") is None
    assert calls == []


def test_each_successful_mutation_notifies_exactly_once(engine):
    calls = _count_publishes(engine)
    t = engine.issue_ticket("1", "normal")
    engine.call_next("m1")
    engine.recall(t.id)
    engine.start_service(t.id)
    engine.finish_service(t.id)
    engine.update_counter_label("m1", "Ana")
    engine.reset_all()
    assert len(calls) == 7


# -------------------- properties --------------------


def test_codes_unique_and_increasing_per_category(engine):
    rng = random.Random(7)
    codes = {"1": [], "2": []}
    for _ in range(60):
        cat = rng.choice(["1", "2"])
        prio = rng.choice(list(PriorityClass))
        codes[cat].append(engine.issue_ticket(cat, prio).code)
        if rng.random() < 0.3:
            busy = {t.counter_id for t in engine.list_tickets() if t.status.is_active}
            free = [c.id for c in engine.list_counters() if c.id not in busy]
            if free:
                engine.call_next(free[0])

    for cat_codes in codes.values():
        numbers = [sequence_number(c) for c in cat_codes]
        assert numbers == sorted(set(numbers))
        assert numbers == list(range(1, len(numbers) + 1))


def test_dispatch_respects_tiers_and_arrival(engine):
    rng = random.Random(3)
    for _ in range(30):
        engine.issue_ticket(rng.choice(["1", "2"]), rng.choice(list(PriorityClass)))

    while True:
        pending = [t for t in engine.list_tickets() if t.status is TicketStatus.ISSUED]
        called = engine.call_next("m1")
        if called is None:
            assert pending == []
            break
        tier = [t for t in pending if t.priority.is_priority] or pending
        assert called.id == min(tier, key=lambda t: t.created_at).id
        engine.finish_service(called.id)


def test_status_history_is_a_lifecycle_prefix(engine):
    allowed = [
        ["issued"],
        ["issued", "calling"],
        ["issued", "calling", "in_service"],
        ["issued", "calling", "in_service", "finished"],
        ["issued", "calling", "finished"],
    ]
    history: dict[str, list[str]] = {}

    def record():
        for t in engine.list_tickets():
            h = history.setdefault(t.id, [])
            if not h or h[-1] != t.status.value:
                h.append(t.status.value)

    engine.notifier.subscribe(record)
    rng = random.Random(11)
    for _ in range(10):
        engine.issue_ticket("1", "normal")
    for _ in range(80):
        counter = rng.choice(["m1", "m2", "m3"])
        active = engine.active_ticket(counter)
        action = rng.choice(["call", "start", "finish", "cancel", "recall"])
        try:
            if action == "call":
                engine.call_next(counter)
            elif active is not None:
                {
                    "start": engine.start_service,
                    "finish": engine.finish_service,
                    "cancel": engine.cancel,
                    "recall": engine.recall,
                }[action](active.id)
        except (CounterBusy, InvalidTransition):
            pass

    for h in history.values():
        if h[-1] == "canceled":
            assert h[:-1] in allowed and h[-2] not in ("finished",)
        else:
            assert h in allowed


def test_called_at_present_only_once_called(engine):
    engine.issue_ticket("1", "normal")
    engine.issue_ticket("1", "normal")
    t = engine.call_next("m1")
    engine.finish_service(t.id)
    for ticket in engine.list_tickets():
        if ticket.status is TicketStatus.ISSUED:
            assert ticket.called_at is None and ticket.finished_at is None
        if ticket.status is TicketStatus.FINISHED:
            assert ticket.called_at is not None and ticket.finished_at is not None


def test_reset_clears_tickets_but_not_counters(engine):
    engine.update_counter_label("m2", "Bruno")
    engine.issue_ticket("1", "normal")
    engine.call_next("m1")
    counters_before = engine.list_counters()

    engine.reset_all()
    assert engine.list_tickets() == []
    assert engine.list_counters() == counters_before
    # Numbering restarts after a reset.
    assert engine.issue_ticket("1", "normal").code == "M-001"


# -------------------- concurrency --------------------


def test_concurrent_issuance_never_reuses_codes():
    engine = QueueEngine()
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        for _ in range(50):
            engine.issue_ticket("1", "normal")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    codes = [t.code for t in engine.list_tickets()]
    assert len(codes) == 400
    assert len(set(codes)) == 400


def test_concurrent_call_next_assigns_each_ticket_once():
    config = EngineConfig()
    engine = QueueEngine(config)
    for _ in range(200):
        engine.issue_ticket("1", "normal")

    served: dict[str, list[str]] = {c.id: [] for c in config.counters}
    barrier = threading.Barrier(len(config.counters))

    def attendant(counter_id):
        barrier.wait()
        while True:
            t = engine.call_next(counter_id)
            if t is None:
                return
            served[counter_id].append(t.id)
            engine.finish_service(t.id)

    threads = [threading.Thread(target=attendant, args=(c.id,)) for c in config.counters]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    all_ids = [tid for ids in served.values() for tid in ids]
    assert len(all_ids) == 200
    assert len(set(all_ids)) == 200
