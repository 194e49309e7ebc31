from __future__ import annotations

# Priority dispatch ("call next").
#
# Ordering among Issued tickets is a two-level total order:
#   1. any non-normal priority class before normal
#   2. earliest created_at first
# Python's sort is stable, so equal created_at keeps insertion order.

import logging
from typing import Callable, Iterable

from .errors import CounterBusy, EmptyQueue, NotFound
from .lifecycle import TicketEvent, TicketStateMachine
from .models import Ticket, TicketStatus
from .store import CounterRegistry, TicketStore

logger = logging.getLogger(__name__)


def dispatch_order(tickets: Iterable[Ticket]) -> list[Ticket]:
    """Issued tickets in the order they will be called."""
    waiting = [t for t in tickets if t.status is TicketStatus.ISSUED]
    waiting.sort(key=lambda t: (not t.priority.is_priority, t.created_at))
    return waiting


def select_next(tickets: Iterable[Ticket]) -> Ticket:
    waiting = dispatch_order(tickets)
    if not waiting:
        raise EmptyQueue("No tickets waiting")
    return waiting[0]


def active_ticket_for(tickets: Iterable[Ticket], counter_id: str) -> Ticket | None:
    for t in tickets:
        if t.counter_id == counter_id and t.status.is_active:
            return t
    return None


class DispatchScheduler:
    """Assign the next eligible ticket to a counter."""

    def __init__(
        self,
        *,
        tickets: TicketStore,
        counters: CounterRegistry,
        clock: Callable[[], float],
    ) -> None:
        self._tickets = tickets
        self._counters = counters
        self._clock = clock

    def call_next(self, counter_id: str) -> Ticket | None:
        """Call the next ticket to `counter_id`.

        Returns None when nothing is waiting. Raises `NotFound` for an unknown
        counter and `CounterBusy` while the counter still holds a Calling or
        InService ticket, so retries never assign a second ticket.
        """
        if self._counters.get(counter_id) is None:
            raise NotFound(f"Unknown counter {counter_id}")

        with self._tickets.transaction():
            current = self._tickets.all()

            busy = active_ticket_for(current, counter_id)
            if busy is not None:
                raise CounterBusy(f"Counter {counter_id} is still serving {busy.code}")

            try:
                chosen = select_next(current)
            except EmptyQueue:
                logger.debug("call_next(%s): queue empty", counter_id)
                return None

            called = TicketStateMachine.apply(
                chosen, TicketEvent.CALL, now=self._clock(), counter_id=counter_id
            )
            self._tickets.update(called)

        logger.info("called %s to counter %s", called.code, counter_id)
        return called

    def waiting(self) -> list[Ticket]:
        return dispatch_order(self._tickets.all())

    def active_ticket(self, counter_id: str) -> Ticket | None:
        if self._counters.get(counter_id) is None:
            raise NotFound(f"Unknown counter {counter_id}")
        return active_ticket_for(self._tickets.all(), counter_id)
