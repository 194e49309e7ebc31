from __future__ import annotations

# The Queue Engine: authoritative queue state plus every boundary operation.
#
# This is pure logic (no MQTT) so it can be unit tested directly.
# `service.MqttQueueEngineService` exposes it to other processes.
#
# Every successful mutating call writes exactly once inside one store
# transaction, which publishes exactly one change notification. Failed calls
# raise before writing, leaving state and observers untouched.

import logging
import time
import uuid
from typing import Any, Callable

from .callboard import CallBoard, build_call_board
from .clock import MonotonicClock
from .config import EngineConfig
from .dispatch import DispatchScheduler
from .errors import NotFound
from .lifecycle import TicketEvent, TicketStateMachine
from .models import Category, Counter, PriorityClass, Ticket
from .notifier import ChangeNotifier
from .sequencer import next_code
from .stats import QueueStats, compute_stats
from .store import CategoryCatalog, CounterRegistry, TicketStore

logger = logging.getLogger(__name__)


class QueueEngine:
    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.clock = MonotonicClock(clock)
        self.notifier = notifier or ChangeNotifier()

        self.categories = CategoryCatalog(self.config.category_records())
        self.tickets = TicketStore(self.notifier)
        self.counters = CounterRegistry(self.notifier, self.config.counter_records())
        self.scheduler = DispatchScheduler(tickets=self.tickets, counters=self.counters, clock=self.clock)

    # -------------------- issuance --------------------

    def issue_ticket(self, category_id: str, priority: PriorityClass | str) -> Ticket:
        category = self.categories.get(category_id)
        if category is None:
            raise NotFound(f"Unknown category {category_id}")
        priority = PriorityClass(priority)

        # Count and append under one lock so codes are never reused.
        with self.tickets.transaction():
            ticket = Ticket(
                id=str(uuid.uuid4()),
                code=next_code(category, priority, self.tickets.all()),
                category_id=category.id,
                priority=priority,
                status=TicketStateMachine.initial_state(),
                created_at=self.clock(),
            )
            self.tickets.create(ticket)

        logger.info("issued %s (%s, %s)", ticket.code, category.name, priority.value)
        return ticket

    # -------------------- dispatch + lifecycle --------------------

    def call_next(self, counter_id: str) -> Ticket | None:
        try:
            return self.scheduler.call_next(counter_id)
        except Exception as e:
            logger.warning("call_next(%s) rejected: %s", counter_id, e)
            raise

    def recall(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketEvent.RECALL)

    def start_service(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketEvent.START_SERVICE)

    def finish_service(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketEvent.FINISH)

    def cancel(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketEvent.CANCEL)

    def _transition(self, ticket_id: str, event: TicketEvent) -> Ticket:
        try:
            with self.tickets.transaction():
                current = self.tickets.get(ticket_id)
                if current is None:
                    raise NotFound(f"Unknown ticket {ticket_id}")
                updated = TicketStateMachine.apply(current, event, now=self.clock())
                self.tickets.update(updated)
        except Exception as e:
            logger.warning("%s(%s) rejected: %s", event.value, ticket_id, e)
            raise

        logger.info("%s %s -> %s", event.value, updated.code, updated.status.value)
        return updated

    # -------------------- reads --------------------

    def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise NotFound(f"Unknown ticket {ticket_id}")
        return ticket

    def list_tickets(self) -> list[Ticket]:
        return self.tickets.all()

    def list_counters(self) -> list[Counter]:
        return self.counters.all()

    def list_categories(self) -> list[Category]:
        return self.categories.all()

    def waiting_queue(self) -> list[Ticket]:
        return self.scheduler.waiting()

    def active_ticket(self, counter_id: str) -> Ticket | None:
        return self.scheduler.active_ticket(counter_id)

    def stats(self) -> QueueStats:
        return compute_stats(self.tickets.all())

    def call_board(self) -> CallBoard:
        return build_call_board(self.tickets.all())

    def snapshot(self) -> dict[str, Any]:
        """Full observable state, in wire form."""
        return {
            "tickets": [t.to_message() for t in self.tickets.all()],
            "counters": [c.to_message() for c in self.counters.all()],
            "categories": [c.to_message() for c in self.categories.all()],
        }

    # -------------------- administration --------------------

    def update_counter_label(self, counter_id: str, label: str) -> Counter:
        with self.counters.transaction():
            if not self.counters.update_label(counter_id, label):
                logger.warning("update_counter_label(%s) rejected: unknown counter", counter_id)
                raise NotFound(f"Unknown counter {counter_id}")
            counter = self.counters.get(counter_id)
        if counter is None:
            raise NotFound(f"Unknown counter {counter_id}")
        logger.info("counter %s label -> %r", counter_id, label)
        return counter

    def reset_all(self) -> None:
        """Clear all tickets. Counters and categories are kept."""
        self.tickets.reset()
        logger.info("all tickets cleared")
