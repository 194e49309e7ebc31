from __future__ import annotations

# Authoritative shared state.
#
# Two mutable collections: `tickets` (insertion order == issuance order) and
# `counters` (fixed set, only labels change). Each store has a single writer
# lane: a re-entrant lock taken by every operation and by `transaction()`,
# which the engine uses to make read-validate-write sequences atomic.
#
# A transaction publishes at most one change notification, after the lock is
# released, and only if something was actually written.

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator

from .models import Category, Counter, Ticket
from .notifier import ChangeNotifier


class _LockedStore:
    def __init__(self, notifier: ChangeNotifier) -> None:
        self._notifier = notifier
        self._lock = threading.RLock()
        self._depth = 0
        self._dirty = False

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the writer lane for a compound operation."""
        publish = False
        try:
            with self._lock:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                    if self._depth == 0:
                        publish = self._dirty
                        self._dirty = False
        finally:
            if publish:
                self._notifier.publish()

    def _mark_dirty(self) -> None:
        self._dirty = True


class TicketStore(_LockedStore):
    def __init__(self, notifier: ChangeNotifier) -> None:
        super().__init__(notifier)
        self._tickets: list[Ticket] = []
        self._index: dict[str, int] = {}

    def create(self, ticket: Ticket) -> None:
        with self.transaction():
            if ticket.id in self._index:
                raise ValueError(f"duplicate ticket id {ticket.id}")
            self._index[ticket.id] = len(self._tickets)
            self._tickets.append(ticket)
            self._mark_dirty()

    def update(self, ticket: Ticket) -> bool:
        """Replace the record with the same id. Unknown ids are a no-op."""
        with self.transaction():
            pos = self._index.get(ticket.id)
            if pos is None:
                return False
            self._tickets[pos] = ticket
            self._mark_dirty()
            return True

    def get(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            pos = self._index.get(ticket_id)
            return None if pos is None else self._tickets[pos]

    def all(self) -> list[Ticket]:
        with self._lock:
            return list(self._tickets)

    def reset(self) -> None:
        """Drop every ticket. Irreversible."""
        with self.transaction():
            self._tickets = []
            self._index = {}
            self._mark_dirty()


class CounterRegistry(_LockedStore):
    def __init__(self, notifier: ChangeNotifier, counters: Iterable[Counter]) -> None:
        super().__init__(notifier)
        self._counters: list[Counter] = list(counters)

    def all(self) -> list[Counter]:
        with self._lock:
            return list(self._counters)

    def get(self, counter_id: str) -> Counter | None:
        with self._lock:
            for c in self._counters:
                if c.id == counter_id:
                    return c
            return None

    def update_label(self, counter_id: str, label: str) -> bool:
        with self.transaction():
            for i, c in enumerate(self._counters):
                if c.id == counter_id:
                    self._counters[i] = replace(c, attendant_label=label)
                    self._mark_dirty()
                    return True
            return False


class CategoryCatalog:
    """Read-only set of configured categories."""

    def __init__(self, categories: Iterable[Category]) -> None:
        self._categories = tuple(categories)

    def all(self) -> list[Category]:
        return list(self._categories)

    def get(self, category_id: str) -> Category | None:
        for c in self._categories:
            if c.id == category_id:
                return c
        return None
