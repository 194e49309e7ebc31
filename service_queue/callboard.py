from __future__ import annotations

# Public panel view of the queue: the call being announced now plus the most
# recent previous calls. Pure functions over a ticket snapshot so any observer
# (local or remote) derives the same board.

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from .models import Ticket, TicketStatus

HISTORY_SIZE = 5

_CALLED_STATES = (TicketStatus.CALLING, TicketStatus.IN_SERVICE, TicketStatus.FINISHED)


@dataclass(frozen=True)
class CallBoard:
    current: Ticket | None = None
    history: list[Ticket] = field(default_factory=list)

    def to_message(self) -> dict[str, Any]:
        return {
            "current": None if self.current is None else self.current.to_message(),
            "history": [t.to_message() for t in self.history],
        }

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> "CallBoard":
        cur = data.get("current")
        return cls(
            current=None if cur is None else Ticket.from_message(cur),
            history=[Ticket.from_message(t) for t in data.get("history", [])],
        )


def build_call_board(tickets: Iterable[Ticket], *, history_size: int = HISTORY_SIZE) -> CallBoard:
    called = [t for t in tickets if t.status in _CALLED_STATES and t.called_at is not None]
    called.sort(key=lambda t: t.called_at or 0.0, reverse=True)
    if not called:
        return CallBoard()
    return CallBoard(current=called[0], history=called[1 : 1 + history_size])


class CallAnnouncer:
    """Fire `announce` whenever the board shows a new call.

    A call is new when its `called_at` is later than every call seen so far,
    so a recall of the same ticket announces again while a cancel that
    uncovers an older call does not. The first board seen is taken as the
    baseline and does not announce, unless `announce_initial` is set.
    """

    def __init__(self, announce: Callable[[Ticket], None], *, announce_initial: bool = False) -> None:
        self._announce = announce
        self._announce_initial = announce_initial
        self._seen_any = False
        self._latest: float | None = None

    def observe(self, board: CallBoard) -> bool:
        current = board.current
        first = not self._seen_any
        self._seen_any = True

        if current is None or current.called_at is None:
            return False
        if self._latest is not None and current.called_at <= self._latest:
            return False
        self._latest = current.called_at

        if first and not self._announce_initial:
            return False
        self._announce(current)
        return True
