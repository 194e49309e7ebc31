from __future__ import annotations

from dataclasses import replace
from enum import Enum

from .errors import InvalidTransition
from .models import Ticket, TicketStatus


class TicketEvent(str, Enum):
    """Events that move a ticket through its lifecycle."""

    CALL = "call"
    RECALL = "recall"
    START_SERVICE = "start_service"
    FINISH = "finish"
    CANCEL = "cancel"


class TicketStateMachine:
    """Validate and apply ticket lifecycle transitions.

    Issued -> Calling -> InService -> Finished, with Calling -> Calling on a
    recall and any non-terminal state -> Canceled. Issuance itself is not an
    event here: new tickets start in `initial_state()`.
    """

    _TRANSITIONS: dict[tuple[TicketStatus, TicketEvent], TicketStatus] = {
        (TicketStatus.ISSUED, TicketEvent.CALL): TicketStatus.CALLING,
        (TicketStatus.CALLING, TicketEvent.RECALL): TicketStatus.CALLING,
        (TicketStatus.CALLING, TicketEvent.START_SERVICE): TicketStatus.IN_SERVICE,
        (TicketStatus.CALLING, TicketEvent.FINISH): TicketStatus.FINISHED,
        (TicketStatus.IN_SERVICE, TicketEvent.FINISH): TicketStatus.FINISHED,
        (TicketStatus.ISSUED, TicketEvent.CANCEL): TicketStatus.CANCELED,
        (TicketStatus.CALLING, TicketEvent.CANCEL): TicketStatus.CANCELED,
        (TicketStatus.IN_SERVICE, TicketEvent.CANCEL): TicketStatus.CANCELED,
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.ISSUED

    @classmethod
    def target(cls, current: TicketStatus, event: TicketEvent) -> TicketStatus | None:
        return cls._TRANSITIONS.get((current, event))

    @classmethod
    def can_apply(cls, current: TicketStatus, event: TicketEvent) -> bool:
        return cls.target(current, event) is not None

    @classmethod
    def apply(
        cls,
        ticket: Ticket,
        event: TicketEvent,
        *,
        now: float,
        counter_id: str | None = None,
    ) -> Ticket:
        """Return the ticket as it is after `event`, stamping timestamps."""
        new_status = cls.target(ticket.status, event)
        if new_status is None:
            raise InvalidTransition(
                f"Cannot {event.value} ticket {ticket.code} in status {ticket.status.value}"
            )

        if event is TicketEvent.CALL:
            if counter_id is None:
                raise ValueError("counter_id required to call a ticket")
            return replace(ticket, status=new_status, called_at=now, counter_id=counter_id)
        if event is TicketEvent.RECALL:
            return replace(ticket, called_at=now)
        if event is TicketEvent.FINISH:
            return replace(ticket, status=new_status, finished_at=now)
        return replace(ticket, status=new_status)
