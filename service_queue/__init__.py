"""Service queue management system (MQTT-based).

Customers draw tickets at a kiosk, attendants at service counters call the
next eligible ticket (priority classes first, then first come first served),
and public panels announce each call.

The `QueueEngine` holds the authoritative state in one process; MQTT pub/sub
(via a broker like Mosquitto) carries requests from kiosks, attendants and
admins, plus change events and periodic snapshots for observers.

See `python -m service_queue.app -h` for how to run.
"""

from .config import EngineConfig, load_config
from .engine import QueueEngine
from .errors import CounterBusy, EmptyQueue, InvalidTransition, NotFound, QueueError
from .models import Category, Counter, PriorityClass, Ticket, TicketStatus

__all__ = [
    "Category",
    "Counter",
    "CounterBusy",
    "EmptyQueue",
    "EngineConfig",
    "InvalidTransition",
    "NotFound",
    "PriorityClass",
    "QueueEngine",
    "QueueError",
    "Ticket",
    "TicketStatus",
    "load_config",
]
