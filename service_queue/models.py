from __future__ import annotations

# Queue data model.
#
# Records are frozen: the stores hold immutable snapshots and every change is
# a full replacement produced by the lifecycle state machine. Timestamps are
# float epoch seconds (same convention as `time.time()`).

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TicketStatus(str, Enum):
    """Lifecycle states of a ticket."""

    ISSUED = "issued"
    CALLING = "calling"
    IN_SERVICE = "in_service"
    FINISHED = "finished"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (TicketStatus.FINISHED, TicketStatus.CANCELED)

    @property
    def is_active(self) -> bool:
        """True while the ticket occupies a counter."""
        return self in (TicketStatus.CALLING, TicketStatus.IN_SERVICE)


class PriorityClass(str, Enum):
    NORMAL = "normal"
    PREFERENTIAL = "preferential"
    ELDERLY = "elderly"
    DISABILITY_OR_PREGNANCY = "disability_or_pregnancy"

    @property
    def is_priority(self) -> bool:
        return self is not PriorityClass.NORMAL


@dataclass(frozen=True)
class Category:
    """Service sector with its own code-numbering stream."""

    id: str
    name: str
    code_prefix: str

    def to_message(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "code_prefix": self.code_prefix}

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> "Category":
        return cls(id=str(data["id"]), name=str(data["name"]), code_prefix=str(data["code_prefix"]))


@dataclass(frozen=True)
class Counter:
    """Service position. `number` is the stable ordinal shown on displays."""

    id: str
    number: int
    attendant_label: str

    def to_message(self) -> dict[str, Any]:
        return {"id": self.id, "number": self.number, "attendant_label": self.attendant_label}

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> "Counter":
        return cls(
            id=str(data["id"]),
            number=int(data["number"]),
            attendant_label=str(data.get("attendant_label", "")),
        )


@dataclass(frozen=True)
class Ticket:
    id: str
    code: str
    category_id: str
    priority: PriorityClass
    status: TicketStatus
    created_at: float
    called_at: float | None = None
    finished_at: float | None = None
    counter_id: str | None = None

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "category_id": self.category_id,
            "priority": self.priority.value,
            "status": self.status.value,
            "created_at": self.created_at,
            "called_at": self.called_at,
            "finished_at": self.finished_at,
            "counter_id": self.counter_id,
        }

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> "Ticket":
        return cls(
            id=str(data["id"]),
            code=str(data["code"]),
            category_id=str(data["category_id"]),
            priority=PriorityClass(data["priority"]),
            status=TicketStatus(data["status"]),
            created_at=float(data["created_at"]),
            called_at=_opt_float(data.get("called_at")),
            finished_at=_opt_float(data.get("finished_at")),
            counter_id=None if data.get("counter_id") is None else str(data["counter_id"]),
        )


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)
