from __future__ import annotations

# Admin dashboard figures computed from a ticket snapshot.

from dataclasses import dataclass
from typing import Any, Iterable

from .models import PriorityClass, Ticket, TicketStatus


@dataclass(frozen=True)
class QueueStats:
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    avg_wait_seconds: float | None
    avg_service_seconds: float | None

    @property
    def pending(self) -> int:
        return self.by_status.get(TicketStatus.ISSUED.value, 0)

    @property
    def finished(self) -> int:
        return self.by_status.get(TicketStatus.FINISHED.value, 0)

    def to_message(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "finished": self.finished,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "avg_wait_seconds": self.avg_wait_seconds,
            "avg_service_seconds": self.avg_service_seconds,
        }

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> "QueueStats":
        return cls(
            total=int(data["total"]),
            by_status={str(k): int(v) for k, v in data["by_status"].items()},
            by_priority={str(k): int(v) for k, v in data["by_priority"].items()},
            avg_wait_seconds=data.get("avg_wait_seconds"),
            avg_service_seconds=data.get("avg_service_seconds"),
        )


def compute_stats(tickets: Iterable[Ticket]) -> QueueStats:
    """Summarize tickets.

    Wait time is `called_at - created_at` for every ticket that was called;
    service time is `finished_at - called_at` for finished tickets. Averages
    are None when there is no sample.
    """
    by_status = {s.value: 0 for s in TicketStatus}
    by_priority = {p.value: 0 for p in PriorityClass}
    waits: list[float] = []
    services: list[float] = []
    total = 0

    for t in tickets:
        total += 1
        by_status[t.status.value] += 1
        by_priority[t.priority.value] += 1
        if t.called_at is not None:
            waits.append(max(0.0, t.called_at - t.created_at))
            if t.finished_at is not None:
                services.append(max(0.0, t.finished_at - t.called_at))

    return QueueStats(
        total=total,
        by_status=by_status,
        by_priority=by_priority,
        avg_wait_seconds=_mean(waits),
        avg_service_seconds=_mean(services),
    )


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)
