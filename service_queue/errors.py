"""Queue engine errors and the shared error envelope.

Every failure the engine reports has a stable string `code`. The same code is
used in the `ErrorResponse` envelope that travels over MQTT, so clients can
turn a reply back into the matching exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class QueueError(Exception):
    """Base class for recoverable queue engine failures."""

    code = "queue_error"

    def to_response(self) -> "ErrorResponse":
        return ErrorResponse(self.code, str(self) or self.code)


class EmptyQueue(QueueError):
    """No ticket is waiting to be called. Expected, not exceptional."""

    code = "empty_queue"


class CounterBusy(QueueError):
    """The counter already holds a ticket that is being called or served."""

    code = "counter_busy"


class InvalidTransition(QueueError):
    """Lifecycle operation on a ticket in the wrong state."""

    code = "invalid_transition"


class NotFound(QueueError):
    """Unknown ticket, counter or category id."""

    code = "not_found"


_BY_CODE: dict[str, type[QueueError]] = {
    cls.code: cls for cls in (EmptyQueue, CounterBusy, InvalidTransition, NotFound)
}


@dataclass(frozen=True)
class ErrorResponse:
    code: str
    message: str

    def to_message(self, *, corr_id: str | None = None) -> dict[str, Any]:
        msg: dict[str, Any] = {"type": "error", "code": self.code, "message": self.message}
        if corr_id is not None:
            msg["corr_id"] = corr_id
        return msg


def error_from_message(msg: dict[str, Any]) -> QueueError:
    """Rebuild the exception carried by an error envelope.

    Codes the engine does not define (e.g. `bad_request`) come back as a plain
    `QueueError` with the code attached.
    """
    code = str(msg.get("code", QueueError.code))
    message = str(msg.get("message", code))
    cls = _BY_CODE.get(code)
    if cls is not None:
        return cls(message)
    err = QueueError(message)
    err.code = code
    return err
