import pytest

from service_queue.models import Category, PriorityClass, Ticket, TicketStatus
from service_queue.sequencer import format_code, next_code, sequence_number

M = Category(id="1", name="Enrollment", code_prefix="M")


def _ticket(i: int, category_id: str = "1") -> Ticket:
    return Ticket(
        id=f"t{i}",
        code="?",
        category_id=category_id,
        priority=PriorityClass.NORMAL,
        status=TicketStatus.FINISHED,
        created_at=float(i),
    )


def test_format_code():
    assert format_code("M", PriorityClass.NORMAL, 1) == "M-001"
    assert format_code("M", PriorityClass.ELDERLY, 12) == "MP-012"
    assert format_code("R", PriorityClass.NORMAL, 1000) == "R-1000"


def test_format_code_rejects_zero():
    with pytest.raises(ValueError):
        format_code("M", PriorityClass.NORMAL, 0)


def test_next_code_counts_only_own_category_in_any_status():
    tickets = [_ticket(1), _ticket(2, category_id="2"), _ticket(3)]
    assert next_code(M, PriorityClass.NORMAL, tickets) == "M-003"
    assert next_code(M, PriorityClass.PREFERENTIAL, tickets) == "MP-003"
    assert next_code(M, PriorityClass.NORMAL, []) == "M-001"


def test_sequence_number():
    assert sequence_number("MP-012") == 12
    assert sequence_number("R-1000") == 1000
