from __future__ import annotations

# Display code generation.
#
#   code = <prefix>[P]-<NNN>
#
# NNN counts every ticket ever issued in the category (any status, any
# priority) since the last reset, so numbers within a category never repeat.
# The caller must hold the ticket store transaction while counting and
# appending, otherwise two concurrent issuances can see the same count.

from typing import Iterable

from .models import Category, PriorityClass, Ticket

PRIORITY_MARKER = "P"
SEQUENCE_DIGITS = 3


def format_code(prefix: str, priority: PriorityClass, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    marker = PRIORITY_MARKER if priority.is_priority else ""
    return f"{prefix}{marker}-{sequence:0{SEQUENCE_DIGITS}d}"


def next_code(category: Category, priority: PriorityClass, tickets: Iterable[Ticket]) -> str:
    """Return the code for the next ticket of `category`.

    Args:
        category: category the ticket is issued for.
        priority: priority class; anything but normal gets the marker.
        tickets: the full current ticket collection.
    """
    issued = sum(1 for t in tickets if t.category_id == category.id)
    return format_code(category.code_prefix, priority, issued + 1)


def sequence_number(code: str) -> int:
    """Numeric suffix of a display code (`"MP-012"` -> 12)."""
    _, _, digits = code.rpartition("-")
    return int(digits)
