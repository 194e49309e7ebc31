from __future__ import annotations

"""Arrival models for simulated kiosk traffic.

Customers reach the kiosk as a Poisson process with rate λ (customers/second),
so inter-arrival times are i.i.d. Exponential(λ). Each arrival draws a
priority class: normal with probability `1 - priority_share`, otherwise one of
the priority classes picked uniformly.
"""

import random

from .models import PriorityClass

_PRIORITY_CLASSES = [p for p in PriorityClass if p.is_priority]


def sample_exponential_interarrival(*, rate_per_sec: float, rng: random.Random | None = None) -> float:
    """Sample the next inter-arrival time (seconds) for a Poisson process.

    Args:
        rate_per_sec: λ, the arrival rate in customers/second. Must be > 0.
        rng: optional RNG (useful for deterministic tests).
    """
    if rate_per_sec <= 0:
        raise ValueError("rate_per_sec must be > 0")

    r = rng or random
    return float(r.expovariate(rate_per_sec))


def sample_priority(*, priority_share: float, rng: random.Random | None = None) -> PriorityClass:
    if not 0.0 <= priority_share <= 1.0:
        raise ValueError("priority_share must be within [0, 1]")

    r = rng or random
    if r.random() >= priority_share:
        return PriorityClass.NORMAL
    return r.choice(_PRIORITY_CLASSES)
