"""
Multiplier resolution for special events.

Only the best currently-running promotion counts: multipliers never stack.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol


class MultiplierEvent(Protocol):
    """Anything shaped like a SpecialEvent."""

    multiplier: int
    start_at: datetime
    end_at: datetime
    is_active: bool


def is_running(event: MultiplierEvent, now: datetime) -> bool:
    """Active and ``start_at <= now <= end_at``."""
    return bool(event.is_active) and event.start_at <= now <= event.end_at


def resolve(now: datetime, events: Iterable[MultiplierEvent]) -> int:
    """
    Effective multiplier at ``now``.

    Args:
        now: Reference time (aware datetime)
        events: Candidate events; inactive or out-of-window ones are ignored

    Returns:
        Highest multiplier among running events, or 1 if none run
    """
    multipliers = [event.multiplier for event in events if is_running(event, now)]
    if not multipliers:
        return 1
    return max(multipliers)


def apply(raw_points: int, multiplier: int) -> int:
    return raw_points * multiplier
