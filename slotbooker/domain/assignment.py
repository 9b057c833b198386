"""
Load balancing for automatic resource assignment.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from pendulum import DateTime

from .availability import blocking_bookings
from .models import Booking, Resource


def count_daily_load(
    resources: Sequence[Resource],
    bookings: Iterable[Booking],
    day: DateTime,
) -> Dict[str, int]:
    """Count active bookings per resource on the calendar day of ``day``."""
    booking_list: List[Booking] = list(bookings)
    return {
        resource.id: len(blocking_bookings(resource.id, booking_list, day))
        for resource in resources
    }


def pick_least_loaded(
    candidates: Sequence[Resource],
    bookings: Iterable[Booking],
    day: DateTime,
) -> Optional[Resource]:
    """
    Pick the candidate with the fewest active bookings that day.

    Ties go to the candidate listed first, so the result is deterministic
    for a given resource order.
    """
    if not candidates:
        return None

    load = count_daily_load(candidates, bookings, day)

    chosen: Optional[Resource] = None
    lowest = None
    for resource in candidates:
        if lowest is None or load[resource.id] < lowest:
            lowest = load[resource.id]
            chosen = resource

    return chosen
