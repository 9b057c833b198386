"""
Availability check for a single resource.

Pure domain logic: the caller passes in the resource snapshot and the
bookings to compare against, nothing is fetched here.
"""

from typing import Iterable, List, Optional

from pendulum import DateTime

from .models import DEFAULT_SERVICE_MINUTES, Booking, Resource, TimeRange


def blocking_bookings(
    resource_id: str,
    bookings: Iterable[Booking],
    day: DateTime,
    exclude_booking_id: Optional[str] = None,
) -> List[Booking]:
    """
    Return the active bookings of ``resource_id`` that start on the
    calendar day of ``day`` (in ``day``'s timezone).
    """
    target_date = day.date()
    return [
        booking for booking in bookings
        if booking.resource_id == resource_id
        and booking.is_active
        and booking.id != exclude_booking_id
        and booking.start.in_timezone(day.timezone).date() == target_date
    ]


def has_conflict(
    candidate: TimeRange,
    bookings: Iterable[Booking],
    default_minutes: int = DEFAULT_SERVICE_MINUTES,
) -> bool:
    """Check if the candidate overlaps any of the given bookings."""
    return any(
        candidate.overlaps(booking.time_range(default_minutes))
        for booking in bookings
    )


def is_resource_available(
    resource: Optional[Resource],
    start: DateTime,
    duration_minutes: int,
    bookings: Iterable[Booking],
    exclude_booking_id: Optional[str] = None,
    default_minutes: int = DEFAULT_SERVICE_MINUTES,
) -> bool:
    """
    Decide whether ``resource`` can take a booking of ``duration_minutes``
    starting at ``start``.

    The candidate must fit completely inside the resource's working hours
    on that day and must not overlap any PENDING or ASSIGNED booking of the
    resource. ``exclude_booking_id`` skips the booking being edited.

    Missing, inactive or misconfigured resources are never available; this
    function does not raise.
    """
    if resource is None or not resource.active:
        return False

    if duration_minutes <= 0 or resource.working_hours is None:
        return False

    working_range = resource.working_hours.get_working_hours_for_day(start)
    if working_range is None:
        return False

    candidate = TimeRange.from_duration(start, duration_minutes)
    if not working_range.contains(candidate):
        return False

    busy = blocking_bookings(resource.id, bookings, start, exclude_booking_id)
    return not has_conflict(candidate, busy, default_minutes)
