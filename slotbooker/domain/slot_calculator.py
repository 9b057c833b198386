"""
Core business logic for calculating bookable start times.

This is the heart of the application - pure domain logic without any
external dependencies (no store access, no clock, no I/O).
"""

import logging
import math
from typing import List, Optional, Sequence, Set

import pendulum
from pendulum import Date, DateTime

from .availability import blocking_bookings, has_conflict
from .models import DEFAULT_SERVICE_MINUTES, Booking, Resource, TimeRange

logger = logging.getLogger(__name__)

SLOT_FORMAT = "HH:mm"


class SlotCalculator:
    """
    Calculates the start times at which at least one resource can take a
    booking of the requested duration.

    Algorithm:
    1. Keep only active resources with valid working hours
    2. Pick the sweep granularity: min(slot granularity, duration)
    3. For each resource, sweep candidate starts from the opening time
       (or from now + lead time when the day is today)
    4. Keep every candidate that fits before closing and overlaps none of
       the resource's active bookings
    5. Union the results across resources and sort them
    """

    def __init__(
        self,
        timezone: str = "Europe/Madrid",
        lead_time_minutes: int = 30,
        slot_granularity_minutes: int = 15,
        default_service_minutes: int = DEFAULT_SERVICE_MINUTES,
    ):
        self.timezone = timezone
        self.lead_time_minutes = lead_time_minutes
        self.slot_granularity_minutes = slot_granularity_minutes
        self.default_service_minutes = default_service_minutes

    def find_available_slots(
        self,
        day: Date,
        duration_minutes: int,
        resources: Sequence[Resource],
        bookings: Sequence[Booking],
        now: Optional[DateTime] = None,
    ) -> List[str]:
        """
        Find all bookable start times on ``day``.

        Args:
            day: Calendar day to search
            duration_minutes: Duration of the requested service
            resources: Resources to consider; inactive ones are ignored
            bookings: Bookings of that day, any resource, any status
            now: Current instant, used for the lead time on today

        Returns:
            Sorted, de-duplicated list of "HH:mm" start times
        """
        if duration_minutes <= 0:
            return []

        candidates = [resource for resource in resources if resource.active]
        if not candidates:
            return []

        granularity = self.granularity_for(duration_minutes)
        day_start = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
        earliest = self._earliest_start(day_start, granularity, now)

        slots: Set[str] = set()

        for resource in candidates:
            slots.update(
                self._sweep_resource(
                    resource=resource,
                    day_start=day_start,
                    earliest=earliest,
                    duration_minutes=duration_minutes,
                    granularity=granularity,
                    bookings=bookings,
                )
            )

        return sorted(slots)

    def granularity_for(self, duration_minutes: int) -> int:
        """Short services get a grid as fine as their own duration."""
        return min(self.slot_granularity_minutes, duration_minutes)

    def _earliest_start(
        self,
        day_start: DateTime,
        granularity: int,
        now: Optional[DateTime],
    ) -> Optional[DateTime]:
        """
        Earliest bookable instant when ``day_start`` is today.

        ``now + lead time`` is rounded up to the next multiple of
        ``granularity`` minutes counted from midnight. Returns None for any
        other day.
        """
        if now is None:
            return None

        local_now = now.in_timezone(self.timezone)
        if local_now.date() != day_start.date():
            return None

        buffered = local_now.add(minutes=self.lead_time_minutes)
        seconds = (buffered - day_start).total_seconds()
        step = granularity * 60
        rounded = math.ceil(seconds / step) * step

        return day_start.add(seconds=int(rounded))

    def _sweep_resource(
        self,
        resource: Resource,
        day_start: DateTime,
        earliest: Optional[DateTime],
        duration_minutes: int,
        granularity: int,
        bookings: Sequence[Booking],
    ) -> Set[str]:
        """Walk the resource's working day and collect free start times."""
        if resource.working_hours is None:
            logger.debug("Skipping resource %s without working hours", resource.id)
            return set()

        working_range = resource.working_hours.get_working_hours_for_day(day_start)
        if working_range is None:
            logger.debug("Skipping resource %s with invalid working hours", resource.id)
            return set()

        current = working_range.start
        if earliest is not None and current < earliest:
            current = earliest

        busy = blocking_bookings(resource.id, bookings, day_start)
        found: Set[str] = set()

        while current.add(minutes=duration_minutes) <= working_range.end:
            candidate = TimeRange.from_duration(current, duration_minutes)

            if not has_conflict(candidate, busy, self.default_service_minutes):
                found.add(current.format(SLOT_FORMAT))

            current = current.add(minutes=granularity)

        return found
