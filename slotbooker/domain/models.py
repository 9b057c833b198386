"""
Domain models for resources, bookings and time ranges.
"""

from dataclasses import dataclass, replace
from datetime import time
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pendulum import Date, DateTime

DEFAULT_SERVICE_MINUTES = 30


def intervals_overlap(
    a_start: DateTime,
    a_end: DateTime,
    c_start: DateTime,
    c_end: DateTime,
) -> bool:
    """
    Check whether two half-open intervals [a_start, a_end) and
    [c_start, c_end) share any instant.

    An interval ending exactly when the other starts does not overlap.
    """
    return a_start < c_end and a_end > c_start


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def from_duration(cls, start: DateTime, duration_minutes: int) -> "TimeRange":
        """Build the range [start, start + duration_minutes)."""
        return cls(start=start, end=start.add(minutes=duration_minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeRange") -> bool:
        """Check if the other range lies entirely inside this one."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WorkingHours:
    """
    Daily working window of a resource as wall-clock times.
    """
    start_time: time
    end_time: time

    def is_valid(self) -> bool:
        return self.start_time < self.end_time

    def get_working_hours_for_day(self, day: DateTime) -> TimeRange | None:
        """
        Anchor the working window on the calendar day of ``day``.
        Returns None if the window is malformed.
        """
        if not self.is_valid():
            return None

        start = day.set(
            hour=self.start_time.hour,
            minute=self.start_time.minute,
            second=0,
            microsecond=0
        )
        end = day.set(
            hour=self.end_time.hour,
            minute=self.end_time.minute,
            second=0,
            microsecond=0
        )

        return TimeRange(start=start, end=end)


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_active(self) -> bool:
        """Completed and cancelled bookings no longer block time."""
        return self in (BookingStatus.PENDING, BookingStatus.ASSIGNED)


@dataclass(frozen=True)
class Resource:
    """
    A bookable staff member. The core only ever reads these snapshots.
    """
    id: str
    name: str = ""
    active: bool = True
    working_hours: Optional[WorkingHours] = None

    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Service:
    id: str
    name: str = ""
    duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class Booking:
    """
    A customer appointment. ``resource_id`` is None while the booking
    waits for assignment; ``duration_minutes`` is filled in by
    ``ServiceCatalog.resolve``.
    """
    id: Optional[str]
    service_id: str
    start: DateTime
    resource_id: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    client_id: Optional[str] = None
    duration_minutes: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def is_assigned(self) -> bool:
        return self.resource_id is not None

    def time_range(self, default_minutes: int = DEFAULT_SERVICE_MINUTES) -> TimeRange:
        """Interval occupied by this booking, falling back to ``default_minutes``."""
        duration = self.duration_minutes
        if not duration or duration <= 0:
            duration = default_minutes
        return TimeRange.from_duration(self.start, duration)

    def falls_on(self, day: Date, timezone: str | None = None) -> bool:
        """Check whether the booking starts on the given local calendar day."""
        start = self.start.in_timezone(timezone) if timezone else self.start
        return start.date() == day


class ServiceCatalog:
    """
    Resolves booking durations from the service list, once per booking.

    Unknown services and services without a positive duration fall back
    to ``default_minutes``.
    """

    def __init__(
        self,
        services: Iterable[Service],
        default_minutes: int = DEFAULT_SERVICE_MINUTES,
    ) -> None:
        self.default_minutes = default_minutes
        self._durations: Dict[str, int] = {
            service.id: service.duration_minutes
            for service in services
            if service.duration_minutes and service.duration_minutes > 0
        }

    def duration_for(self, service_id: Optional[str]) -> int:
        if service_id is None:
            return self.default_minutes
        return self._durations.get(service_id, self.default_minutes)

    def resolve(self, booking: Booking) -> Booking:
        if booking.duration_minutes and booking.duration_minutes > 0:
            return booking
        return replace(booking, duration_minutes=self.duration_for(booking.service_id))

    def resolve_all(self, bookings: Iterable[Booking]) -> List[Booking]:
        return [self.resolve(booking) for booking in bookings]
