"""
Shared fixtures and an in-memory booking store for the test suite.
"""

from datetime import time
from typing import List, Optional

import pendulum
import pytest

from slotbooker.domain.exceptions import StoreError
from slotbooker.domain.models import Booking, BookingStatus, Resource, Service, WorkingHours

TZ = "Europe/Madrid"


def at(value: str) -> pendulum.DateTime:
    """Parse a local 'YYYY-MM-DD HH:mm' timestamp."""
    return pendulum.parse(value, tz=TZ)


def make_resource(resource_id: str, start: str = "09:00", end: str = "17:00", active: bool = True) -> Resource:
    start_h, start_m = map(int, start.split(":"))
    end_h, end_m = map(int, end.split(":"))
    return Resource(
        id=resource_id,
        name=resource_id.title(),
        active=active,
        working_hours=WorkingHours(start_time=time(start_h, start_m), end_time=time(end_h, end_m)),
    )


class InMemoryBookingStore:
    """Minimal store matching BookingStoreProtocol."""

    def __init__(
        self,
        resources: List[Resource],
        services: List[Service],
        bookings: List[Booking],
        fail_reads: bool = False,
        fail_writes: bool = False,
    ):
        self.resources = resources
        self.services = services
        self.bookings = bookings
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.saved: List[Booking] = []
        self.booking_queries: List[dict] = []

    def _check_read(self):
        if self.fail_reads:
            raise StoreError("store offline")

    async def list_resources(self) -> List[Resource]:
        self._check_read()
        return list(self.resources)

    async def list_services(self) -> List[Service]:
        self._check_read()
        return list(self.services)

    async def list_bookings(
        self,
        *,
        day=None,
        status: Optional[BookingStatus] = None,
        resource_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> List[Booking]:
        self._check_read()
        self.booking_queries.append({"day": day, "resource_id": resource_id})
        return [
            b for b in self.bookings
            if (day is None or b.falls_on(day, TZ))
            and (status is None or b.status == status)
            and (resource_id is None or b.resource_id == resource_id)
            and (client_id is None or b.client_id == client_id)
        ]

    async def save_booking(self, booking: Booking) -> None:
        if self.fail_writes:
            raise StoreError("write rejected")
        self.saved.append(booking)
        self.bookings = [b for b in self.bookings if b.id != booking.id] + [booking]


@pytest.fixture
def services() -> List[Service]:
    return [
        Service(id="cut", name="Haircut", duration_minutes=30),
        Service(id="full", name="Cut and beard", duration_minutes=60),
        Service(id="broken", name="No duration", duration_minutes=None),
    ]
