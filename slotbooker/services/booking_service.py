"""
Application services for availability queries and resource assignment.

The service fetches snapshots through a booking store adapter and hands
them to the pure domain functions. Store and clock are injected via simple
protocols so tests can replace them with in-memory stubs.

Availability is checked against a snapshot and written separately, so two
concurrent saves for the same resource and time can both pass the check.
Closing that gap requires an exclusion constraint in the store itself.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence

from pendulum import Date, DateTime

from ..domain.assignment import pick_least_loaded
from ..domain.availability import is_resource_available
from ..domain.exceptions import (
    InvalidBookingError,
    ResourceUnavailableError,
    StoreError,
)
from ..domain.models import (
    Booking,
    BookingStatus,
    Resource,
    Service,
    ServiceCatalog,
)
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class BookingStoreProtocol(Protocol):
    """Protocol describing the persistence operations needed by the service."""

    async def list_resources(self) -> List[Resource]:
        """Return all resources, active or not, in listing order."""

    async def list_services(self) -> List[Service]:
        """Return all services."""

    async def list_bookings(
        self,
        *,
        day: Optional[Date] = None,
        status: Optional[BookingStatus] = None,
        resource_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> List[Booking]:
        """Return bookings matching every given filter."""

    async def save_booking(self, booking: Booking) -> None:
        """Create or update a booking."""


class ClockProtocol(Protocol):
    def now(self) -> DateTime:
        """Return the current instant."""


class BookingService:
    """
    Orchestrates store reads, domain calculations and store writes.

    Read paths never raise on store failures: they log the error and answer
    with "not available", no slots or no assignment. Write failures
    propagate so callers never assume a booking was stored when it was not.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        clock: ClockProtocol,
        slot_calculator: SlotCalculator,
    ) -> None:
        self._store = store
        self._clock = clock
        self._slot_calculator = slot_calculator

    @property
    def timezone(self) -> str:
        return self._slot_calculator.timezone

    @property
    def default_service_minutes(self) -> int:
        return self._slot_calculator.default_service_minutes

    async def generate_slots(
        self,
        day: Date,
        duration_minutes: int,
        resource_id: Optional[str] = None,
    ) -> List[str]:
        """
        Return the start times on ``day`` that some resource can take.

        With ``resource_id`` only that resource is considered, provided it
        is active.
        """
        try:
            resources, services, bookings = await asyncio.gather(
                self._store.list_resources(),
                self._store.list_services(),
                self._store.list_bookings(day=day),
            )
        except StoreError as exc:
            logger.warning("Could not load booking data for %s: %s", day, exc)
            return []

        candidates = self._select_resources(resources, resource_id)
        if not candidates:
            return []

        catalog = self._catalog(services)

        return self._slot_calculator.find_available_slots(
            day=day,
            duration_minutes=duration_minutes,
            resources=candidates,
            bookings=catalog.resolve_all(bookings),
            now=self._clock.now(),
        )

    async def is_available(
        self,
        resource_id: str,
        start: DateTime,
        duration_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """Check whether a resource is free for [start, start + duration)."""
        try:
            return await self._check_availability(
                resource_id, start, duration_minutes, exclude_booking_id
            )
        except StoreError as exc:
            logger.warning("Could not check availability of %s: %s", resource_id, exc)
            return False

    async def assign_resource(self, booking_id: str) -> Optional[Resource]:
        """
        Assign the least loaded available resource to a pending booking.

        Returns the assigned resource, or None when the booking does not
        exist, already has a resource, or nobody is free at that time.

        Raises:
            StoreError: If persisting the assignment fails
        """
        try:
            bookings = await self._store.list_bookings()
        except StoreError as exc:
            logger.warning("Could not load bookings to assign %s: %s", booking_id, exc)
            return None

        booking = next((b for b in bookings if b.id == booking_id), None)
        if booking is None or booking.is_assigned or not booking.is_active:
            return None

        try:
            resources, services = await asyncio.gather(
                self._store.list_resources(),
                self._store.list_services(),
            )
        except StoreError as exc:
            logger.warning("Could not load resources to assign %s: %s", booking_id, exc)
            return None

        catalog = self._catalog(services)
        duration = catalog.duration_for(booking.service_id)
        local_start = booking.start.in_timezone(self.timezone)
        day_bookings = catalog.resolve_all(
            b for b in bookings if b.falls_on(local_start.date(), self.timezone)
        )

        candidates = [
            resource for resource in resources
            if is_resource_available(
                resource,
                local_start,
                duration,
                day_bookings,
                exclude_booking_id=booking.id,
                default_minutes=catalog.default_minutes,
            )
        ]

        chosen = pick_least_loaded(candidates, day_bookings, local_start)
        if chosen is None:
            logger.info("No resource available for booking %s", booking_id)
            return None

        await self._store.save_booking(
            replace(booking, resource_id=chosen.id, status=BookingStatus.ASSIGNED)
        )
        logger.info("Assigned booking %s to resource %s", booking_id, chosen.id)

        return chosen

    async def save_booking(self, booking: Booking) -> Booking:
        """
        Validate, re-check and store a booking.

        A booking with a resource is re-checked against that resource's
        schedule, excluding itself, and is marked ASSIGNED when new or
        still PENDING. A new booking without a resource is PENDING.

        Raises:
            InvalidBookingError: If service, start time or client is missing
            ResourceUnavailableError: If the resource is not free
            StoreError: If the store cannot be read or written
        """
        if not booking.service_id or booking.start is None or not booking.client_id:
            raise InvalidBookingError("Service, start time and client are required")

        is_new = booking.id is None

        if booking.resource_id:
            services = await self._store.list_services()
            duration = self._catalog(services).duration_for(booking.service_id)

            available = await self._check_availability(
                booking.resource_id, booking.start, duration, booking.id
            )
            if not available:
                raise ResourceUnavailableError(
                    f"Resource {booking.resource_id} is not available at "
                    f"{booking.start.in_timezone(self.timezone).format('YYYY-MM-DD HH:mm')}"
                )

            if is_new or booking.status == BookingStatus.PENDING:
                booking = replace(booking, status=BookingStatus.ASSIGNED)
        elif is_new:
            booking = replace(booking, status=BookingStatus.PENDING)

        if is_new:
            booking = replace(booking, id=uuid.uuid4().hex)

        await self._store.save_booking(booking)
        return booking

    async def _check_availability(
        self,
        resource_id: str,
        start: DateTime,
        duration_minutes: int,
        exclude_booking_id: Optional[str],
    ) -> bool:
        local_start = start.in_timezone(self.timezone)

        resources, services, bookings = await asyncio.gather(
            self._store.list_resources(),
            self._store.list_services(),
            self._store.list_bookings(day=local_start.date(), resource_id=resource_id),
        )

        resource = next((r for r in resources if r.id == resource_id), None)
        catalog = self._catalog(services)

        return is_resource_available(
            resource,
            local_start,
            duration_minutes,
            catalog.resolve_all(bookings),
            exclude_booking_id=exclude_booking_id,
            default_minutes=catalog.default_minutes,
        )

    def _catalog(self, services: Sequence[Service]) -> ServiceCatalog:
        return ServiceCatalog(services, default_minutes=self.default_service_minutes)

    @staticmethod
    def _select_resources(
        resources: Sequence[Resource],
        resource_id: Optional[str],
    ) -> List[Resource]:
        """Active resources, narrowed to ``resource_id`` when given."""
        return [
            resource for resource in resources
            if resource.active and (resource_id is None or resource.id == resource_id)
        ]
