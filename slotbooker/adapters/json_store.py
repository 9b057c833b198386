"""
Booking store backed by a single JSON file.

File layout::

    {
        "resources": [
            {"id": "ana", "name": "Ana", "active": true,
             "working_hours": {"start": "09:00", "end": "17:00"}}
        ],
        "services": [
            {"id": "cut", "name": "Haircut", "duration_minutes": 30}
        ],
        "bookings": [
            {"id": "b1", "service_id": "cut", "resource_id": "ana",
             "client_id": "c1", "start": "2024-11-25T10:00:00+01:00",
             "status": "ASSIGNED"}
        ]
    }
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import StoreError
from ..domain.models import Booking, BookingStatus, Resource, Service, WorkingHours

logger = logging.getLogger(__name__)

SECTIONS = ("resources", "services", "bookings")


class JsonBookingStore:
    """
    Reads and writes resources, services and bookings in a JSON file.

    Malformed records are skipped with a warning; an unreadable or
    unparsable file, or a section that is not a list, raises ``StoreError``.
    A missing file or a null section is empty.
    """

    def __init__(self, path: Path, timezone: str = "Europe/Madrid"):
        self.path = Path(path)
        self.timezone = timezone
        self._write_lock = asyncio.Lock()

    async def list_resources(self) -> List[Resource]:
        data = self._load()
        resources: List[Resource] = []

        for record in data["resources"]:
            try:
                resources.append(self._parse_resource(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid resource record %r: %s", record, exc)

        return resources

    async def list_services(self) -> List[Service]:
        data = self._load()
        services: List[Service] = []

        for record in data["services"]:
            try:
                services.append(
                    Service(
                        id=str(record["id"]),
                        name=record.get("name", ""),
                        duration_minutes=self._parse_duration(record.get("duration_minutes")),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid service record %r: %s", record, exc)

        return services

    async def list_bookings(
        self,
        *,
        day: Optional[Date] = None,
        status: Optional[BookingStatus] = None,
        resource_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> List[Booking]:
        data = self._load()
        bookings: List[Booking] = []

        for record in data["bookings"]:
            try:
                booking = self._parse_booking(record)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid booking record %r: %s", record, exc)
                continue

            if day is not None and not booking.falls_on(day, self.timezone):
                continue
            if status is not None and booking.status != status:
                continue
            if resource_id is not None and booking.resource_id != resource_id:
                continue
            if client_id is not None and booking.client_id != client_id:
                continue

            bookings.append(booking)

        return bookings

    async def save_booking(self, booking: Booking) -> None:
        """Insert the booking, or update the record with the same id in place."""
        if booking.id is None:
            raise StoreError("Cannot store a booking without an id")

        async with self._write_lock:
            data = self._load()
            records = data["bookings"]
            record = self._booking_to_record(booking)

            for index, existing in enumerate(records):
                if isinstance(existing, dict) and str(existing.get("id")) == booking.id:
                    # keep fields this store does not model, e.g. payment or notes
                    records[index] = {**existing, **record}
                    break
            else:
                records.append(record)

            self._dump(data)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {section: [] for section in SECTIONS}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read booking data from {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"Booking data in {self.path} must be a JSON object")

        for section in SECTIONS:
            if data.get(section) is None:
                data[section] = []
            elif not isinstance(data[section], list):
                raise StoreError(f"\"{section}\" in {self.path} must be a JSON list")

        return data

    def _dump(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StoreError(f"Could not write booking data to {self.path}: {exc}") from exc

    def _parse_resource(self, record: Dict[str, Any]) -> Resource:
        return Resource(
            id=str(record["id"]),
            name=record.get("name", ""),
            active=bool(record.get("active", True)),
            working_hours=self._parse_working_hours(record.get("working_hours")),
        )

    def _parse_working_hours(self, raw: Any) -> Optional[WorkingHours]:
        """Missing or unreadable hours leave the resource without a schedule."""
        if not isinstance(raw, dict) or not raw.get("start") or not raw.get("end"):
            return None

        try:
            return WorkingHours(
                start_time=_parse_time(raw["start"]),
                end_time=_parse_time(raw["end"]),
            )
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid working hours %r: %s", raw, exc)
            return None

    def _parse_booking(self, record: Dict[str, Any]) -> Booking:
        start = pendulum.parse(record["start"], tz=self.timezone)
        if not isinstance(start, DateTime):
            raise ValueError(f"Could not parse datetime: {record['start']}")

        resource_id = record.get("resource_id")

        return Booking(
            id=str(record["id"]),
            service_id=str(record["service_id"]),
            start=start,
            resource_id=str(resource_id) if resource_id else None,
            status=BookingStatus(record.get("status", BookingStatus.PENDING.value)),
            client_id=record.get("client_id"),
        )

    @staticmethod
    def _parse_duration(raw: Any) -> Optional[int]:
        if raw is None or raw == "":
            return None
        return int(raw)

    @staticmethod
    def _booking_to_record(booking: Booking) -> Dict[str, Any]:
        return {
            "id": booking.id,
            "service_id": booking.service_id,
            "resource_id": booking.resource_id,
            "client_id": booking.client_id,
            "start": booking.start.to_iso8601_string(),
            "status": booking.status.value,
        }


def _parse_time(value: str) -> time:
    """Parse a wall-clock "HH:MM" (or "HH:MM:SS") string."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")
