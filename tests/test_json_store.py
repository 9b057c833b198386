"""
Tests for the JSON file booking store.
"""

import asyncio
import json
from pathlib import Path

import pendulum
import pytest

from slotbooker.adapters.clock import FixedClock
from slotbooker.adapters.json_store import JsonBookingStore
from slotbooker.domain.exceptions import StoreError
from slotbooker.domain.models import Booking, BookingStatus
from slotbooker.domain.slot_calculator import SlotCalculator
from slotbooker.services.booking_service import BookingService

from conftest import TZ, at

DATA = {
    "resources": [
        {"id": "ana", "name": "Ana", "active": True, "working_hours": {"start": "09:00", "end": "17:00"}},
        {"id": "luis", "name": "Luis", "active": False, "working_hours": {"start": "10:00", "end": "19:30"}},
        {"id": "nohours", "name": "No hours"},
        {"id": "badhours", "working_hours": {"start": "nine", "end": "17:00"}},
        {"name": "missing id"},
    ],
    "services": [
        {"id": "cut", "name": "Haircut", "duration_minutes": 30},
        {"id": "free", "name": "Consultation"},
        {"id": "bad", "duration_minutes": "long"},
    ],
    "bookings": [
        {"id": "b1", "service_id": "cut", "resource_id": "ana", "client_id": "c1",
         "start": "2024-11-25T10:00:00+01:00", "status": "ASSIGNED"},
        {"id": "b2", "service_id": "cut", "resource_id": None, "client_id": "c2",
         "start": "2024-11-25T12:00:00+01:00", "status": "PENDING"},
        {"id": "b3", "service_id": "cut", "resource_id": "ana", "client_id": "c1",
         "start": "2024-11-26T10:00:00+01:00", "status": "CANCELLED"},
        {"id": "b4", "service_id": "cut", "start": "not a date"},
        {"id": "b5", "service_id": "cut", "start": "2024-11-25T13:00:00+01:00", "status": "LOST"},
    ],
}


@pytest.fixture
def store(tmp_path):
    path = tmp_path / "bookings.json"
    path.write_text(json.dumps(DATA), encoding="utf-8")
    return JsonBookingStore(path=path, timezone=TZ)


class TestReading:

    def test_resources(self, store):
        resources = asyncio.run(store.list_resources())

        assert [r.id for r in resources] == ["ana", "luis", "nohours", "badhours"]
        assert resources[0].working_hours.start_time.hour == 9
        assert resources[1].active is False
        assert resources[1].working_hours.end_time.minute == 30
        assert resources[2].working_hours is None
        assert resources[3].working_hours is None

    def test_services(self, store):
        services = asyncio.run(store.list_services())

        assert [(s.id, s.duration_minutes) for s in services] == [("cut", 30), ("free", None)]

    def test_invalid_bookings_are_skipped(self, store):
        bookings = asyncio.run(store.list_bookings())

        assert [b.id for b in bookings] == ["b1", "b2", "b3"]
        assert bookings[1].resource_id is None
        assert bookings[2].status == BookingStatus.CANCELLED

    def test_filters(self, store):
        monday = pendulum.date(2024, 11, 25)

        assert [b.id for b in asyncio.run(store.list_bookings(day=monday))] == ["b1", "b2"]
        assert [b.id for b in asyncio.run(store.list_bookings(status=BookingStatus.PENDING))] == ["b2"]
        assert [b.id for b in asyncio.run(store.list_bookings(resource_id="ana"))] == ["b1", "b3"]
        assert [b.id for b in asyncio.run(store.list_bookings(client_id="c1", day=monday))] == ["b1"]

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonBookingStore(path=tmp_path / "missing.json", timezone=TZ)

        assert asyncio.run(store.list_resources()) == []
        assert asyncio.run(store.list_bookings()) == []

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonBookingStore(path=path, timezone=TZ)

        with pytest.raises(StoreError):
            asyncio.run(store.list_bookings())

    def test_non_object_root_raises_store_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("[]", encoding="utf-8")
        store = JsonBookingStore(path=path, timezone=TZ)

        with pytest.raises(StoreError):
            asyncio.run(store.list_resources())


class TestWriting:

    def test_update_existing_booking(self, store):
        b2 = next(b for b in asyncio.run(store.list_bookings()) if b.id == "b2")
        updated = Booking(
            id=b2.id,
            service_id=b2.service_id,
            start=b2.start,
            resource_id="ana",
            status=BookingStatus.ASSIGNED,
            client_id=b2.client_id,
        )

        asyncio.run(store.save_booking(updated))

        reloaded = {b.id: b for b in asyncio.run(store.list_bookings())}
        assert reloaded["b2"].resource_id == "ana"
        assert reloaded["b2"].status == BookingStatus.ASSIGNED
        assert reloaded["b2"].start == at("2024-11-25 12:00")
        assert len(json.loads(store.path.read_text(encoding="utf-8"))["bookings"]) == len(DATA["bookings"])

    def test_insert_new_booking(self, tmp_path):
        store = JsonBookingStore(path=tmp_path / "new.json", timezone=TZ)
        booking = Booking(id="n1", service_id="cut", start=at("2024-11-25 09:30"))

        asyncio.run(store.save_booking(booking))

        reloaded = asyncio.run(store.list_bookings())
        assert len(reloaded) == 1
        assert reloaded[0].id == "n1"
        assert reloaded[0].start == at("2024-11-25 09:30")
        assert reloaded[0].status == BookingStatus.PENDING

    def test_booking_without_id_is_rejected(self, store):
        with pytest.raises(StoreError):
            asyncio.run(store.save_booking(Booking(id=None, service_id="cut", start=at("2024-11-25 09:30"))))

    def test_update_keeps_unmodelled_fields(self, tmp_path):
        """Fields such as payment status survive an assignment."""
        path = tmp_path / "bookings.json"
        path.write_text(
            json.dumps({
                "resources": [{"id": "ana", "working_hours": {"start": "09:00", "end": "17:00"}}],
                "services": [{"id": "cut", "duration_minutes": 30}],
                "bookings": [
                    {"id": "b1", "service_id": "cut", "client_id": "c1",
                     "start": "2030-01-07T10:00:00+01:00", "status": "PENDING",
                     "payment_status": "PAID", "notes": "VIP"},
                ],
            }),
            encoding="utf-8",
        )
        service = BookingService(
            store=JsonBookingStore(path=path, timezone=TZ),
            clock=FixedClock(at("2030-01-01 09:00")),
            slot_calculator=SlotCalculator(timezone=TZ),
        )

        chosen = asyncio.run(service.assign_resource("b1"))

        record = json.loads(path.read_text(encoding="utf-8"))["bookings"][0]
        assert chosen.id == "ana"
        assert record["resource_id"] == "ana"
        assert record["status"] == "ASSIGNED"
        assert record["payment_status"] == "PAID"
        assert record["notes"] == "VIP"

    def test_failed_write_leaves_no_temp_file(self, store, monkeypatch):
        """A write that cannot be committed raises and cleans up after itself."""
        def refuse(self, target):
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", refuse)

        with pytest.raises(StoreError):
            asyncio.run(store.save_booking(Booking(id="n1", service_id="cut", start=at("2024-11-25 09:30"))))

        monkeypatch.undo()
        assert not store.path.with_suffix(".json.tmp").exists()
        assert "n1" not in store.path.read_text(encoding="utf-8")


class TestSections:

    def test_null_sections_are_empty(self, tmp_path):
        """A section set to null reads as an empty list."""
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps({"resources": None, "services": [], "bookings": None}), encoding="utf-8")
        store = JsonBookingStore(path=path, timezone=TZ)

        assert asyncio.run(store.list_resources()) == []
        assert asyncio.run(store.list_bookings()) == []

    def test_null_bookings_section_accepts_writes(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps({"bookings": None}), encoding="utf-8")
        store = JsonBookingStore(path=path, timezone=TZ)

        asyncio.run(store.save_booking(Booking(id="n1", service_id="cut", start=at("2024-11-25 09:30"))))

        assert [b.id for b in asyncio.run(store.list_bookings())] == ["n1"]

    def test_non_list_section_raises_store_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps({"resources": {"id": "ana"}}), encoding="utf-8")
        store = JsonBookingStore(path=path, timezone=TZ)

        with pytest.raises(StoreError, match="resources"):
            asyncio.run(store.list_resources())

    def test_null_section_gives_no_slots(self, tmp_path):
        """The service answers with no slots instead of crashing."""
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps({"resources": None, "services": [], "bookings": []}), encoding="utf-8")
        service = BookingService(
            store=JsonBookingStore(path=path, timezone=TZ),
            clock=FixedClock(at("2030-01-01 09:00")),
            slot_calculator=SlotCalculator(timezone=TZ),
        )

        assert asyncio.run(service.generate_slots(pendulum.date(2030, 1, 7), 30)) == []

    def test_malformed_section_gives_no_slots(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps({"resources": "ana", "services": [], "bookings": []}), encoding="utf-8")
        service = BookingService(
            store=JsonBookingStore(path=path, timezone=TZ),
            clock=FixedClock(at("2030-01-01 09:00")),
            slot_calculator=SlotCalculator(timezone=TZ),
        )

        assert asyncio.run(service.generate_slots(pendulum.date(2030, 1, 7), 30)) == []
