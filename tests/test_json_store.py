"""
Tests for the JSON-backed booking repository.
"""

import json

import pytest

from slotkeeper.adapters.json_store import JsonBookingRepository
from slotkeeper.domain.booking import BookingStatus
from slotkeeper.domain.event_type import InPerson
from slotkeeper.domain.exceptions import SlotNotAvailable


class TestJsonBookingRepository:
    """Tests for JsonBookingRepository."""

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonBookingRepository(tmp_path / "bookings.json").list_all() == []

    def test_bookings_survive_reload(self, tmp_path, make_booking, now):
        path = tmp_path / "bookings.json"
        booking = make_booking("2024-11-25 10:00", "2024-11-25 10:30", buffer_after=10)
        booking.location = InPerson(address="Main St 1")
        booking.responses = {"topic": "Pricing"}

        repository = JsonBookingRepository(path)
        repository.add(booking)
        booking.record_reminder(24, now=now)
        booking.cancel("Sick", now=now)
        repository.save(booking)

        loaded = JsonBookingRepository(path).get(booking.id)

        assert loaded.slot == booking.slot
        assert loaded.status is BookingStatus.CANCELLED
        assert loaded.cancelled_at == now
        assert loaded.cancellation_reason == "Sick"
        assert loaded.buffer_after_minutes == 10
        assert loaded.location == InPerson(address="Main St 1")
        assert loaded.responses == {"topic": "Pricing"}
        assert loaded.reminders_sent == [24]
        assert loaded.invitee == booking.invitee
        assert loaded.pending_events == ()

    def test_instants_are_stored_in_utc(self, tmp_path, make_booking):
        path = tmp_path / "bookings.json"
        repository = JsonBookingRepository(path)
        repository.add(make_booking("2024-11-25 10:00", "2024-11-25 10:30", tz="Europe/Berlin"))

        stored = json.loads(path.read_text(encoding="utf-8"))

        assert stored[0]["slot"]["start"].startswith("2024-11-25T09:00:00")

    def test_overlap_check_after_reload(self, tmp_path, make_booking):
        path = tmp_path / "bookings.json"
        JsonBookingRepository(path).add(make_booking("2024-11-25 10:00", "2024-11-25 10:30"))

        with pytest.raises(SlotNotAvailable):
            JsonBookingRepository(path).add(make_booking("2024-11-25 10:00", "2024-11-25 10:30"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            JsonBookingRepository(path)

    def test_root_must_be_list(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(ValueError, match="must contain a list"):
            JsonBookingRepository(path)

    def test_invalid_record(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps([{"id": "x"}]), encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid booking record"):
            JsonBookingRepository(path)
