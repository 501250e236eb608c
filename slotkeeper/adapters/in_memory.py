"""
In-memory implementations of the catalog and booking repository.
"""

import logging
import threading
from typing import Dict, Iterable, List

from pendulum import DateTime

from ..domain.booking import Booking
from ..domain.event_type import EventType
from ..domain.exceptions import BookingNotFound, EventTypeNotFound, ScheduleNotFound, SlotNotAvailable
from ..domain.models import AvailabilitySchedule

logger = logging.getLogger(__name__)


class InMemoryCatalog:
    """Event types and schedules held in dictionaries."""

    def __init__(
        self,
        event_types: Iterable[EventType] = (),
        schedules: Iterable[AvailabilitySchedule] = ()
    ):
        self._event_types: Dict[str, EventType] = {e.id: e for e in event_types}
        self._schedules: Dict[str, AvailabilitySchedule] = {s.id: s for s in schedules}

    def get_event_type(self, event_type_id: str) -> EventType:
        try:
            return self._event_types[event_type_id]
        except KeyError:
            raise EventTypeNotFound(f"Unknown event type: {event_type_id}") from None

    def get_schedule(self, schedule_id: str) -> AvailabilitySchedule:
        try:
            return self._schedules[schedule_id]
        except KeyError:
            raise ScheduleNotFound(f"Unknown availability schedule: {schedule_id}") from None

    def list_event_types(self) -> List[EventType]:
        return list(self._event_types.values())

    def add_event_type(self, event_type: EventType) -> None:
        self._event_types[event_type.id] = event_type

    def add_schedule(self, schedule: AvailabilitySchedule) -> None:
        self._schedules[schedule.id] = schedule


class InMemoryBookingRepository:
    """
    Bookings kept in a dictionary keyed by id.

    ``add`` is a compare-and-commit: it refuses a booking whose slot overlaps
    a non-cancelled booking of the same host, so a caller that skipped the
    per-host lock still cannot double-book.
    """

    def __init__(self, bookings: Iterable[Booking] = ()):
        self._bookings: Dict[str, Booking] = {}
        self._lock = threading.Lock()
        for booking in bookings:
            self._bookings[booking.id] = booking

    def get(self, booking_id: str) -> Booking:
        try:
            return self._bookings[booking_id]
        except KeyError:
            raise BookingNotFound(f"Unknown booking: {booking_id}") from None

    def add(self, booking: Booking) -> None:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            for other in self._bookings.values():
                if other.is_active() and other.host_id == booking.host_id and other.slot.overlaps(booking.slot):
                    raise SlotNotAvailable(
                        f"Host {booking.host_id} already has booking {other.id} at {other.slot}"
                    )
            self._bookings[booking.id] = booking
            self._on_change()

    def save(self, booking: Booking) -> None:
        with self._lock:
            if booking.id not in self._bookings:
                raise BookingNotFound(f"Unknown booking: {booking.id}")
            self._bookings[booking.id] = booking
            self._on_change()

    def active_for_host(self, host_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        """Non-cancelled bookings of the host overlapping [start, end), by start time."""
        matches = [
            booking for booking in self._bookings.values()
            if booking.host_id == host_id
            and booking.is_active()
            and booking.slot.start < end
            and start < booking.slot.end
        ]
        return sorted(matches, key=lambda b: b.slot.start)

    def list_all(self) -> List[Booking]:
        return sorted(self._bookings.values(), key=lambda b: b.slot.start)

    def _on_change(self) -> None:
        """Hook for persistent subclasses; called with the lock held."""
