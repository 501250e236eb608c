"""
Application services for listing slots and managing bookings.

The service coordinates the catalog of event types, the booking repository
and the event publisher, and delegates every scheduling decision to the
domain layer. Collaborators are described as protocols so tests and the CLI
can plug in in-memory or file-backed implementations.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Protocol, Sequence

import pendulum
from pendulum import DateTime

from ..domain.booking import ATTENDABLE, Booking
from ..domain.event_type import EventType
from ..domain.events import SchedulingEvent
from ..domain.exceptions import EventTypeNotFound, SchedulingError
from ..domain.lifecycle import BookingLifecycle
from ..domain.models import AvailabilitySchedule, Invitee, TimeSlot

logger = logging.getLogger(__name__)


class CatalogProtocol(Protocol):
    """Lookup of event types and their schedules."""

    def get_event_type(self, event_type_id: str) -> EventType:
        """Return the event type or raise EventTypeNotFound."""

    def get_schedule(self, schedule_id: str) -> AvailabilitySchedule:
        """Return the schedule or raise ScheduleNotFound."""

    def list_event_types(self) -> List[EventType]:
        """Return all event types, active or not."""


class BookingRepositoryProtocol(Protocol):
    """Persistence of Booking aggregates."""

    def get(self, booking_id: str) -> Booking:
        """Return the booking or raise BookingNotFound."""

    def add(self, booking: Booking) -> None:
        """Insert a new booking; raise SlotNotAvailable if the host's slot is taken."""

    def save(self, booking: Booking) -> None:
        """Persist changes to an existing booking."""

    def active_for_host(self, host_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        """Return non-cancelled bookings of the host overlapping [start, end)."""

    def list_all(self) -> List[Booking]:
        """Return every booking."""


class EventPublisherProtocol(Protocol):
    """Receives drained domain events for delivery."""

    def publish(self, events: Sequence[SchedulingEvent]) -> None:
        """Dispatch the events."""


@dataclass(frozen=True)
class BookingResult:
    """A booking after a transition, plus the events that transition raised."""
    booking: Booking
    events: List[SchedulingEvent] = field(default_factory=list)


def _utcnow() -> DateTime:
    return pendulum.now("UTC")


class BookingService:
    """
    Orchestrates slot listing and booking transitions.

    Check-then-commit is serialized per host: the availability check and the
    repository write for a host happen under that host's lock, so two
    concurrent requests cannot both see the same slot as free.
    """

    def __init__(
        self,
        catalog: CatalogProtocol,
        repository: BookingRepositoryProtocol,
        publisher: EventPublisherProtocol,
        lifecycle: BookingLifecycle | None = None,
        clock: Callable[[], DateTime] | None = None,
    ) -> None:
        self._catalog = catalog
        self._repository = repository
        self._publisher = publisher
        self._lifecycle = lifecycle or BookingLifecycle()
        self._clock = clock or _utcnow
        self._host_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def list_available_slots(
        self,
        event_type_id: str,
        start_date: date,
        end_date: date,
    ) -> List[TimeSlot]:
        """List bookable slots between two dates (inclusive) in the schedule's timezone."""
        event_type, schedule = self._load(event_type_id)
        if not event_type.is_active:
            raise EventTypeNotFound(f"Event type {event_type_id} is not active")

        window_start = pendulum.datetime(start_date.year, start_date.month, start_date.day, tz=schedule.timezone)
        window_end = pendulum.datetime(end_date.year, end_date.month, end_date.day, tz=schedule.timezone)
        existing = self._repository.active_for_host(
            event_type.host_id,
            window_start.start_of("week").subtract(days=1),
            window_end.end_of("week").add(days=1),
        )

        return self._lifecycle.calculator.find_available_slots(
            event_type,
            schedule,
            start_date,
            end_date,
            existing,
            now=self._clock(),
        )

    def book(
        self,
        event_type_id: str,
        invitee: Invitee,
        start: DateTime,
        *,
        notes: str | None = None,
        responses: Dict[str, str] | None = None,
    ) -> BookingResult:
        """
        Book ``event_type_id`` starting at ``start``.

        Raises:
            SchedulingError: Any of the domain rejections
        """
        event_type, schedule = self._load(event_type_id)
        slot = TimeSlot.starting_at(start, event_type.duration_minutes)

        with self._locked(event_type.host_id):
            existing = self._bookings_around(event_type.host_id, slot, schedule)
            try:
                booking = self._lifecycle.create(
                    event_type,
                    schedule,
                    invitee,
                    slot,
                    existing,
                    now=self._clock(),
                    notes=notes,
                    responses=responses,
                )
            except SchedulingError as exc:
                logger.warning("Booking of %s at %s rejected: %s (%s)", event_type_id, slot, exc.kind, exc)
                raise
            self._repository.add(booking)
            result = self._dispatch(booking)

        logger.info("Booked %s for %s at %s (%s)", event_type.name, invitee.email, slot, booking.id)
        return result

    def reschedule(self, booking_id: str, new_start: DateTime) -> BookingResult:
        """Move a booking to a new start; its duration comes from the event type."""
        host_id = self._repository.get(booking_id).host_id

        with self._locked(host_id):
            booking = self._repository.get(booking_id)
            event_type, schedule = self._load(booking.event_type_id)
            new_slot = TimeSlot.starting_at(new_start, event_type.duration_minutes)
            existing = self._bookings_around(booking.host_id, new_slot, schedule)
            try:
                self._lifecycle.reschedule(
                    booking, new_slot, event_type, schedule, existing, now=self._clock(),
                )
            except SchedulingError as exc:
                logger.warning("Reschedule of %s to %s rejected: %s (%s)", booking_id, new_slot, exc.kind, exc)
                raise
            self._repository.save(booking)
            result = self._dispatch(booking)

        logger.info("Rescheduled %s from %s to %s", booking_id, booking.rescheduled_from, new_slot)
        return result

    def cancel(self, booking_id: str, reason: str = "") -> BookingResult:
        return self._transition(booking_id, lambda b, now: b.cancel(reason, now=now))

    def confirm(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, lambda b, now: b.confirm(now=now))

    def complete(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, lambda b, now: b.complete(now=now))

    def mark_no_show(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, lambda b, now: b.mark_no_show(now=now))

    def send_due_reminders(self) -> List[BookingResult]:
        """
        Record a ReminderSent for every reminder offset that has come due.

        An offset is due when ``now`` has passed ``start - offset`` and the
        booking is still upcoming. Offsets whose moment had already passed
        when the booking was made are skipped. Each booking is re-read under
        its host's lock, so a cancel or reschedule that lands after the scan
        is honoured.
        """
        now = self._clock()
        results: List[BookingResult] = []

        for listed in self._repository.list_all():
            if not self._reminders_due(listed, now):
                continue
            with self._locked(listed.host_id):
                booking = self._repository.get(listed.id)
                for hours in self._reminders_due(booking, now):
                    booking.record_reminder(hours, now=now)
                    self._repository.save(booking)
                    results.append(self._dispatch(booking))

        if results:
            logger.info("Sent %d reminder(s)", len(results))
        return results

    def _reminders_due(self, booking: Booking, now: DateTime) -> List[int]:
        """Return the reminder offsets, largest first, that ``booking`` owes at ``now``."""
        if booking.status not in ATTENDABLE or booking.slot.start <= now:
            return []

        settings = self._catalog.get_event_type(booking.event_type_id).confirmation
        if not settings.send_reminder_email:
            return []

        due = []
        for hours in sorted(settings.reminder_hours_before, reverse=True):
            send_at = booking.slot.start.subtract(hours=hours)
            if hours in booking.reminders_sent or now < send_at or booking.created_at > send_at:
                continue
            due.append(hours)
        return due

    def _transition(self, booking_id: str, apply: Callable[[Booking, DateTime], object]) -> BookingResult:
        host_id = self._repository.get(booking_id).host_id
        with self._locked(host_id):
            booking = self._repository.get(booking_id)
            apply(booking, self._clock())
            self._repository.save(booking)
            result = self._dispatch(booking)
        logger.info("Booking %s is now %s", booking_id, booking.status.value)
        return result

    def _load(self, event_type_id: str) -> tuple[EventType, AvailabilitySchedule]:
        event_type = self._catalog.get_event_type(event_type_id)
        return event_type, self._catalog.get_schedule(event_type.schedule_id)

    def _bookings_around(self, host_id: str, slot: TimeSlot, schedule: AvailabilitySchedule) -> List[Booking]:
        """
        Fetch the host's bookings that can affect ``slot``.

        The window covers the whole ISO week in the schedule's timezone for
        the weekly limit, padded by a day on each side for buffers.
        """
        local_start = slot.start.in_timezone(schedule.timezone)
        return self._repository.active_for_host(
            host_id,
            local_start.start_of("week").subtract(days=1),
            local_start.end_of("week").add(days=1),
        )

    def _dispatch(self, booking: Booking) -> BookingResult:
        events = booking.pull_events()
        if events:
            self._publisher.publish(events)
        return BookingResult(booking=booking, events=events)

    def _locked(self, host_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._host_locks.setdefault(host_id, threading.Lock())
