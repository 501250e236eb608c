"""
Booking creation and rescheduling, the transitions that need an availability
check before they may happen.
"""

import logging
from typing import Dict, Iterable

from pendulum import DateTime

from .booking import Booking
from .event_type import EventType, meeting_url_for
from .exceptions import EventTypeNotFound, SlotNotAvailable
from .models import AvailabilitySchedule, Invitee, TimeSlot
from .slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class BookingLifecycle:
    """
    Runs the checked transitions of the Booking aggregate.

    Cancel, confirm, complete and no-show need no availability check and are
    called on the aggregate directly.
    """

    def __init__(self, calculator: SlotCalculator | None = None):
        self.calculator = calculator or SlotCalculator()

    @property
    def checker(self):
        return self.calculator.checker

    def create(
        self,
        event_type: EventType,
        schedule: AvailabilitySchedule,
        invitee: Invitee,
        slot: TimeSlot,
        existing_bookings: Iterable[Booking],
        *,
        now: DateTime,
        notes: str | None = None,
        responses: Dict[str, str] | None = None
    ) -> Booking:
        """
        Validate the request and open a booking.

        The booking starts in Confirmed, or Pending when the event type
        requires confirmation, with ``BookingCreated`` in its event queue.

        Raises:
            EventTypeNotFound: If the event type is deactivated
            InvalidResponses: If booking question answers are invalid
            SlotNotAvailable: If the slot has the wrong length, lies outside
                availability or conflicts with an existing booking
            PastTime, TooShortNotice, TooFarInFuture, BookingLimitReached:
                As reported by the ConflictChecker
        """
        if not event_type.is_active:
            raise EventTypeNotFound(f"Event type {event_type.id} is not active")

        responses = dict(responses or {})
        event_type.validate_responses(responses)

        self._ensure_bookable(event_type, schedule, slot, existing_bookings, now=now)

        booking = Booking.open(
            event_type_id=event_type.id,
            host_id=event_type.host_id,
            invitee=invitee,
            slot=slot,
            pending=event_type.confirmation.requires_confirmation,
            now=now,
            buffer_before_minutes=event_type.buffer_before_minutes,
            buffer_after_minutes=event_type.buffer_after_minutes,
            location=event_type.location,
            meeting_url=meeting_url_for(event_type.location),
            notes=notes,
            responses=responses,
        )
        logger.debug("Opened booking %s for %s at %s", booking.id, invitee.email, slot)
        return booking

    def reschedule(
        self,
        booking: Booking,
        new_slot: TimeSlot,
        event_type: EventType,
        schedule: AvailabilitySchedule,
        existing_bookings: Iterable[Booking],
        *,
        now: DateTime
    ) -> Booking:
        """
        Move a confirmed booking to ``new_slot``.

        The booking's own current slot does not count as a conflict. On any
        failure the booking is left untouched.
        """
        booking.ensure_can_reschedule()
        self._ensure_bookable(
            event_type, schedule, new_slot, existing_bookings, now=now, exclude_booking_id=booking.id,
        )
        booking.reschedule(new_slot, now=now)
        return booking

    def _ensure_bookable(
        self,
        event_type: EventType,
        schedule: AvailabilitySchedule,
        slot: TimeSlot,
        existing_bookings: Iterable[Booking],
        *,
        now: DateTime,
        exclude_booking_id: str | None = None
    ) -> None:
        if slot.duration_minutes() != event_type.duration_minutes:
            raise SlotNotAvailable(
                f"Slot {slot} lasts {slot.duration_minutes()} minutes, "
                f"{event_type.name} takes {event_type.duration_minutes}"
            )

        result = self.checker.check(
            slot,
            existing_bookings,
            event_type,
            now=now,
            timezone=schedule.timezone,
            exclude_booking_id=exclude_booking_id,
        )
        if not result.is_available:
            raise result.to_error()

        if not self.calculator.fits_availability(event_type, schedule, slot):
            raise SlotNotAvailable(f"Slot {slot} is outside the host's availability")
