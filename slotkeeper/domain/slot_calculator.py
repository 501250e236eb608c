"""
Core business logic for calculating bookable time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from datetime import date
from typing import Iterable, List

from pendulum import DateTime

from .availability import AvailabilityResolver
from .booking import Booking
from .conflict_checker import ConflictChecker
from .event_type import EventType
from .models import AvailabilitySchedule, TimeSlot
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


class SlotCalculator:
    """
    Calculates the slots an invitee can book for an event type.

    Algorithm:
    1. Resolve the schedule into open intervals for each date in the range
    2. Discretize the intervals into buffer-adjusted candidates
    3. Drop candidates the ConflictChecker rejects (notice, horizon,
       overlap with existing bookings, daily/weekly limits)
    4. Return the remaining slots in chronological order
    """

    def __init__(
        self,
        resolver: AvailabilityResolver | None = None,
        generator: SlotGenerator | None = None,
        checker: ConflictChecker | None = None,
        step_minutes: int | None = None
    ):
        self.resolver = resolver or AvailabilityResolver()
        self.generator = generator or SlotGenerator()
        self.checker = checker or ConflictChecker()
        self.step_minutes = step_minutes

    def find_available_slots(
        self,
        event_type: EventType,
        schedule: AvailabilitySchedule,
        start_date: date,
        end_date: date,
        existing_bookings: Iterable[Booking],
        *,
        now: DateTime
    ) -> List[TimeSlot]:
        """
        Find all bookable slots between two dates (inclusive).

        Args:
            event_type: Event type to book
            schedule: The event type's availability schedule
            start_date: First calendar date, in the schedule's timezone
            end_date: Last calendar date, in the schedule's timezone
            existing_bookings: The host's bookings overlapping the range
            now: Current instant

        Returns:
            List of available TimeSlot objects
        """
        bookings = list(existing_bookings)
        available: List[TimeSlot] = []

        for day, open_intervals in self.resolver.resolve_range(schedule, start_date, end_date):
            if not open_intervals:
                continue

            candidates = self.generator.generate(
                open_intervals,
                duration_minutes=event_type.duration_minutes,
                buffer_before_minutes=event_type.buffer_before_minutes,
                buffer_after_minutes=event_type.buffer_after_minutes,
                step_minutes=self.step_minutes,
            )

            for candidate in candidates:
                result = self.checker.check(
                    candidate,
                    bookings,
                    event_type,
                    now=now,
                    timezone=schedule.timezone,
                )
                if result.is_available:
                    available.append(candidate)

        logger.debug(
            "Found %d slot(s) for %s between %s and %s",
            len(available), event_type.id, start_date, end_date,
        )
        return available

    def fits_availability(
        self,
        event_type: EventType,
        schedule: AvailabilitySchedule,
        slot: TimeSlot
    ) -> bool:
        """
        Whether ``slot`` plus its buffers lies inside one open interval.

        Requested slots do not have to start on the generator's step grid,
        but they may not borrow time outside the host's availability.
        """
        padded = slot.expand(event_type.buffer_before_minutes, event_type.buffer_after_minutes)
        day = slot.start.in_timezone(schedule.timezone).date()
        return any(interval.contains(padded) for interval in self.resolver.resolve(schedule, day))
