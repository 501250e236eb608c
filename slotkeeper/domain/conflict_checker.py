"""
Validation of a candidate slot against existing bookings and booking limits.

The checker is read-only: it never mutates bookings. Callers must perform
the check and the subsequent commit under the same per-host lock, otherwise
two concurrent requests can both observe ``Available`` for the same slot.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Type, Union

from pendulum import DateTime

from .booking import Booking
from .event_type import EventType
from .exceptions import (
    BookingLimitReached,
    PastTime,
    SchedulingError,
    SlotNotAvailable,
    TooFarInFuture,
    TooShortNotice,
)
from .models import TimeSlot

logger = logging.getLogger(__name__)


class UnavailableReason(str, Enum):
    PAST_TIME = "PastTime"
    TOO_SHORT_NOTICE = "TooShortNotice"
    TOO_FAR_IN_FUTURE = "TooFarInFuture"
    SLOT_NOT_AVAILABLE = "SlotNotAvailable"
    BOOKING_LIMIT_REACHED = "BookingLimitReached"


_ERRORS: Dict[UnavailableReason, Type[SchedulingError]] = {
    UnavailableReason.PAST_TIME: PastTime,
    UnavailableReason.TOO_SHORT_NOTICE: TooShortNotice,
    UnavailableReason.TOO_FAR_IN_FUTURE: TooFarInFuture,
    UnavailableReason.SLOT_NOT_AVAILABLE: SlotNotAvailable,
    UnavailableReason.BOOKING_LIMIT_REACHED: BookingLimitReached,
}


@dataclass(frozen=True)
class Available:
    is_available = True


@dataclass(frozen=True)
class Unavailable:
    reason: UnavailableReason
    detail: str = ""

    is_available = False

    def to_error(self) -> SchedulingError:
        """Exception matching the rejection reason."""
        return _ERRORS[self.reason](self.detail or self.reason.value)


CheckResult = Union[Available, Unavailable]


class BufferScope(str, Enum):
    """
    Which existing bookings a candidate's buffers are enforced against.

    HOST: buffers keep every booking of the host apart, whatever its type.
    EVENT_TYPE: buffers only apply between bookings of the same event type;
        bookings of other types are compared on their bare slots.
    """
    HOST = "host"
    EVENT_TYPE = "event_type"


class ConflictChecker:
    """
    Decides whether a candidate slot can be booked.

    Rules, evaluated in order (first failure wins):
    1. PastTime - the slot start has already elapsed
    2. TooShortNotice - the slot starts within the minimum notice period
    3. TooFarInFuture - the slot starts beyond the booking horizon
    4. SlotNotAvailable - the buffer-expanded slot overlaps a buffer-expanded,
       non-cancelled booking of the same host
    5. BookingLimitReached - accepting would exceed the per-day or per-week
       limit for the event type; day and week are taken in ``timezone``
    """

    def __init__(self, buffer_scope: BufferScope = BufferScope.HOST):
        self.buffer_scope = buffer_scope

    def check(
        self,
        candidate: TimeSlot,
        existing_bookings: Iterable[Booking],
        event_type: EventType,
        *,
        now: DateTime,
        timezone: str,
        exclude_booking_id: str | None = None
    ) -> CheckResult:
        """
        Check ``candidate`` for ``event_type`` against ``existing_bookings``.

        Args:
            candidate: The visible slot requested (without buffers)
            existing_bookings: Bookings of the host; cancelled ones are ignored
            event_type: Event type being booked, provides buffers and limits
            now: Current instant
            timezone: Schedule timezone used for day/week limit boundaries
            exclude_booking_id: Booking to ignore, used when rescheduling

        Returns:
            Available, or Unavailable with the reason of the first failed rule
        """
        limits = event_type.limits

        if candidate.start < now:
            return self._reject(UnavailableReason.PAST_TIME, f"Slot {candidate} has already started")

        if candidate.start < now.add(hours=limits.min_notice_hours):
            return self._reject(
                UnavailableReason.TOO_SHORT_NOTICE,
                f"Slot {candidate} needs at least {limits.min_notice_hours}h notice",
            )

        if limits.max_future_days and candidate.start > now.add(days=limits.max_future_days):
            return self._reject(
                UnavailableReason.TOO_FAR_IN_FUTURE,
                f"Slot {candidate} is more than {limits.max_future_days} days ahead",
            )

        relevant = [
            booking for booking in existing_bookings
            if booking.is_active()
            and booking.host_id == event_type.host_id
            and booking.id != exclude_booking_id
        ]

        conflict = self._find_conflict(candidate, relevant, event_type)
        if conflict is not None:
            return self._reject(
                UnavailableReason.SLOT_NOT_AVAILABLE,
                f"Slot {candidate} conflicts with booking {conflict.id} ({conflict.slot})",
            )

        limit_problem = self._limit_problem(candidate, relevant, event_type, timezone)
        if limit_problem is not None:
            return self._reject(UnavailableReason.BOOKING_LIMIT_REACHED, limit_problem)

        return Available()

    def _find_conflict(
        self,
        candidate: TimeSlot,
        bookings: List[Booking],
        event_type: EventType
    ) -> Booking | None:
        padded_candidate = candidate.expand(event_type.buffer_before_minutes, event_type.buffer_after_minutes)

        for booking in bookings:
            if self.buffer_scope is BufferScope.EVENT_TYPE and booking.event_type_id != event_type.id:
                if candidate.overlaps(booking.slot):
                    return booking
                continue

            if padded_candidate.overlaps(booking.padded_slot()):
                return booking

        return None

    @staticmethod
    def _limit_problem(
        candidate: TimeSlot,
        bookings: List[Booking],
        event_type: EventType,
        timezone: str
    ) -> str | None:
        limits = event_type.limits
        if limits.max_per_day is None and limits.max_per_week is None:
            return None

        local_start = candidate.start.in_timezone(timezone)
        day = local_start.date()
        week = tuple(local_start.isocalendar()[:2])

        same_type = [b.slot.start.in_timezone(timezone) for b in bookings if b.event_type_id == event_type.id]

        if limits.max_per_day is not None:
            on_day = sum(1 for start in same_type if start.date() == day)
            if on_day + 1 > limits.max_per_day:
                return f"{event_type.name} already has {on_day} booking(s) on {day} (max {limits.max_per_day})"

        if limits.max_per_week is not None:
            in_week = sum(1 for start in same_type if tuple(start.isocalendar()[:2]) == week)
            if in_week + 1 > limits.max_per_week:
                return (
                    f"{event_type.name} already has {in_week} booking(s) in week "
                    f"{week[1]}/{week[0]} (max {limits.max_per_week})"
                )

        return None

    @staticmethod
    def _reject(reason: UnavailableReason, detail: str) -> Unavailable:
        logger.debug("Candidate rejected (%s): %s", reason.value, detail)
        return Unavailable(reason=reason, detail=detail)
