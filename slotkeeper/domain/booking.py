"""
The Booking aggregate and its status state machine.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

import pendulum
from pendulum import DateTime

from .event_type import EventLocation
from .events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    BookingMarkedNoShow,
    BookingRescheduled,
    ReminderSent,
    SchedulingEvent,
)
from .exceptions import AlreadyCancelled, InvalidTransition
from .models import Invitee, TimeSlot


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


CANCELLABLE: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.PENDING, BookingStatus.RESCHEDULED}
)
ATTENDABLE: FrozenSet[BookingStatus] = frozenset({BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED})


def _utcnow() -> DateTime:
    return pendulum.now("UTC")


@dataclass
class Booking:
    """
    A booked appointment.

    Lifecycle:
        Pending -> Confirmed (confirm)
        Confirmed -> Rescheduled (reschedule)
        Confirmed | Pending | Rescheduled -> Cancelled (cancel)
        Confirmed | Rescheduled -> Completed | NoShow

    A booking never returns to Confirmed once it has left it, and Cancelled
    is terminal. Every transition appends exactly one event to the pending
    queue; the dispatcher drains it with ``pull_events``.

    Buffers are copied from the event type when the booking is made so that
    later changes to the event type do not move existing bookings' padding.
    """
    id: str
    event_type_id: str
    host_id: str
    invitee: Invitee
    slot: TimeSlot
    status: BookingStatus = BookingStatus.CONFIRMED
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    location: EventLocation | None = None
    meeting_url: str | None = None
    notes: str | None = None
    responses: Dict[str, str] = field(default_factory=dict)
    cancelled_at: DateTime | None = None
    cancellation_reason: str | None = None
    rescheduled_from: TimeSlot | None = None
    reminders_sent: List[int] = field(default_factory=list)
    created_at: DateTime = field(default_factory=_utcnow)
    _events: List[SchedulingEvent] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def open(
        cls,
        *,
        event_type_id: str,
        host_id: str,
        invitee: Invitee,
        slot: TimeSlot,
        pending: bool = False,
        now: DateTime | None = None,
        **details
    ) -> "Booking":
        """
        Construct a new booking and raise ``BookingCreated``.

        Availability must have been checked by the caller; see
        ``BookingLifecycle.create``.
        """
        now = now or _utcnow()
        booking = cls(
            id=str(uuid.uuid4()),
            event_type_id=event_type_id,
            host_id=host_id,
            invitee=invitee,
            slot=slot,
            status=BookingStatus.PENDING if pending else BookingStatus.CONFIRMED,
            created_at=now,
            **details,
        )
        booking._raise(BookingCreated(booking_id=booking.id, occurred_at=now))
        return booking

    def is_active(self) -> bool:
        """Whether the booking still occupies its slot (anything but cancelled)."""
        return self.status is not BookingStatus.CANCELLED

    def padded_slot(self) -> TimeSlot:
        """The slot widened by the buffers captured at booking time."""
        return self.slot.expand(self.buffer_before_minutes, self.buffer_after_minutes)

    @property
    def pending_events(self) -> Tuple[SchedulingEvent, ...]:
        return tuple(self._events)

    def pull_events(self) -> List[SchedulingEvent]:
        """Drain and return the pending events."""
        events, self._events = self._events, []
        return events

    def confirm(self, now: DateTime | None = None) -> BookingConfirmed:
        self._require({BookingStatus.PENDING}, "confirm")
        self.status = BookingStatus.CONFIRMED
        return self._raise(BookingConfirmed(booking_id=self.id, occurred_at=now or _utcnow()))

    def cancel(self, reason: str = "", now: DateTime | None = None) -> BookingCancelled:
        if self.status is BookingStatus.CANCELLED:
            raise AlreadyCancelled(f"Booking {self.id} is already cancelled")
        self._require(CANCELLABLE, "cancel")
        now = now or _utcnow()
        self.status = BookingStatus.CANCELLED
        self.cancelled_at = now
        self.cancellation_reason = reason
        return self._raise(BookingCancelled(booking_id=self.id, occurred_at=now, reason=reason))

    def ensure_can_reschedule(self) -> None:
        self._require({BookingStatus.CONFIRMED}, "reschedule")

    def reschedule(self, new_slot: TimeSlot, now: DateTime | None = None) -> BookingRescheduled:
        """
        Move the booking to ``new_slot``.

        Conflict checking is the lifecycle's job; this only enforces the
        status rule and records the move.
        """
        self.ensure_can_reschedule()
        self.rescheduled_from = self.slot
        self.slot = new_slot
        self.status = BookingStatus.RESCHEDULED
        return self._raise(BookingRescheduled(booking_id=self.id, occurred_at=now or _utcnow()))

    def complete(self, now: DateTime | None = None) -> BookingCompleted:
        self._require(ATTENDABLE, "complete")
        self.status = BookingStatus.COMPLETED
        return self._raise(BookingCompleted(booking_id=self.id, occurred_at=now or _utcnow()))

    def mark_no_show(self, now: DateTime | None = None) -> BookingMarkedNoShow:
        self._require(ATTENDABLE, "mark as no-show")
        self.status = BookingStatus.NO_SHOW
        return self._raise(BookingMarkedNoShow(booking_id=self.id, occurred_at=now or _utcnow()))

    def record_reminder(self, hours_before: int, now: DateTime | None = None) -> ReminderSent:
        """Record that the reminder ``hours_before`` the start went out."""
        self._require(ATTENDABLE, "send a reminder for")
        if hours_before in self.reminders_sent:
            raise InvalidTransition(f"Reminder {hours_before}h before booking {self.id} was already sent")
        self.reminders_sent.append(hours_before)
        return self._raise(ReminderSent(booking_id=self.id, occurred_at=now or _utcnow(), hours_before=hours_before))

    def _require(self, allowed: FrozenSet[BookingStatus] | set, action: str) -> None:
        if self.status not in allowed:
            raise InvalidTransition(f"Cannot {action} booking {self.id} in status {self.status.value}")

    def _raise(self, event):
        self._events.append(event)
        return event
