"""
Domain events raised by the booking aggregate.

The core never delivers these; a dispatching collaborator drains them from
the aggregate and hands them to notification or calendar-sync services.
"""

from dataclasses import dataclass
from typing import Union

from pendulum import DateTime


@dataclass(frozen=True)
class BookingCreated:
    booking_id: str
    occurred_at: DateTime


@dataclass(frozen=True)
class BookingConfirmed:
    booking_id: str
    occurred_at: DateTime


@dataclass(frozen=True)
class BookingCancelled:
    booking_id: str
    occurred_at: DateTime
    reason: str = ""


@dataclass(frozen=True)
class BookingRescheduled:
    booking_id: str
    occurred_at: DateTime


@dataclass(frozen=True)
class BookingCompleted:
    booking_id: str
    occurred_at: DateTime


@dataclass(frozen=True)
class BookingMarkedNoShow:
    booking_id: str
    occurred_at: DateTime


@dataclass(frozen=True)
class ReminderSent:
    booking_id: str
    occurred_at: DateTime
    hours_before: int = 0


SchedulingEvent = Union[
    BookingCreated,
    BookingConfirmed,
    BookingCancelled,
    BookingRescheduled,
    BookingCompleted,
    BookingMarkedNoShow,
    ReminderSent,
]


def event_name(event: SchedulingEvent) -> str:
    return type(event).__name__
