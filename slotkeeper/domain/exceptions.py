"""
Domain-specific exception hierarchy for the booking engine.

Every error carries a stable ``kind`` string so callers can map failures to
their own representation (HTTP status, CLI message, retry policy) without
matching on class names.
"""


class SchedulingError(Exception):
    """Base class for all scheduling errors."""

    kind = "SchedulingError"


class EventTypeNotFound(SchedulingError):
    """Raised when an event type does not exist or is no longer bookable."""

    kind = "EventTypeNotFound"


class ScheduleNotFound(SchedulingError):
    """Raised when an event type references an unknown availability schedule."""

    kind = "ScheduleNotFound"


class BookingNotFound(SchedulingError):
    """Raised when a booking id cannot be resolved."""

    kind = "BookingNotFound"


class SlotNotAvailable(SchedulingError):
    """Raised when the requested slot conflicts with an existing booking."""

    kind = "SlotNotAvailable"


class TooShortNotice(SchedulingError):
    """Raised when a slot starts before the minimum notice period."""

    kind = "TooShortNotice"


class TooFarInFuture(SchedulingError):
    """Raised when a slot starts beyond the bookable horizon."""

    kind = "TooFarInFuture"


class BookingLimitReached(SchedulingError):
    """Raised when a per-day or per-week booking limit would be exceeded."""

    kind = "BookingLimitReached"


class PastTime(SchedulingError):
    """Raised when the slot start has already elapsed."""

    kind = "PastTime"


class AlreadyCancelled(SchedulingError):
    """Raised when a transition is attempted on a cancelled booking."""

    kind = "AlreadyCancelled"


class InvalidTransition(SchedulingError):
    """Raised when a booking cannot move to the requested status."""

    kind = "InvalidTransition"


class InvalidResponses(SchedulingError):
    """Raised when answers to booking questions are missing or invalid."""

    kind = "InvalidResponses"


class InvalidSchedule(SchedulingError, ValueError):
    """Raised when an availability schedule violates its invariants."""

    kind = "InvalidSchedule"
