"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityResolver
from .booking import Booking, BookingStatus
from .conflict_checker import Available, BufferScope, ConflictChecker, Unavailable, UnavailableReason
from .event_type import BookingLimits, EventType
from .lifecycle import BookingLifecycle
from .models import AvailabilityRule, AvailabilitySchedule, DateOverride, Invitee, TimeInterval, TimeSlot
from .slot_calculator import SlotCalculator
from .slot_generator import SlotGenerator

__all__ = [
    "AvailabilityResolver",
    "AvailabilityRule",
    "AvailabilitySchedule",
    "Available",
    "Booking",
    "BookingLifecycle",
    "BookingLimits",
    "BookingStatus",
    "BufferScope",
    "ConflictChecker",
    "DateOverride",
    "EventType",
    "Invitee",
    "SlotCalculator",
    "SlotGenerator",
    "TimeInterval",
    "TimeSlot",
    "Unavailable",
    "UnavailableReason",
]
